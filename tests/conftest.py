from typing import List, Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from app.core.exceptions import CastFailure
from app.main import app
from app.services.bulk_operations import OperationName, UpdateOperation
from app.services.user_store import (
    UserStore,
    InsertOutcome,
    WriteOutcome,
    get_user_store,
    to_item_failure,
)
from utils.constants import UNIQUE_FIELDS


def duplicate_error(index: int, field: str, value) -> dict:
    return {
        "index": index,
        "code": 11000,
        "errmsg": (
            f"E11000 duplicate key error collection: test.users index: "
            f"{field}_unique dup key: {{ {field}: \"{value}\" }}"
        ),
        "keyPattern": {field: 1},
        "keyValue": {field: value},
    }


def validation_error(index: int) -> dict:
    return {"index": index, "code": 121, "errmsg": "Document failed validation"}


class InMemoryUserStore(UserStore):
    """
    UserStore kept in a list. Enforces the email/phone unique indexes and
    the walletBalance minimum, and reports failures per item like MongoDB.
    """

    def __init__(self):
        super().__init__(collection=None)
        self.documents: List[dict] = []

    def conflict(self, values: dict, ignore: Optional[dict] = None) -> Optional[str]:
        for field in UNIQUE_FIELDS:
            if field not in values:
                continue
            for other in self.documents:
                if other is not ignore and other.get(field) == values[field]:
                    return field
        return None

    def matching(self, query: dict) -> List[dict]:
        return [
            doc for doc in self.documents
            if all(doc.get(key) == value for key, value in query.items())
        ]

    async def insert_many(self, documents: List[dict]) -> InsertOutcome:
        inserted, errors = [], []
        for index, doc in enumerate(documents):
            field = self.conflict(doc)
            if field:
                errors.append(duplicate_error(index, field, doc[field]))
                continue
            doc.setdefault("_id", ObjectId())
            self.documents.append(doc)
            inserted.append(doc)
        return InsertOutcome(inserted=inserted, failures=[to_item_failure(e) for e in errors])

    def apply_update(self, index: int, operation: UpdateOperation, outcome: WriteOutcome):
        changes = operation.update["$set"]
        balance = changes.get("walletBalance", 0)
        if isinstance(balance, (int, float)) and balance < 0:
            outcome.write_errors.append(validation_error(index))
            return

        targets = self.matching(operation.filter)
        if not operation.many:
            targets = targets[:1]

        for doc in targets:
            field = self.conflict(changes, ignore=doc)
            if field:
                outcome.write_errors.append(duplicate_error(index, field, changes[field]))
                return

        for doc in targets:
            outcome.matched += 1
            if any(doc.get(key) != value for key, value in changes.items()):
                doc.update(changes)
                outcome.modified += 1

        if not targets and operation.upsert:
            self.documents.append({**operation.filter, **changes, "_id": ObjectId()})
            outcome.upserted += 1

    async def bulk_write(self, operations) -> WriteOutcome:
        outcome = WriteOutcome()
        for index, operation in enumerate(operations):
            if isinstance(operation, UpdateOperation):
                self.apply_update(index, operation, outcome)
            elif operation.name in (OperationName.DELETE_ONE, OperationName.DELETE_MANY):
                targets = self.matching(operation.body["filter"])
                if operation.name == OperationName.DELETE_ONE:
                    targets = targets[:1]
                for doc in targets:
                    self.documents.remove(doc)
                outcome.deleted += len(targets)
            elif operation.name == OperationName.INSERT_ONE:
                document = operation.body["document"]
                field = self.conflict(document)
                if field:
                    outcome.write_errors.append(duplicate_error(index, field, document[field]))
                    continue
                self.documents.append({**document, "_id": ObjectId()})
                outcome.inserted += 1
            elif operation.name == OperationName.REPLACE_ONE:
                targets = self.matching(operation.body["filter"])[:1]
                for doc in targets:
                    replacement = {**operation.body["replacement"], "_id": doc["_id"]}
                    doc.clear()
                    doc.update(replacement)
                    outcome.matched += 1
                    outcome.modified += 1
        outcome.failures = [to_item_failure(e) for e in outcome.write_errors]
        return outcome

    async def find(self, skip: int, limit: int) -> List[dict]:
        return self.documents[skip:skip + limit]

    async def count_documents(self) -> int:
        return len(self.documents)

    async def find_by_id(self, user_id: str) -> Optional[dict]:
        if not ObjectId.is_valid(user_id):
            raise CastFailure(user_id)
        for doc in self.documents:
            if doc["_id"] == ObjectId(user_id):
                return doc
        return None


def make_user(n: int, **overrides) -> dict:
    user = {
        "fullName": f"User Number {n}",
        "email": f"user{n}@example.com",
        "password": "secret123",
        "phone": f"98765{n:05d}",
    }
    user.update(overrides)
    return user


@pytest.fixture
def store():
    return InMemoryUserStore()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_user_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user_factory():
    return make_user
