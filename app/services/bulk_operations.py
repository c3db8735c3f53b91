"""
app/services/bulk_operations.py

Purpose: Bulk operation translation

- Parses client operations into UpdateOperation | RawOperation
- updateOne / updateMany payloads become {"$set": {...}} so only the listed
  fields change, with updatedAt always set by the server
- insertOne / replaceOne / deleteOne / deleteMany pass through as given
- Output order matches input order, so store error indexes map back to
  the client's array
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Union

from bson import ObjectId
from pymongo import UpdateOne, UpdateMany, InsertOne, ReplaceOne, DeleteOne, DeleteMany

from app.core.exceptions import ValidationFailure


class OperationName(str, Enum):
    UPDATE_ONE = "updateOne"
    UPDATE_MANY = "updateMany"
    INSERT_ONE = "insertOne"
    REPLACE_ONE = "replaceOne"
    DELETE_ONE = "deleteOne"
    DELETE_MANY = "deleteMany"


UPDATE_NAMES = (OperationName.UPDATE_ONE, OperationName.UPDATE_MANY)

# Keys each raw operation body must carry as objects
RAW_REQUIRED_KEYS = {
    OperationName.INSERT_ONE: ("document",),
    OperationName.REPLACE_ONE: ("filter", "replacement"),
    OperationName.DELETE_ONE: ("filter",),
    OperationName.DELETE_MANY: ("filter",),
}


@dataclass
class UpdateOperation:
    """A field-level update; `update` is already the $set document."""
    name: OperationName
    filter: dict
    update: dict
    upsert: bool = False

    @property
    def many(self) -> bool:
        return self.name == OperationName.UPDATE_MANY

    def to_request(self):
        request_cls = UpdateMany if self.many else UpdateOne
        return request_cls(self.filter, self.update, upsert=self.upsert)


@dataclass
class RawOperation:
    """An insert, replace or delete passed to the store as the client wrote it."""
    name: OperationName
    body: dict = field(default_factory=dict)

    def to_request(self):
        if self.name == OperationName.INSERT_ONE:
            return InsertOne(self.body["document"])
        if self.name == OperationName.REPLACE_ONE:
            return ReplaceOne(
                self.body["filter"],
                self.body["replacement"],
                upsert=bool(self.body.get("upsert", False)),
            )
        if self.name == OperationName.DELETE_ONE:
            return DeleteOne(self.body["filter"])
        return DeleteMany(self.body["filter"])


BulkOperation = Union[UpdateOperation, RawOperation]


def coerce_filter(query: dict) -> dict:
    """
    Returns a copy of `query` with a string _id that is a valid ObjectId
    converted to ObjectId, so clients can target records by the id they got back.
    """
    value = query.get("_id")
    if isinstance(value, str) and ObjectId.is_valid(value):
        return {**query, "_id": ObjectId(value)}
    return query


def _invalid(index: int, reason: str) -> ValidationFailure:
    return ValidationFailure(
        [f"Operation at index {index}: {reason}"],
        message="Invalid bulk operation",
    )


def _parse_update(index: int, name: OperationName, body: dict, now: datetime) -> UpdateOperation:
    query = body.get("filter")
    changes = body.get("update")

    if not isinstance(query, dict):
        raise _invalid(index, f"{name.value}.filter must be an object")
    if not isinstance(changes, dict):
        raise _invalid(index, f"{name.value}.update must be an object")

    return UpdateOperation(
        name=name,
        filter=coerce_filter(query),
        update={"$set": {**changes, "updatedAt": now}},
        upsert=bool(body.get("upsert", False)),
    )


def _parse_raw(index: int, name: OperationName, body: dict) -> RawOperation:
    for key in RAW_REQUIRED_KEYS[name]:
        if not isinstance(body.get(key), dict):
            raise _invalid(index, f"{name.value}.{key} must be an object")

    if name == OperationName.REPLACE_ONE and any(str(key).startswith("$") for key in body["replacement"]):
        raise _invalid(index, "replaceOne.replacement must not contain update operators")

    if "filter" in body:
        body = {**body, "filter": coerce_filter(body["filter"])}
    return RawOperation(name=name, body=body)


def parse_operation(index: int, item: Any, now: datetime) -> BulkOperation:
    """
    Parses one client operation.

    Raises:
        ValidationFailure: If the item is not a recognised operation
    """
    if not isinstance(item, dict) or len(item) != 1:
        raise _invalid(index, "must be an object with exactly one operation key")

    key, body = next(iter(item.items()))
    try:
        name = OperationName(key)
    except ValueError:
        raise _invalid(index, f"unsupported operation '{key}'") from None

    if not isinstance(body, dict):
        raise _invalid(index, f"{key} must be an object")

    if name in UPDATE_NAMES:
        return _parse_update(index, name, body, now)
    return _parse_raw(index, name, body)


def translate_operations(items: List[Any], now: datetime) -> List[BulkOperation]:
    """
    Translates the client's operation list, preserving order.

    Args:
        items: Client operations from the request body
        now: Server timestamp written to updatedAt by every update

    Returns:
        One BulkOperation per item, same order
    """
    return [parse_operation(index, item, now) for index, item in enumerate(items)]
