"""
app/models/user.py

Purpose: Stored user document model

- Collection-level $jsonSchema validator mirroring the record schema
- Applied by app/db/indexes.py so bulk updates, which bypass the
  request-side schema, still cannot break field constraints
  (e.g. a negative walletBalance)

Stored document:
- _id: ObjectId
- fullName, email, password, role, phone: str
- walletBalance: number >= 0
- isBlocked: bool
- kycStatus: Pending | Approved | Rejected
- deviceInfo: {ipAddress, deviceType, os}
- createdAt, updatedAt: date
"""

from utils.constants import KycStatus, DeviceType, OperatingSystem
from utils.validation_utils import STORED_EMAIL_PATTERN, STORED_PHONE_PATTERN


USER_JSON_SCHEMA = {
    "bsonType": "object",
    "required": ["fullName", "email", "password", "phone"],
    "properties": {
        "fullName": {"bsonType": "string", "minLength": 3},
        "email": {"bsonType": "string", "pattern": STORED_EMAIL_PATTERN},
        "password": {"bsonType": "string"},
        "role": {"bsonType": "string"},
        "phone": {"bsonType": "string", "pattern": STORED_PHONE_PATTERN},
        "walletBalance": {
            "bsonType": ["double", "int", "long", "decimal"],
            "minimum": 0,
        },
        "isBlocked": {"bsonType": "bool"},
        "kycStatus": {"enum": [status.value for status in KycStatus]},
        "deviceInfo": {
            "bsonType": "object",
            "properties": {
                "ipAddress": {"bsonType": "string"},
                "deviceType": {"enum": [device.value for device in DeviceType]},
                "os": {"enum": [os_name.value for os_name in OperatingSystem]},
            },
        },
        "createdAt": {"bsonType": "date"},
        "updatedAt": {"bsonType": "date"},
    },
}

USER_VALIDATOR = {"$jsonSchema": USER_JSON_SCHEMA}
