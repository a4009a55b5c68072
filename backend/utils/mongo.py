from datetime import datetime

from bson import ObjectId


def serialize_value(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return serialize_doc(value)
    if isinstance(value, list):
        return [serialize_value(v) for v in value]
    return value


def serialize_doc(doc: dict) -> dict:
    if not doc:
        return doc

    out = {}
    for k, v in doc.items():
        out["id" if k == "_id" else k] = serialize_value(v)
    return out
