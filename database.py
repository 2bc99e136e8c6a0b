"""
MongoDB connection handling and document helpers.

One MongoClient is created per process when the app is built, shared by every
request through `get_db`, and closed when the app shuts down.
"""
import logging
import re
from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Request
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.results import DeleteResult, InsertOneResult, UpdateResult

from config import Settings
from errors import InvalidArgument

logger = logging.getLogger(__name__)

_HEX_ID = re.compile(r"^[0-9a-fA-F]{24}$")


def connect(settings: Settings) -> MongoClient:
    options: Dict[str, Any] = {"connect": False, "tz_aware": True}
    if settings.database_timeout_ms is not None:
        options["serverSelectionTimeoutMS"] = settings.database_timeout_ms
    logger.info("Creating MongoDB client for database %s", settings.database_name)
    return MongoClient(settings.database_url, **options)


def ensure_indexes(db: Database) -> None:
    db["users"].create_index([("email", ASCENDING)], unique=True)
    db["posts"].create_index([("time", DESCENDING)])
    db["comments"].create_index([("postId", ASCENDING)])
    db["announcements"].create_index([("date", DESCENDING)])
    logger.info("Indexes ensured on %s", db.name)


def get_db(request: Request) -> Database:
    return request.app.state.db


def object_id(value: str) -> ObjectId:
    # ObjectId() also accepts arbitrary 12-character strings, so check the hex form
    if not isinstance(value, str) or not _HEX_ID.match(value):
        raise InvalidArgument(f"Invalid id: {value!r}")
    return ObjectId(value)


def serialize(doc: Optional[dict]) -> Optional[dict]:
    if doc is None:
        return None
    d = {}
    for k, v in doc.items():
        if isinstance(v, ObjectId):
            d[k] = str(v)
        elif isinstance(v, datetime):
            d[k] = v.isoformat()
        elif isinstance(v, dict):
            d[k] = serialize(v)
        else:
            d[k] = v
    return d


def serialize_result(result: Any) -> Dict[str, Any]:
    """Shape a pymongo write result like the driver acknowledgement clients expect."""
    if isinstance(result, InsertOneResult):
        return {"acknowledged": result.acknowledged, "insertedId": str(result.inserted_id)}
    if isinstance(result, UpdateResult):
        upserted = result.upserted_id
        return {
            "acknowledged": result.acknowledged,
            "matchedCount": result.matched_count,
            "modifiedCount": result.modified_count,
            "upsertedId": str(upserted) if upserted is not None else None,
        }
    if isinstance(result, DeleteResult):
        return {"acknowledged": result.acknowledged, "deletedCount": result.deleted_count}
    raise TypeError(f"Unsupported write result: {type(result).__name__}")
