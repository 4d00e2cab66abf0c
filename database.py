"""
MongoDB access for the SoundLink API.

A single client is created at import time from DATABASE_URL / DATABASE_NAME.
Collections are named after the lowercased schema class (see schemas.py).
Route handlers receive the database through the ``get_db`` dependency so that
tests can swap in an in-memory database.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import settings

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None
db: Optional[Database] = None

if settings.DATABASE_URL and settings.DATABASE_NAME:
    _client = MongoClient(settings.DATABASE_URL, serverSelectionTimeoutMS=5000)
    db = _client[settings.DATABASE_NAME]


def get_db() -> Database:
    if db is None:
        raise HTTPException(status_code=503, detail="Database not available")
    return db


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse a string id, returning None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    # Convert ObjectId to str id
    if doc is None:
        return None
    if "_id" in doc:
        doc["id"] = str(doc["_id"])
        del doc["_id"]
    return doc


def create_document(database: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    """Insert a document, stamping created_at/updated_at. Returns the stored document."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    now = datetime.now(timezone.utc)
    data_dict.setdefault("created_at", now)
    data_dict["updated_at"] = now
    result = database[collection_name].insert_one(data_dict)
    data_dict["_id"] = result.inserted_id
    return serialize(data_dict)


def get_documents(
    database: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    projection: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {}, projection)
    if limit:
        cursor = cursor.limit(limit)
    return [serialize(d) for d in cursor]


def find_by_ids(database: Database, collection_name: str, ids: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    Resolve a list of string ids to documents, keeping the given order.

    Ids that are malformed or no longer exist are dropped: references are not
    cascaded on delete, so readers treat them as unavailable items.
    """
    ids = list(ids)
    oids = [oid for oid in (to_object_id(i) for i in ids) if oid is not None]
    if not oids:
        return []
    found = {str(d["_id"]): d for d in database[collection_name].find({"_id": {"$in": oids}})}
    return [serialize(found[str(i)]) for i in ids if str(i) in found]


def find_by_id(database: Database, collection_name: str, doc_id: Any, projection: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    oid = to_object_id(doc_id)
    if oid is None:
        return None
    return serialize(database[collection_name].find_one({"_id": oid}, projection))


def ensure_indexes(database: Database) -> None:
    database["user"].create_index("username", unique=True)
    database["user"].create_index("email", unique=True)
    database["playlist"].create_index("user")
    database["favorite"].create_index(
        [("user", ASCENDING), ("song", ASCENDING), ("album", ASCENDING)], unique=True
    )
    database["play"].create_index([("song", ASCENDING)])
    database["comment"].create_index([("song", ASCENDING), ("album", ASCENDING)])
    database["usersettings"].create_index("user", unique=True)
    logger.info("Indexes ensured on %s", database.name)
