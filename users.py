"""
Account self-service: preference settings and profile edits.

Settings live in their own collection keyed by user id. A user who never
saved settings reads the defaults from ``schemas.UserSettings``; the first
save upserts the document.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from auth import CurrentUser
from database import serialize, to_object_id
from schemas import UserSettings

logger = logging.getLogger(__name__)

SETTINGS_PROJECTION = {"_id": 0, "user": 0}


def _defaults(user_id: str) -> Dict[str, Any]:
    return UserSettings(user=user_id).model_dump(exclude={"user"})


def get_settings(db: Database, user_id: str) -> Dict[str, Any]:
    try:
        stored = db["usersettings"].find_one({"user": user_id}, SETTINGS_PROJECTION)
    except PyMongoError:
        logger.exception("Failed to load settings for %s", user_id)
        raise HTTPException(status_code=500, detail="Server error while getting user settings")
    return stored if stored is not None else _defaults(user_id)


def update_settings(db: Database, user_id: str, changes: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Apply the given keys; anything not given keeps its stored or default value."""
    if changes is None:
        raise HTTPException(status_code=400, detail="No settings data provided")
    changes = {k: v for k, v in changes.items() if v is not None}
    update: Dict[str, Any] = {}
    if changes:
        update["$set"] = changes
    on_insert = {k: v for k, v in _defaults(user_id).items() if k not in changes}
    if on_insert:
        update["$setOnInsert"] = on_insert
    try:
        doc = db["usersettings"].find_one_and_update(
            {"user": user_id},
            update,
            projection=SETTINGS_PROJECTION,
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError:
        logger.exception("Failed to update settings for %s", user_id)
        raise HTTPException(status_code=500, detail="Server error while updating user settings")
    logger.info("Updated settings for %s", user_id)
    return doc


def update_profile(db: Database, current_user: CurrentUser, username: Optional[str] = None, email: Optional[str] = None, avatar: Optional[str] = None) -> Dict[str, Any]:
    update: Dict[str, Any] = {}
    if username:
        update["username"] = username.strip()
    if email:
        update["email"] = email.strip().lower()
    if avatar:
        update["avatar"] = avatar
    if not update:
        raise HTTPException(status_code=400, detail="No update data provided")

    oid = to_object_id(current_user.id)
    if oid is None:
        raise HTTPException(status_code=404, detail="User not found")
    try:
        doc = db["user"].find_one_and_update(
            {"_id": oid},
            {"$set": update},
            projection={"password": 0},
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Username or email already in use")
    except PyMongoError:
        logger.exception("Failed to update profile of %s", current_user.id)
        raise HTTPException(status_code=500, detail="Server error while updating profile")
    if not doc:
        raise HTTPException(status_code=404, detail="User not found")
    return serialize(doc)
