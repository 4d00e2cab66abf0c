"""
Favorites: a (user, song) or (user, album) pair exists or it doesn't.

Liking is an upsert backed by a unique index, so a user can't hold the same
favorite twice even when two requests race.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from database import find_by_ids, serialize
from schemas import Favorite as FavoriteSchema

logger = logging.getLogger(__name__)


def _favorite_filter(user_id: str, song_id: Optional[str], album_id: Optional[str]) -> Dict[str, Any]:
    if not song_id and not album_id:
        raise HTTPException(status_code=400, detail="Song or album ID required.")
    return FavoriteSchema(user=user_id, song=song_id or None, album=album_id or None).model_dump(exclude_none=True)


def like(db: Database, user_id: str, song_id: Optional[str] = None, album_id: Optional[str] = None) -> Dict[str, Any]:
    filter_q = _favorite_filter(user_id, song_id, album_id)
    try:
        try:
            doc = db["favorite"].find_one_and_update(
                filter_q,
                {"$setOnInsert": {"created_at": datetime.now(timezone.utc)}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # lost an upsert race; the other request created it
            doc = db["favorite"].find_one(filter_q)
    except PyMongoError:
        logger.exception("Failed to like %s for %s", filter_q, user_id)
        raise HTTPException(status_code=500, detail="Failed to like.")
    return serialize(doc)


def unlike(db: Database, user_id: str, song_id: Optional[str] = None, album_id: Optional[str] = None) -> None:
    filter_q = _favorite_filter(user_id, song_id, album_id)
    try:
        db["favorite"].delete_one(filter_q)
    except PyMongoError:
        logger.exception("Failed to unlike %s for %s", filter_q, user_id)
        raise HTTPException(status_code=500, detail="Failed to unlike.")


def list_favorites(db: Database, user_id: str) -> List[Dict[str, Any]]:
    try:
        favorites = [serialize(d) for d in db["favorite"].find({"user": user_id})]
        songs = {s["id"]: s for s in find_by_ids(db, "song", [f["song"] for f in favorites if f.get("song")])}
        albums = {a["id"]: a for a in find_by_ids(db, "album", [f["album"] for f in favorites if f.get("album")])}
    except PyMongoError:
        logger.exception("Failed to fetch favorites for %s", user_id)
        raise HTTPException(status_code=500, detail="Failed to fetch favorites.")
    for fav in favorites:
        fav["song"] = songs.get(fav["song"]) if fav.get("song") else None
        fav["album"] = albums.get(fav["album"]) if fav.get("album") else None
    return favorites
