import logging
from typing import Any, Dict, List

from fastapi import HTTPException
from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import create_document, serialize
from schemas import Play as PlaySchema

logger = logging.getLogger(__name__)


def record_play(db: Database, user_id: str, song_id: str) -> Dict[str, Any]:
    """
    Append one play event. There is no deduplication: a resubmitted play is
    recorded again. A failed write is reported and the event is lost.
    """
    try:
        return create_document(db, "play", PlaySchema(user=user_id, song=song_id))
    except PyMongoError:
        logger.exception("Error recording play of %s by %s", song_id, user_id)
        raise HTTPException(status_code=500, detail="Failed to record play")


def list_user_plays(db: Database, user_id: str, limit: int = 20) -> List[Dict[str, Any]]:
    try:
        cursor = db["play"].find({"user": user_id}).sort([("played_at", DESCENDING), ("_id", DESCENDING)]).limit(limit)
        return [serialize(d) for d in cursor]
    except PyMongoError:
        logger.exception("Failed to fetch plays for %s", user_id)
        raise HTTPException(status_code=500, detail="Failed to fetch plays.")
