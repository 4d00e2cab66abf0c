import logging
from typing import Any, Dict, List

from fastapi import HTTPException
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import find_by_ids

logger = logging.getLogger(__name__)

COUNTED = {
    "total_users": "user",
    "total_songs": "song",
    "total_albums": "album",
    "total_movie_albums": "moviealbum",
    "total_artists": "artist",
    "total_plays": "play",
}


def most_played(db: Database, limit: int = 5) -> List[Dict[str, Any]]:
    """Top songs by number of play events. Songs that no longer exist are skipped."""
    pipeline = [
        {"$group": {"_id": "$song", "count": {"$sum": 1}}},
        {"$sort": {"count": -1, "_id": 1}},
        {"$limit": limit},
    ]
    rows = list(db["play"].aggregate(pipeline))
    songs = {s["id"]: s for s in find_by_ids(db, "song", [r["_id"] for r in rows])}
    return [{"song": songs[r["_id"]], "count": r["count"]} for r in rows if r["_id"] in songs]


def get_analytics(db: Database) -> Dict[str, Any]:
    try:
        analytics: Dict[str, Any] = {key: db[name].count_documents({}) for key, name in COUNTED.items()}
        analytics["most_played"] = most_played(db)
    except PyMongoError:
        logger.exception("Failed to compute analytics")
        raise HTTPException(status_code=500, detail="Failed to fetch analytics.")
    return analytics
