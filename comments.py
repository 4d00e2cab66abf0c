import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError

from auth import CurrentUser
from database import create_document, find_by_ids, serialize, to_object_id
from schemas import Comment as CommentSchema

logger = logging.getLogger(__name__)


def add_comment(db: Database, user_id: str, text: Optional[str], song_id: Optional[str] = None, album_id: Optional[str] = None) -> Dict[str, Any]:
    if not text or (not song_id and not album_id):
        raise HTTPException(status_code=400, detail="Text and song or album ID required.")
    try:
        return create_document(db, "comment", CommentSchema(user=user_id, song=song_id, album=album_id, text=text))
    except PyMongoError:
        logger.exception("Failed to add comment by %s", user_id)
        raise HTTPException(status_code=500, detail="Failed to add comment.")


def list_comments(db: Database, song_id: Optional[str] = None, album_id: Optional[str] = None) -> List[Dict[str, Any]]:
    filter_q: Dict[str, Any] = {}
    if song_id:
        filter_q["song"] = song_id
    if album_id:
        filter_q["album"] = album_id
    try:
        comments = [serialize(d) for d in db["comment"].find(filter_q).sort([("created_at", DESCENDING), ("_id", DESCENDING)])]
        users = {
            u["id"]: {"id": u["id"], "username": u.get("username")}
            for u in find_by_ids(db, "user", {c["user"] for c in comments})
        }
    except PyMongoError:
        logger.exception("Failed to fetch comments for %s", filter_q)
        raise HTTPException(status_code=500, detail="Failed to fetch comments.")
    for comment in comments:
        comment["user"] = users.get(comment["user"])
    return comments


def delete_comment(db: Database, comment_id: str, current_user: CurrentUser) -> None:
    """Only the author or an admin may delete a comment."""
    oid = to_object_id(comment_id)
    try:
        comment = db["comment"].find_one({"_id": oid}) if oid else None
        if not comment:
            raise HTTPException(status_code=404, detail="Comment not found.")
        if comment["user"] != current_user.id and not current_user.is_admin:
            raise HTTPException(status_code=403, detail="Not authorized.")
        db["comment"].delete_one({"_id": oid})
    except PyMongoError:
        logger.exception("Failed to delete comment %s", comment_id)
        raise HTTPException(status_code=500, detail="Failed to delete comment.")
