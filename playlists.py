"""
Playlist service.

A playlist moves through created -> (song added | song removed)* -> deleted.
Song membership changes are single atomic updates ($addToSet / $pull), so
concurrent writers to one playlist never lose each other's songs.

Mutations do not check ownership: anyone authenticated who holds a playlist
id may add, remove or delete (playlists are shareable by id).
"""

import logging
from typing import Any, Dict, List

from fastapi import HTTPException
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import create_document, find_by_ids, serialize, to_object_id
from schemas import Playlist as PlaylistSchema

logger = logging.getLogger(__name__)

NOT_FOUND = "Playlist not found."


def populate_songs(db: Database, playlist: Dict[str, Any]) -> Dict[str, Any]:
    # Dangling song ids are dropped, not reported
    playlist["songs"] = find_by_ids(db, "song", playlist.get("songs", []))
    return playlist


def create_playlist(db: Database, name: str, owner_id: str) -> Dict[str, Any]:
    try:
        playlist = create_document(db, "playlist", PlaylistSchema(name=name, user=owner_id, songs=[]))
    except PyMongoError:
        logger.exception("Failed to create playlist for user %s", owner_id)
        raise HTTPException(status_code=500, detail="Failed to create playlist.")
    logger.info("User %s created playlist %s", owner_id, playlist["id"])
    return playlist


def list_user_playlists(db: Database, owner_id: str) -> List[Dict[str, Any]]:
    try:
        docs = db["playlist"].find({"user": owner_id}).sort([("created_at", 1), ("_id", 1)])
        return [populate_songs(db, serialize(d)) for d in docs]
    except PyMongoError:
        logger.exception("Failed to fetch playlists for user %s", owner_id)
        raise HTTPException(status_code=500, detail="Failed to fetch playlists.")


def get_playlist(db: Database, playlist_id: str) -> Dict[str, Any]:
    oid = to_object_id(playlist_id)
    if oid is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    try:
        doc = db["playlist"].find_one({"_id": oid})
        if not doc:
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        return populate_songs(db, serialize(doc))
    except PyMongoError:
        logger.exception("Failed to fetch playlist %s", playlist_id)
        raise HTTPException(status_code=500, detail="Failed to fetch playlist.")


def _update_songs(db: Database, playlist_id: str, update: Dict[str, Any], error: str) -> Dict[str, Any]:
    oid = to_object_id(playlist_id)
    if oid is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    try:
        doc = db["playlist"].find_one_and_update(
            {"_id": oid}, update, return_document=ReturnDocument.AFTER
        )
    except PyMongoError:
        logger.exception("Playlist update failed for %s", playlist_id)
        raise HTTPException(status_code=500, detail=error)
    if not doc:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return serialize(doc)


def add_song(db: Database, playlist_id: str, song_id: str) -> Dict[str, Any]:
    """Add ``song_id`` to the playlist. Adding a song that is already there is a no-op."""
    return _update_songs(db, playlist_id, {"$addToSet": {"songs": song_id}}, "Failed to add song.")


def remove_song(db: Database, playlist_id: str, song_id: str) -> Dict[str, Any]:
    return _update_songs(db, playlist_id, {"$pull": {"songs": song_id}}, "Failed to remove song.")


def delete_playlist(db: Database, playlist_id: str) -> None:
    """Delete unconditionally. Unknown or malformed ids succeed without changing anything."""
    oid = to_object_id(playlist_id)
    if oid is None:
        return
    try:
        result = db["playlist"].delete_one({"_id": oid})
    except PyMongoError:
        logger.exception("Failed to delete playlist %s", playlist_id)
        raise HTTPException(status_code=500, detail="Failed to delete playlist.")
    logger.info("Deleted playlist %s (%d removed)", playlist_id, result.deleted_count)
