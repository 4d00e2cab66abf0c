"""
Catalog management: songs, albums, artists and movie soundtrack albums.

Writes are admin-only (enforced at the route layer). Media is referenced by
URL; uploading to the media host happens before these calls. Removing a
catalog item never cascades into playlists, favorites or plays.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import create_document, find_by_id, find_by_ids, get_documents, serialize, to_object_id
from schemas import Album, Artist, MovieAlbum, Song

logger = logging.getLogger(__name__)


def _populate_artists(db: Database, songs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    artists = {a["id"]: a for a in find_by_ids(db, "artist", {s["artist"] for s in songs if s.get("artist")})}
    for song in songs:
        if song.get("artist"):
            song["artist"] = artists.get(song["artist"])
    return songs


def _remove(db: Database, collection: str, doc_id: str) -> None:
    oid = to_object_id(doc_id)
    if oid is None:
        return
    db[collection].delete_one({"_id": oid})
    logger.info("Removed %s %s", collection, doc_id)


def _bulk_insert(db: Database, collection: str, models: List[Any]) -> List[Dict[str, Any]]:
    now = datetime.now(timezone.utc)
    docs = [{**m.model_dump(), "created_at": now, "updated_at": now} for m in models]
    try:
        db[collection].insert_many(docs)
    except PyMongoError:
        logger.exception("Bulk insert into %s failed", collection)
        raise HTTPException(status_code=500, detail="Bulk add failed")
    logger.info("Bulk inserted %d %s documents", len(docs), collection)
    return [serialize(d) for d in docs]


# ---------- SONGS ----------

def add_song(db: Database, data: Dict[str, Any], admin_id: str) -> Dict[str, Any]:
    try:
        return create_document(db, "song", Song(**data, created_by=admin_id))
    except PyMongoError:
        logger.exception("Failed to add song %r", data.get("name"))
        raise HTTPException(status_code=500, detail="Failed to add song")


def list_songs(db: Database, page: int = 1, limit: int = 20, all_songs: bool = False) -> Dict[str, Any]:
    page = max(page, 1)
    limit = max(limit, 1)
    try:
        total = db["song"].count_documents({})
        cursor = db["song"].find({}).sort([("created_at", DESCENDING), ("_id", DESCENDING)])
        if not all_songs:
            cursor = cursor.skip((page - 1) * limit).limit(limit)
        songs = _populate_artists(db, [serialize(d) for d in cursor])
    except PyMongoError:
        logger.exception("Failed to list songs")
        raise HTTPException(status_code=500, detail="Failed to fetch songs")
    if all_songs:
        return {"songs": songs, "total": total, "page": 1, "pages": 1}
    return {"songs": songs, "total": total, "page": page, "pages": math.ceil(total / limit)}


def edit_song(db: Database, song_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    """Replace the given fields wholesale. Fields left as None are untouched."""
    oid = to_object_id(song_id)
    update = {k: v for k, v in changes.items() if v is not None}
    if oid is None:
        raise HTTPException(status_code=404, detail="Song not found")
    try:
        doc = db["song"].find_one_and_update(
            {"_id": oid}, {"$set": update}, return_document=ReturnDocument.AFTER
        ) if update else db["song"].find_one({"_id": oid})
    except PyMongoError:
        logger.exception("Failed to edit song %s", song_id)
        raise HTTPException(status_code=500, detail="Failed to edit song")
    if not doc:
        raise HTTPException(status_code=404, detail="Song not found")
    return _populate_artists(db, [serialize(doc)])[0]


def bulk_add_songs(db: Database, songs: List[Dict[str, Any]], admin_id: str) -> List[Dict[str, Any]]:
    if not songs:
        raise HTTPException(status_code=400, detail="No songs provided")
    return _bulk_insert(db, "song", [Song(**s, created_by=admin_id) for s in songs])


def remove_song(db: Database, song_id: str) -> None:
    try:
        _remove(db, "song", song_id)
    except PyMongoError:
        logger.exception("Failed to remove song %s", song_id)
        raise HTTPException(status_code=500, detail="Failed to remove song")


# ---------- ALBUMS ----------

def add_album(db: Database, data: Dict[str, Any], admin_id: str) -> Dict[str, Any]:
    try:
        return create_document(db, "album", Album(**data, created_by=admin_id))
    except PyMongoError:
        logger.exception("Failed to add album %r", data.get("name"))
        raise HTTPException(status_code=500, detail="Failed to add album")


def list_albums(db: Database) -> List[Dict[str, Any]]:
    try:
        return get_documents(db, "album")
    except PyMongoError:
        logger.exception("Failed to list albums")
        raise HTTPException(status_code=500, detail="Failed to fetch albums")


def remove_album(db: Database, album_id: str) -> None:
    try:
        _remove(db, "album", album_id)
    except PyMongoError:
        logger.exception("Failed to remove album %s", album_id)
        raise HTTPException(status_code=500, detail="Failed to remove album")


# ---------- ARTISTS ----------

def add_artist(db: Database, data: Dict[str, Any]) -> Dict[str, Any]:
    try:
        return create_document(db, "artist", Artist(**data))
    except PyMongoError:
        logger.exception("Failed to add artist %r", data.get("name"))
        raise HTTPException(status_code=500, detail="Failed to add artist")


def list_artists(db: Database) -> List[Dict[str, Any]]:
    try:
        return get_documents(db, "artist")
    except PyMongoError:
        logger.exception("Failed to list artists")
        raise HTTPException(status_code=500, detail="Failed to fetch artists")


def get_artist(db: Database, artist_id: str) -> Dict[str, Any]:
    try:
        artist = find_by_id(db, "artist", artist_id)
        if not artist:
            raise HTTPException(status_code=404, detail="Artist not found")
        artist["songs"] = get_documents(db, "song", {"artist": artist["id"]})
    except PyMongoError:
        logger.exception("Failed to fetch artist %s", artist_id)
        raise HTTPException(status_code=500, detail="Failed to fetch artist")
    return artist


def update_artist(db: Database, artist_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    """Name and image change only when given; bio may be cleared with an empty string."""
    update = {k: v for k, v in changes.items() if v or (k == "bio" and v is not None)}
    oid = to_object_id(artist_id)
    if oid is None:
        raise HTTPException(status_code=404, detail="Artist not found")
    try:
        doc = db["artist"].find_one_and_update(
            {"_id": oid}, {"$set": update}, return_document=ReturnDocument.AFTER
        ) if update else db["artist"].find_one({"_id": oid})
    except PyMongoError:
        logger.exception("Failed to update artist %s", artist_id)
        raise HTTPException(status_code=500, detail="Failed to update artist")
    if not doc:
        raise HTTPException(status_code=404, detail="Artist not found")
    return serialize(doc)


def delete_artist(db: Database, artist_id: str) -> None:
    oid = to_object_id(artist_id)
    try:
        result = db["artist"].delete_one({"_id": oid}) if oid else None
    except PyMongoError:
        logger.exception("Failed to delete artist %s", artist_id)
        raise HTTPException(status_code=500, detail="Failed to delete artist")
    if result is None or not result.deleted_count:
        raise HTTPException(status_code=404, detail="Artist not found")
    logger.info("Removed artist %s", artist_id)


def bulk_add_artists(db: Database, artists: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not artists:
        raise HTTPException(status_code=400, detail="No artists provided")
    return _bulk_insert(db, "artist", [Artist(**a) for a in artists])


# ---------- MOVIE ALBUMS ----------

def add_movie_album(db: Database, data: Dict[str, Any], admin_id: str) -> Dict[str, Any]:
    try:
        return create_document(db, "moviealbum", MovieAlbum(**data, created_by=admin_id))
    except PyMongoError:
        logger.exception("Failed to add movie album %r", data.get("title"))
        raise HTTPException(status_code=500, detail="Failed to add movie album")


def list_movie_albums(db: Database) -> List[Dict[str, Any]]:
    try:
        return [serialize(d) for d in db["moviealbum"].find({}).sort([("created_at", DESCENDING), ("_id", DESCENDING)])]
    except PyMongoError:
        logger.exception("Failed to list movie albums")
        raise HTTPException(status_code=500, detail="Failed to fetch movie albums")


def get_movie_album(db: Database, movie_album_id: str) -> Dict[str, Any]:
    try:
        album: Optional[Dict[str, Any]] = find_by_id(db, "moviealbum", movie_album_id)
        if not album:
            raise HTTPException(status_code=404, detail="Movie album not found")
        album["songs"] = find_by_ids(db, "song", album.get("songs", []))
    except PyMongoError:
        logger.exception("Failed to fetch movie album %s", movie_album_id)
        raise HTTPException(status_code=500, detail="Failed to fetch movie album")
    return album


def update_movie_album(db: Database, movie_album_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    # Empty values leave the stored field as it is
    update = {k: v for k, v in changes.items() if v}
    oid = to_object_id(movie_album_id)
    if oid is None:
        raise HTTPException(status_code=404, detail="Movie album not found")
    try:
        doc = db["moviealbum"].find_one_and_update(
            {"_id": oid}, {"$set": update}, return_document=ReturnDocument.AFTER
        ) if update else db["moviealbum"].find_one({"_id": oid})
    except PyMongoError:
        logger.exception("Failed to update movie album %s", movie_album_id)
        raise HTTPException(status_code=500, detail="Failed to update movie album")
    if not doc:
        raise HTTPException(status_code=404, detail="Movie album not found")
    return serialize(doc)


def delete_movie_album(db: Database, movie_album_id: str) -> None:
    try:
        _remove(db, "moviealbum", movie_album_id)
    except PyMongoError:
        logger.exception("Failed to delete movie album %s", movie_album_id)
        raise HTTPException(status_code=500, detail="Failed to delete movie album")
