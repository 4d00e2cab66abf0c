import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import analytics
import auth
import catalog
import comments
import database
import favorites
import playlists
import plays
import search as search_service
import users
from auth import CurrentUser, get_current_user, get_optional_user, require_admin
from config import settings
from database import get_db
from schemas import (
    AlbumCreate,
    ArtistBulkAdd,
    ArtistCreate,
    ArtistUpdate,
    CommentCreate,
    CommentDelete,
    FavoriteChange,
    LoginRequest,
    MovieAlbumCreate,
    MovieAlbumUpdate,
    PlayCreate,
    PlaylistCreate,
    PlaylistDelete,
    PlaylistSongChange,
    ProfileUpdate,
    RegisterRequest,
    RemoveById,
    SettingsUpdate,
    SongBulkAdd,
    SongCreate,
    SongEdit,
)

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        try:
            database.ensure_indexes(database.db)
        except PyMongoError as e:
            logger.error(f"Index creation failed: {e}")
    else:
        logger.warning("DATABASE_URL / DATABASE_NAME not set; API will answer 503")
    yield


app = FastAPI(title="SoundLink API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request."
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query"))
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", message)
    return JSONResponse(status_code=400, content={"success": False, "message": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error."})


@app.get("/")
def read_root():
    return {"message": "SoundLink API running"}


# ---------- AUTH ----------

@app.post("/api/auth/register", status_code=201)
def register(payload: RegisterRequest, creator: Optional[CurrentUser] = Depends(get_optional_user), db: Database = Depends(get_db)):
    auth.register(db, payload.username, payload.email, payload.password, payload.role, creator)
    return {"success": True, "message": "User registered successfully."}


@app.post("/api/auth/login")
def login(payload: LoginRequest, db: Database = Depends(get_db)):
    return {"success": True, **auth.login(db, payload.email, payload.password)}


@app.get("/api/auth/me")
def me(user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "user": auth.get_me(db, user)}


# ---------- SEARCH ----------

@app.get("/api/search")
def search(q: Optional[str] = None, db: Database = Depends(get_db)):
    return {"success": True, **search_service.search(db, q)}


# ---------- PLAYLISTS ----------

@app.post("/api/playlist/create", status_code=201)
def create_playlist(payload: PlaylistCreate, user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "playlist": playlists.create_playlist(db, payload.name, user.id)}


@app.get("/api/playlist/my")
def my_playlists(user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "playlists": playlists.list_user_playlists(db, user.id)}


@app.post("/api/playlist/add-song")
def add_song_to_playlist(payload: PlaylistSongChange, user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "playlist": playlists.add_song(db, payload.playlist_id, payload.song_id)}


@app.post("/api/playlist/remove-song")
def remove_song_from_playlist(payload: PlaylistSongChange, user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "playlist": playlists.remove_song(db, payload.playlist_id, payload.song_id)}


@app.post("/api/playlist/delete")
def delete_playlist(payload: PlaylistDelete, user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    playlists.delete_playlist(db, payload.playlist_id)
    return {"success": True, "message": "Playlist deleted."}


@app.get("/api/playlist/{playlist_id}")
def get_playlist(playlist_id: str, user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "playlist": playlists.get_playlist(db, playlist_id)}


# ---------- PLAYS ----------

@app.post("/api/play/add", status_code=201)
def record_play(payload: PlayCreate, user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    plays.record_play(db, user.id, payload.song)
    return {"success": True, "message": "Play recorded successfully"}


@app.get("/api/play/my")
def my_plays(limit: int = 20, user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "plays": plays.list_user_plays(db, user.id, limit)}


# ---------- FAVORITES ----------

@app.post("/api/favorite/like")
def like(payload: FavoriteChange, user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "favorite": favorites.like(db, user.id, payload.song_id, payload.album_id)}


@app.post("/api/favorite/unlike")
def unlike(payload: FavoriteChange, user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    favorites.unlike(db, user.id, payload.song_id, payload.album_id)
    return {"success": True, "message": "Unliked."}


@app.get("/api/favorite/my")
def my_favorites(user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "favorites": favorites.list_favorites(db, user.id)}


# ---------- COMMENTS ----------

@app.post("/api/comment/add", status_code=201)
def add_comment(payload: CommentCreate, user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    comment = comments.add_comment(db, user.id, payload.text, payload.song_id, payload.album_id)
    return {"success": True, "comment": comment}


@app.get("/api/comment/list")
def list_comments(songId: Optional[str] = None, albumId: Optional[str] = None, db: Database = Depends(get_db)):
    return {"success": True, "comments": comments.list_comments(db, songId, albumId)}


@app.post("/api/comment/delete")
def delete_comment(payload: CommentDelete, user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    comments.delete_comment(db, payload.comment_id, user)
    return {"success": True, "message": "Comment deleted."}


# ---------- SONGS ----------

@app.post("/api/song/add", status_code=201)
def add_song(payload: SongCreate, admin: CurrentUser = Depends(require_admin), db: Database = Depends(get_db)):
    song = catalog.add_song(db, payload.model_dump(), admin.id)
    return {"success": True, "message": "Song Added", "song": song}


@app.get("/api/song/list")
def list_songs(page: int = 1, limit: int = 20, all: bool = False, db: Database = Depends(get_db)):
    return {"success": True, **catalog.list_songs(db, page, limit, all_songs=all)}


@app.post("/api/song/edit")
def edit_song(payload: SongEdit, admin: CurrentUser = Depends(require_admin), db: Database = Depends(get_db)):
    changes = payload.model_dump(exclude={"id"})
    return {"success": True, "song": catalog.edit_song(db, payload.id, changes)}


@app.post("/api/song/bulk-add")
def bulk_add_songs(payload: SongBulkAdd, admin: CurrentUser = Depends(require_admin), db: Database = Depends(get_db)):
    songs = catalog.bulk_add_songs(db, [s.model_dump() for s in payload.songs], admin.id)
    return {"success": True, "songs": songs}


@app.post("/api/song/remove")
def remove_song(payload: RemoveById, admin: CurrentUser = Depends(require_admin), db: Database = Depends(get_db)):
    catalog.remove_song(db, payload.id)
    return {"success": True, "message": "Song removed"}


# ---------- ALBUMS ----------

@app.post("/api/album/add", status_code=201)
def add_album(payload: AlbumCreate, admin: CurrentUser = Depends(require_admin), db: Database = Depends(get_db)):
    album = catalog.add_album(db, payload.model_dump(), admin.id)
    return {"success": True, "message": "Album added", "album": album}


@app.get("/api/album/list")
def list_albums(db: Database = Depends(get_db)):
    return {"success": True, "albums": catalog.list_albums(db)}


@app.post("/api/album/remove")
def remove_album(payload: RemoveById, admin: CurrentUser = Depends(require_admin), db: Database = Depends(get_db)):
    catalog.remove_album(db, payload.id)
    return {"success": True, "message": "Album removed"}


# ---------- ARTISTS ----------

@app.post("/api/artist/add", status_code=201)
def add_artist(payload: ArtistCreate, admin: CurrentUser = Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "artist": catalog.add_artist(db, payload.model_dump())}


@app.get("/api/artist/list")
def list_artists(db: Database = Depends(get_db)):
    return {"success": True, "artists": catalog.list_artists(db)}


@app.get("/api/artist/{artist_id}")
def get_artist(artist_id: str, db: Database = Depends(get_db)):
    return {"success": True, "artist": catalog.get_artist(db, artist_id)}


@app.delete("/api/artist/delete/{artist_id}")
def delete_artist(artist_id: str, admin: CurrentUser = Depends(require_admin), db: Database = Depends(get_db)):
    catalog.delete_artist(db, artist_id)
    return {"success": True, "message": "Artist deleted"}


@app.put("/api/artist/update/{artist_id}")
def update_artist(artist_id: str, payload: ArtistUpdate, admin: CurrentUser = Depends(require_admin), db: Database = Depends(get_db)):
    artist = catalog.update_artist(db, artist_id, payload.model_dump())
    return {"success": True, "message": "Artist updated successfully", "artist": artist}


@app.post("/api/artist/bulk-add")
def bulk_add_artists(payload: ArtistBulkAdd, admin: CurrentUser = Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "artists": catalog.bulk_add_artists(db, [a.model_dump() for a in payload.artists])}


# ---------- MOVIE ALBUMS ----------

@app.post("/api/moviealbum/add", status_code=201)
def add_movie_album(payload: MovieAlbumCreate, admin: CurrentUser = Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "movie_album": catalog.add_movie_album(db, payload.model_dump(), admin.id)}


@app.get("/api/moviealbum/list")
def list_movie_albums(db: Database = Depends(get_db)):
    return {"success": True, "movie_albums": catalog.list_movie_albums(db)}


@app.get("/api/moviealbum/{movie_album_id}")
def get_movie_album(movie_album_id: str, db: Database = Depends(get_db)):
    return {"success": True, "movie_album": catalog.get_movie_album(db, movie_album_id)}


@app.put("/api/moviealbum/{movie_album_id}")
def update_movie_album(movie_album_id: str, payload: MovieAlbumUpdate, admin: CurrentUser = Depends(require_admin), db: Database = Depends(get_db)):
    movie_album = catalog.update_movie_album(db, movie_album_id, payload.model_dump())
    return {"success": True, "message": "Movie album updated successfully", "movie_album": movie_album}


@app.delete("/api/moviealbum/{movie_album_id}")
def delete_movie_album(movie_album_id: str, admin: CurrentUser = Depends(require_admin), db: Database = Depends(get_db)):
    catalog.delete_movie_album(db, movie_album_id)
    return {"success": True, "message": "Movie album deleted"}


# ---------- USER ----------

@app.get("/api/user/settings")
def get_settings(user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "settings": users.get_settings(db, user.id)}


@app.post("/api/user/settings")
def update_settings(payload: SettingsUpdate, user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    changes = payload.settings.model_dump() if payload.settings is not None else None
    settings_doc = users.update_settings(db, user.id, changes)
    return {"success": True, "message": "Settings updated successfully", "settings": settings_doc}


@app.post("/api/user/update")
def update_profile(payload: ProfileUpdate, user: CurrentUser = Depends(get_current_user), db: Database = Depends(get_db)):
    profile = users.update_profile(db, user, payload.username, payload.email, payload.avatar)
    return {"success": True, "message": "Profile updated successfully", "user": profile}


# ---------- ANALYTICS ----------

@app.get("/api/analytics")
def get_analytics(admin: CurrentUser = Depends(require_admin), db: Database = Depends(get_db)):
    return {"success": True, "analytics": analytics.get_analytics(db)}


@app.get("/test")
def test_database():
    """Database diagnostics: connection state, collections and the indexes on each."""
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Configured",
        "database_name": None,
        "collections": [],
        "indexes": {},
    }
    db = database.db
    if db is None:
        return response
    response["database_name"] = db.name
    try:
        collections = sorted(db.list_collection_names())
        response["collections"] = collections
        response["indexes"] = {name: sorted(db[name].index_information()) for name in collections}
        response["database"] = "✅ Connected"
    except PyMongoError as e:
        logger.warning("Database diagnostics failed: %s", e)
        response["database"] = "⚠️  Unreachable"
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
