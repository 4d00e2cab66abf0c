"""
Database Schemas for SoundLink

Each Pydantic model represents a collection in the MongoDB database.
Collection name is the lowercase of the class name.

- Song -> "song"
- Album -> "album"
- Artist -> "artist"
- MovieAlbum -> "moviealbum"
- Playlist -> "playlist"
- Favorite -> "favorite"
- Play -> "play"
- Comment -> "comment"
- User -> "user"
- UserSettings -> "usersettings"

References to other documents are stored as string ids.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Song(BaseModel):
    """
    Songs collection schema
    """
    name: str = Field(..., description="Song title")
    desc: str = Field("", description="Short description")
    album: Optional[str] = Field(None, description="Owning album id or name")
    artist: Optional[str] = Field(None, description="Artist document id")
    file: str = Field(..., description="Public URL of the audio file")
    image: str = Field(..., description="Cover image URL")
    duration: Optional[str] = Field(None, description="Duration as m:ss")
    created_by: Optional[str] = Field(None, description="Admin user id")


class Album(BaseModel):
    """
    Albums collection schema
    """
    name: str = Field(..., description="Album name")
    desc: str = Field("", description="Short description")
    image: str = Field(..., description="Cover image URL")
    bg_colour: str = Field("#121212", description="Background colour for the album page")
    artist: Optional[str] = Field(None, description="Artist document id")
    created_by: Optional[str] = Field(None, description="Admin user id")


class Artist(BaseModel):
    name: str = Field(..., description="Artist name")
    bio: str = Field("", description="Biography")
    image: Optional[str] = Field(None, description="Portrait URL")


class MovieAlbum(BaseModel):
    """
    Movie soundtrack albums
    """
    title: str = Field(..., description="Movie title")
    director: Optional[str] = None
    year: Optional[int] = Field(None, ge=1880)
    genre: Optional[str] = None
    description: Optional[str] = None
    cover_image: str = Field("", description="Cover image URL")
    songs: List[str] = Field(default_factory=list, description="Song document ids")
    created_by: Optional[str] = None


class Playlist(BaseModel):
    """
    Playlists collection schema
    """
    name: str = Field(..., description="Playlist name")
    user: str = Field(..., description="Owner user id")
    songs: List[str] = Field(default_factory=list, description="Song document ids, no duplicates")


class Favorite(BaseModel):
    user: str
    song: Optional[str] = None
    album: Optional[str] = None


class Play(BaseModel):
    """
    Append-only play log
    """
    user: str = Field(..., description="Listener user id")
    song: str = Field(..., description="Played song id")
    played_at: datetime = Field(default_factory=_utcnow)


class Comment(BaseModel):
    user: str
    song: Optional[str] = None
    album: Optional[str] = None
    text: str


class User(BaseModel):
    """
    Users collection schema
    """
    username: str = Field(..., description="Unique display name")
    email: str = Field(..., description="Unique, lowercased email address")
    password: str = Field(..., description="BCrypt password hash")
    role: str = Field("user", pattern="^(user|admin)$")
    avatar: str = Field("/default-avatar.svg", description="Profile image URL")


class UserSettings(BaseModel):
    """
    Per-user preferences, one document per user. Missing documents read as
    these defaults.
    """
    user: str = Field(..., description="Owner user id")
    dark_mode: bool = True
    notifications: bool = True
    private_account: bool = False
    show_listening_activity: bool = True
    autoplay: bool = True
    crossfade: bool = False
    normalize_volume: bool = False
    language: str = "english"
    quality: str = "high"


# ---------- REQUEST BODIES ----------

class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PlaylistCreate(_Body):
    name: str = Field(..., min_length=1)


class PlaylistSongChange(_Body):
    playlist_id: str = Field(..., alias="playlistId")
    song_id: str = Field(..., alias="songId")


class PlaylistDelete(_Body):
    playlist_id: str = Field(..., alias="playlistId")


class PlayCreate(_Body):
    song: str


class FavoriteChange(_Body):
    song_id: Optional[str] = Field(None, alias="songId")
    album_id: Optional[str] = Field(None, alias="albumId")


class CommentCreate(_Body):
    text: Optional[str] = None
    song_id: Optional[str] = Field(None, alias="songId")
    album_id: Optional[str] = Field(None, alias="albumId")


class CommentDelete(_Body):
    comment_id: str = Field(..., alias="commentId")


class RegisterRequest(_Body):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = Field(None, pattern="^(user|admin)$")


class LoginRequest(_Body):
    email: Optional[str] = None
    password: Optional[str] = None


class SongCreate(_Body):
    name: str
    desc: str = ""
    album: Optional[str] = None
    artist: Optional[str] = None
    file: str
    image: str
    duration: Optional[str] = None


class SongEdit(_Body):
    id: str
    name: Optional[str] = None
    desc: Optional[str] = None
    album: Optional[str] = None
    artist: Optional[str] = None
    image: Optional[str] = None
    file: Optional[str] = None
    duration: Optional[str] = None


class AlbumCreate(_Body):
    name: str
    desc: str = ""
    image: str
    bg_colour: str = Field("#121212", alias="bgColour")
    artist: Optional[str] = None


class ArtistCreate(_Body):
    name: str
    bio: str = ""
    image: Optional[str] = None


class MovieAlbumCreate(_Body):
    title: str
    director: Optional[str] = None
    year: Optional[int] = Field(None, ge=1880)
    genre: Optional[str] = None
    description: Optional[str] = None
    cover_image: str = Field("", alias="coverImage")
    songs: List[str] = Field(default_factory=list)


class RemoveById(_Body):
    id: str


class SongBulkAdd(_Body):
    songs: List[SongCreate] = Field(default_factory=list)


class ArtistUpdate(_Body):
    name: Optional[str] = None
    bio: Optional[str] = None
    image: Optional[str] = None


class ArtistBulkAdd(_Body):
    artists: List[ArtistCreate] = Field(default_factory=list)


class MovieAlbumUpdate(_Body):
    title: Optional[str] = None
    director: Optional[str] = None
    year: Optional[int] = Field(None, ge=1880)
    genre: Optional[str] = None
    description: Optional[str] = None
    cover_image: Optional[str] = Field(None, alias="coverImage")


class SettingsChange(_Body):
    dark_mode: Optional[bool] = Field(None, alias="darkMode")
    notifications: Optional[bool] = None
    private_account: Optional[bool] = Field(None, alias="privateAccount")
    show_listening_activity: Optional[bool] = Field(None, alias="showListeningActivity")
    autoplay: Optional[bool] = None
    crossfade: Optional[bool] = None
    normalize_volume: Optional[bool] = Field(None, alias="normalizeVolume")
    language: Optional[str] = None
    quality: Optional[str] = None


class SettingsUpdate(_Body):
    settings: Optional[SettingsChange] = None


class ProfileUpdate(_Body):
    username: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None
