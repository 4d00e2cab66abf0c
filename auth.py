import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import settings
from database import create_document, find_by_id, serialize
from schemas import User as UserSchema

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def create_token(user_id: str, role: str = "user", expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=settings.JWT_EXPIRE_DAYS))
    to_encode = {"sub": user_id, "role": role, "exp": expire}
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token.")


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> CurrentUser:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="No token provided.")
    payload = verify_token(credentials.credentials)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token.")
    return CurrentUser(id=str(user_id), role=payload.get("role") or "user")


def get_optional_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> Optional[CurrentUser]:
    if credentials is None:
        return None
    return get_current_user(credentials)


def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required.")
    return current_user


def _public(user: dict) -> dict:
    user.pop("password", None)
    return user


def register(db: Database, username: Optional[str], email: Optional[str], password: Optional[str], role: Optional[str] = None, creator: Optional[CurrentUser] = None) -> dict:
    """Only an authenticated admin may create another admin account."""
    if not username or not email or not password:
        raise HTTPException(status_code=400, detail="All fields are required.")
    if role == "admin" and (creator is None or not creator.is_admin):
        raise HTTPException(status_code=403, detail="Admin access required.")
    email = email.strip().lower()
    try:
        if db["user"].find_one({"$or": [{"email": email}, {"username": username}]}):
            raise HTTPException(status_code=400, detail="User already exists.")
        user = UserSchema(username=username.strip(), email=email, password=hash_password(password), role=role or "user")
        created = create_document(db, "user", user)
    except PyMongoError:
        logger.exception("Registration failed for %s", email)
        raise HTTPException(status_code=500, detail="Registration failed.")
    logger.info("Registered user %s", created["id"])
    return _public(created)


def login(db: Database, email: Optional[str], password: Optional[str]) -> dict:
    if not email or not password:
        raise HTTPException(status_code=400, detail="All fields are required.")
    try:
        user = db["user"].find_one({"email": email.strip().lower()})
    except PyMongoError:
        logger.exception("Login lookup failed")
        raise HTTPException(status_code=500, detail="Login failed.")
    if not user or not verify_password(password, user.get("password", "")):
        raise HTTPException(status_code=400, detail="Invalid credentials.")
    user = _public(serialize(user))
    token = create_token(user["id"], user.get("role", "user"))
    return {
        "token": token,
        "user": {"id": user["id"], "username": user["username"], "email": user["email"], "role": user.get("role", "user")},
    }


def get_me(db: Database, current_user: CurrentUser) -> dict:
    try:
        user = find_by_id(db, "user", current_user.id, {"password": 0})
    except PyMongoError:
        logger.exception("Failed to load user %s", current_user.id)
        raise HTTPException(status_code=500, detail="Failed to get user info.")
    if not user:
        raise HTTPException(status_code=404, detail="User not found.")
    return user
