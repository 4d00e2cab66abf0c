import os

from dotenv import load_dotenv

load_dotenv()


class Settings:
    DATABASE_URL = os.getenv("DATABASE_URL")
    DATABASE_NAME = os.getenv("DATABASE_NAME")
    JWT_SECRET = os.getenv("JWT_SECRET", "supersecretkey-change-in-production")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", 7))
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    PORT = int(os.getenv("PORT", 8000))

    # Client-side data-fetch layer
    API_URL = os.getenv("SOUNDLINK_API_URL", "http://localhost:8000")
    HOME_CACHE_TTL = float(os.getenv("HOME_CACHE_TTL", 5 * 60))


settings = Settings()
