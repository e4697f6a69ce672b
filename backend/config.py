# backend/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from dotenv import load_dotenv

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    DATABASE_URL: str = "sqlite:///./database_dental.db"
    FRONTEND_URL: str = "http://localhost:5173"

    # Server-side sessions, one week by default
    SESSION_EXPIRE_SECONDS: int = 60 * 60 * 24 * 7
    SESSION_COOKIE_NAME: str = "dental_session"
    SESSION_COOKIE_SECURE: bool = True

    # Failed login lockout window
    LOGIN_MAX_ATTEMPTS: int = 5
    LOGIN_LOCKOUT_MINUTES: int = 15

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=str(env_path), extra="ignore")

settings = Settings()
