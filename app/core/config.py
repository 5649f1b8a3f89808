"""
Configuration settings for the application
"""

import os
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./waitlist.db")

    # Restaurant
    RESTAURANT_CAPACITY: int = 10
    SERVICE_TIME_PER_PERSON_SECONDS: float = 3
    CHECKIN_TIMEOUT_SECONDS: float = 5 * 60

    # CORS
    ALLOW_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8000",
    ]

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
