"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent


class Settings:
    ENV: str
    DATABASE_URL: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    ALLOW_INSECURE_JWT: bool
    ALLOW_DEV_CORS: bool
    DB_TIMEOUT_SECONDS: float
    STORE_LOCK_TIMEOUT_SECONDS: float
    LOG_LEVEL: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'trainingstore.db'}")
        self.JWT_SECRET = os.getenv("JWT_SECRET", "change_me_for_prod")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.DB_TIMEOUT_SECONDS = float(os.getenv("DB_TIMEOUT_SECONDS", "15"))
        self.STORE_LOCK_TIMEOUT_SECONDS = float(os.getenv("STORE_LOCK_TIMEOUT_SECONDS", "30"))
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == "change_me_for_prod":
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if self.DB_TIMEOUT_SECONDS <= 0 or self.STORE_LOCK_TIMEOUT_SECONDS <= 0:
            raise RuntimeError("DB_TIMEOUT_SECONDS and STORE_LOCK_TIMEOUT_SECONDS must be positive")


settings = Settings()
