"""Application settings and validation."""

import os
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parent.parent


class Settings:
    ENV: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_DAYS: int
    DATABASE_URL: str
    ALLOW_INSECURE_JWT: bool
    ALLOW_DEV_CORS: bool
    AUTH_RATE_LIMIT_MAX: int
    AUTH_RATE_LIMIT_WINDOW_SECONDS: int
    API_RATE_LIMIT_MAX: int
    API_RATE_LIMIT_WINDOW_SECONDS: int
    REPUTATION_MAX_RETRIES: int
    STATIC_DIR: Path
    LOG_LEVEL: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.JWT_SECRET = os.getenv("JWT_SECRET", "change_me_for_prod")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "7"))
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BACKEND_ROOT / 'thexempt.db'}")
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        # 5 auth attempts and 100 API calls per client per 15 minutes
        self.AUTH_RATE_LIMIT_MAX = int(os.getenv("AUTH_RATE_LIMIT_MAX", "5"))
        self.AUTH_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("AUTH_RATE_LIMIT_WINDOW_SECONDS", str(15 * 60)))
        self.API_RATE_LIMIT_MAX = int(os.getenv("API_RATE_LIMIT_MAX", "100"))
        self.API_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("API_RATE_LIMIT_WINDOW_SECONDS", str(15 * 60)))
        self.REPUTATION_MAX_RETRIES = int(os.getenv("REPUTATION_MAX_RETRIES", "3"))
        self.STATIC_DIR = Path(os.getenv("STATIC_DIR", str(BACKEND_ROOT.parent / "client" / "public")))
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == "change_me_for_prod":
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        for name in ("JWT_EXPIRE_DAYS", "AUTH_RATE_LIMIT_MAX", "AUTH_RATE_LIMIT_WINDOW_SECONDS",
                     "API_RATE_LIMIT_MAX", "API_RATE_LIMIT_WINDOW_SECONDS", "REPUTATION_MAX_RETRIES"):
            if getattr(self, name) <= 0:
                raise RuntimeError(f"{name} must be a positive integer")


settings = Settings()
