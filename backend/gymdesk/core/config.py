from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List
import os


class Settings(BaseSettings):
    APP_NAME: str = "GymDesk"
    DEBUG: bool = False

    DATABASE_PATH: str = os.getenv("DATABASE_PATH", "data/gymdesk.db")

    @property
    def DATABASE_URL(self) -> str:
        # Always resolve path relative to backend directory, not current working directory
        db_path = self.DATABASE_PATH
        if not os.path.isabs(db_path):
            # backend/gymdesk/core/config.py -> backend
            backend_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
            db_path = os.path.join(backend_dir, db_path)
        return f"sqlite:///{os.path.abspath(db_path)}"

    SECRET_KEY: str = os.getenv("SECRET_KEY", "gymdesk-dev-secret-change-me")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12  # one working day

    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")
    MAX_UPLOAD_SIZE: int = 5 * 1024 * 1024  # 5MB

    @property
    def UPLOAD_DIR_ABS(self) -> str:
        """Get absolute path for upload directory."""
        upload_dir = self.UPLOAD_DIR
        if os.path.isabs(upload_dir):
            return upload_dir
        backend_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
        return os.path.join(backend_dir, upload_dir)

    # Membership lifecycle
    EXPIRING_SOON_DAYS: int = 7
    DEFAULT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 200
    RENEWAL_BATCH_WORKERS: int = 4

    GYM_NAME: str = os.getenv("GYM_NAME", "Libaax Fitness")

    # WhatsApp gateway (Bawa send-text API)
    WHATSAPP_ENABLED: bool = os.getenv("WHATSAPP_ENABLED", "false").lower() == "true"
    WHATSAPP_API_URL: str = os.getenv("WHATSAPP_API_URL", "https://bawa.app/api/v1/send-text")
    WHATSAPP_TOKEN: str = os.getenv("WHATSAPP_TOKEN", "")
    WHATSAPP_INSTANCE_ID: str = os.getenv("WHATSAPP_INSTANCE_ID", "")
    WHATSAPP_TIMEOUT: float = 10.0
    WHATSAPP_COUNTRY_CODE: str = "252"

    HOST: str = "127.0.0.1"
    PORT: int = 8765

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"  # Ignore extra environment variables
    )


settings = Settings()
