from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from time_tracking_app.config.user_settings_store import UserSettingsStore

BASE_DIR = Path(__file__).resolve().parents[3]
ENV_PATH = BASE_DIR / ".env"
load_dotenv(ENV_PATH)

APP_NAME = os.getenv("APP_NAME", "Student Time Tracking")
user_settings_store = UserSettingsStore()

APP_DATA_DIR = Path(user_settings_store.get("app_data_dir", str(user_settings_store.pointer_dir))).expanduser()
APP_DATA_DIR.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class Settings:
    app_name: str = APP_NAME
    database_path: Path = Path(
        os.getenv("DATABASE_PATH", str(APP_DATA_DIR / "time_tracking.db"))
    )
    qr_camera_index: int = int(os.getenv("QR_CAMERA_INDEX", "0"))
    scan_cooldown_seconds: float = float(
        os.getenv("SCAN_COOLDOWN_SECONDS", user_settings_store.get("scan_cooldown_seconds", 2.0))
    )
    recent_scan_limit: int = int(
        os.getenv("RECENT_SCAN_LIMIT", user_settings_store.get("recent_scan_limit", 10))
    )
    continuous_mode: bool = bool(user_settings_store.get("continuous_mode", True))
    default_admin_password: str = os.getenv("DEFAULT_ADMIN_PASSWORD", "admin123")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    def describe(self) -> str:
        return (
            f"Settings(app_name={self.app_name}, "
            f"database_path={self.database_path}, "
            f"qr_camera_index={self.qr_camera_index}, "
            f"scan_cooldown_seconds={self.scan_cooldown_seconds}, "
            f"recent_scan_limit={self.recent_scan_limit}, "
            f"continuous_mode={self.continuous_mode}, "
            f"log_level={self.log_level})"
        )


settings = Settings()


def refresh_settings_from_store() -> None:
    """Rebuild the settings object from the current user store values."""

    global settings, APP_DATA_DIR  # noqa: PLW0603 - module-level singletons

    user_settings_store.reload()

    app_data_dir = Path(user_settings_store.get("app_data_dir", str(user_settings_store.pointer_dir))).expanduser()
    app_data_dir.mkdir(parents=True, exist_ok=True)

    APP_DATA_DIR = app_data_dir

    settings = Settings(
        app_name=APP_NAME,
        database_path=Path(os.getenv("DATABASE_PATH", str(APP_DATA_DIR / "time_tracking.db"))),
        qr_camera_index=settings.qr_camera_index,
        scan_cooldown_seconds=float(
            os.getenv("SCAN_COOLDOWN_SECONDS", user_settings_store.get("scan_cooldown_seconds", 2.0))
        ),
        recent_scan_limit=int(
            os.getenv("RECENT_SCAN_LIMIT", user_settings_store.get("recent_scan_limit", 10))
        ),
        continuous_mode=bool(user_settings_store.get("continuous_mode", True)),
        default_admin_password=settings.default_admin_password,
        log_level=settings.log_level,
    )
