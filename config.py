import os
from dataclasses import dataclass
from typing import Optional

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


@dataclass(frozen=True)
class Settings:
    """
    Service settings read from the environment once at startup.

    Attributes:
        host: Interface uvicorn binds to
        port: Port uvicorn listens on
        max_upload_bytes: Largest accepted upload
        upload_dir: Directory for temporary upload files
        log_dir: Directory for the daily log file
        mapping_path: Optional JSON file replacing the built-in field mapping
    """
    host: str = "0.0.0.0"
    port: int = 5001
    max_upload_bytes: int = 10 * 1024 * 1024
    upload_dir: str = os.path.join(BASE_DIR, "uploads")
    log_dir: str = os.path.join(BASE_DIR, "logs")
    mapping_path: Optional[str] = None


def get_settings() -> Settings:
    defaults = Settings()
    max_mb = float(os.getenv("EXCEL_PARSER_MAX_UPLOAD_MB", "10"))
    return Settings(
        host=os.getenv("EXCEL_PARSER_HOST", defaults.host),
        port=int(os.getenv("EXCEL_PARSER_PORT", str(defaults.port))),
        max_upload_bytes=int(max_mb * 1024 * 1024),
        upload_dir=os.getenv("EXCEL_PARSER_UPLOAD_DIR", defaults.upload_dir),
        log_dir=os.getenv("EXCEL_PARSER_LOG_DIR", defaults.log_dir),
        mapping_path=os.getenv("EXCEL_PARSER_MAPPING_PATH") or None,
    )
