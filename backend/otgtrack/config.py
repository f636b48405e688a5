"""Runtime settings read from the environment (and a local .env file)."""
import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

APP_NAME = "OTG Track"
APP_VERSION = "1.0.0"

DATA_DIR: str = os.getenv("OTGTRACK_DATA_DIR", "./data")
EXPORT_DIR: str = os.getenv("EXPORT_DIR", "/tmp/otgtrack-exports")

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON: bool = os.getenv("LOG_FORMAT", "json").lower() != "text"
# Rotating log file, off unless set (e.g. ./data/otgtrack.log)
LOG_FILE: Optional[str] = os.getenv("LOG_FILE") or None

# Comma-separated; the Vite dev server of the browser front-end by default
CORS_ORIGINS: List[str] = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if o.strip()
]

UPLOAD_EXTENSIONS = (".csv", ".xlsx")
MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_MB", "10")) * 1024 * 1024
