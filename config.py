import os
import sys
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")
PORT = int(os.getenv("PORT", 5000))
SECRET_KEY = os.getenv("SECRET_KEY")
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(BASE_DIR / "uploads")))
STATIC_DIR = BASE_DIR / "static"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Bearer tokens expire 8 hours after issuance
TOKEN_MAX_AGE = 8 * 60 * 60

ALLOWED_ORIGINS = [
    "http://127.0.0.1:5500",
    "http://localhost:5500",
    "http://127.0.0.1:8080",
    "http://localhost:8080",
]

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"


_logging_configured = False


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure the root logger once with a stdout handler."""
    global _logging_configured
    if _logging_configured:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level.upper())
    _logging_configured = True


def get_secret_key() -> str:
    if SECRET_KEY:
        return SECRET_KEY
    logging.getLogger(__name__).warning("SECRET_KEY not set, using development secret")
    return "dev-secret-change-me"
