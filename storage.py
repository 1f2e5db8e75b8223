import os
import re
import time
import random
import logging
from pathlib import Path

import config
from errors import StorageError

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")


def safe_filename(original: str) -> str:
    """<ms timestamp>-<random>-<original name with whitespace as underscores>."""
    base = os.path.basename((original or "").replace("\\", "/"))
    base = re.sub(r"\s+", "_", base)
    base = _UNSAFE.sub("", base).lstrip(".") or "upload"
    unique = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"{unique}-{base}"


def upload_dir() -> Path:
    return Path(config.UPLOAD_DIR)


def save_image(original_name: str, data: bytes) -> str:
    stored_name = safe_filename(original_name)
    target = upload_dir()
    try:
        target.mkdir(parents=True, exist_ok=True)
        (target / stored_name).write_bytes(data)
    except OSError as e:
        raise StorageError(f"Could not store image: {e}") from e
    logger.info(f"Stored upload {stored_name} ({len(data)} bytes)")
    return stored_name


def public_url(base_url: str, stored_name: str) -> str:
    if base_url and not base_url.endswith("/"):
        base_url += "/"
    return f"{base_url}uploads/{stored_name}"
