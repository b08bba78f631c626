"""
Image upload storage on the local filesystem.

- Validate uploads by extension before anything is written
- Read file bytes with a size limit
- Store under a collision-resistant name and delete by name

Profile images and product images live in separate directories and are
served back as static files under `/uploads/profile` and `/uploads/products`.
"""

from __future__ import annotations

import logging
import secrets
import time
from pathlib import Path

from fastapi import HTTPException, UploadFile

from .config import env_int, env_str

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png"}

DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024  # 5 MiB

PROFILE_URL_PREFIX = "/uploads/profile"
PRODUCT_URL_PREFIX = "/uploads/products"

logger = logging.getLogger(__name__)


def max_upload_bytes() -> int:
    return env_int("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)


def upload_root() -> Path:
    return Path(env_str("UPLOAD_DIR", "uploads"))


def profile_dir() -> Path:
    return upload_root() / "profile"


def product_dir() -> Path:
    return upload_root() / "products"


def ensure_upload_dirs() -> None:
    for directory in (profile_dir(), product_dir()):
        directory.mkdir(parents=True, exist_ok=True)


def _file_ext(filename: str) -> str:
    return Path(filename).suffix.lower()


def validate_image(file: UploadFile) -> str:
    """
    Return the normalized extension if this upload is an accepted image type.

    We check the filename extension because `content_type` is often missing
    or wrong in practice.
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="Missing filename.")

    ext = _file_ext(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}'. Allowed: {sorted(ALLOWED_EXTENSIONS)}",
        )
    return ext


def request_stamp() -> str:
    """
    Millisecond timestamp shared by all files of one request.
    """
    return str(int(time.time() * 1000))


def unique_filename(ext: str, *, stamp: str, directory: Path, taken: set[str]) -> str:
    """
    `<stamp>-<9 random digits><ext>`, re-drawn until unused in this batch and on disk.
    """
    while True:
        name = f"{stamp}-{secrets.randbelow(10**9):09d}{ext}"
        if name not in taken and not (directory / name).exists():
            return name


async def read_upload_bytes(file: UploadFile, max_bytes: int) -> bytes:
    chunk_size = 1024 * 1024  # 1 MiB
    buf = bytearray()

    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Max is {max_bytes} bytes.",
            )

    return bytes(buf)


async def save_images(files: list[UploadFile], directory: Path) -> list[str]:
    """
    Validate and store `files`, returning stored filenames in upload order.

    All files are validated first so a bad extension anywhere in the batch
    rejects the request before anything reaches disk. If a later file fails
    (size limit, IO error), files already written by this call are removed.
    """
    extensions = [validate_image(f) for f in files]
    if not files:
        return []

    directory.mkdir(parents=True, exist_ok=True)
    stamp = request_stamp()
    limit = max_upload_bytes()
    stored: list[str] = []

    try:
        for file, ext in zip(files, extensions):
            data = await read_upload_bytes(file, max_bytes=limit)
            name = unique_filename(ext, stamp=stamp, directory=directory, taken=set(stored))
            (directory / name).write_bytes(data)
            stored.append(name)
    except BaseException:
        discard_files(directory, stored)
        raise

    logger.info("images_stored directory=%s count=%s", directory, len(stored))
    return stored


def delete_file(directory: Path, filename: str | None) -> bool:
    """
    Best-effort removal. Never raises; failures are logged.
    """
    if not filename:
        return False
    # Stored names never contain path separators.
    path = directory / Path(filename).name
    try:
        path.unlink()
    except FileNotFoundError:
        logger.warning("upload_delete_missing path=%s", path)
        return False
    except OSError:
        logger.warning("upload_delete_failed path=%s", path, exc_info=True)
        return False
    return True


def discard_files(directory: Path, filenames: list[str]) -> None:
    for name in filenames:
        delete_file(directory, name)
