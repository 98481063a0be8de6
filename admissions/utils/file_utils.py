"""
Helpers for uploaded files on local storage
"""

from pathlib import Path
from typing import BinaryIO, Optional
import logging
import shutil
import uuid

from admissions.config import settings
from admissions.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 64


def application_upload_dir(application_id: str) -> Path:
    """Directory holding every stored file of one application"""
    return Path(settings.upload_dir) / "applications" / application_id


def save_upload(source: BinaryIO, application_id: str, extension: str, max_bytes: int) -> tuple:
    """
    Streams an upload to disk under an opaque generated name.

    Args:
        source: File-like object opened for reading
        application_id: Owning application
        extension: Lower-case extension including the dot
        max_bytes: Size ceiling; exceeding it removes the partial file

    Returns:
        tuple: (stored path, size in bytes)
    """
    folder = application_upload_dir(application_id)
    folder.mkdir(parents=True, exist_ok=True)
    filepath = folder / f"{uuid.uuid4().hex}{extension}"
    size = 0

    try:
        with open(filepath, "wb") as buffer:
            while True:
                chunk = source.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_bytes:
                    raise ValidationError(
                        f"File exceeds the maximum size of {max_bytes // (1024 * 1024)}MB"
                    )
                buffer.write(chunk)
    except BaseException:
        remove_file(str(filepath))
        remove_empty_dir(folder)
        raise

    return str(filepath), size


def remove_file(path: Optional[str]) -> bool:
    """Deletes a stored file, ignoring files that are already gone"""
    if not path:
        return False
    try:
        Path(path).unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.error(f"❌ Could not remove stored file {path}: {e}")
        return False


def remove_empty_dir(path: Path) -> bool:
    """Removes a folder only when nothing is stored in it"""
    try:
        path.rmdir()
        return True
    except OSError:
        return False


def remove_application_dir(application_id: str):
    path = Path(settings.upload_dir) / "applications" / application_id
    if path.exists():
        shutil.rmtree(path, ignore_errors=True)
