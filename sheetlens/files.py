from datetime import UTC, datetime
from pathlib import PurePosixPath
import os
import re

from sheetlens.errors import FileTooLarge, UnsupportedFileType, ValidationError

SPREADSHEET_CONTENT_TYPES = {
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}
SPREADSHEET_EXTENSIONS = {".xls", ".xlsx"}

MAX_FILENAME_LENGTH = 255
SAFE_FILENAME_RE = re.compile(r"^[\w\-. ()]+$")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value)
        return parsed if parsed > 0 else default
    except ValueError:
        return default


MAX_UPLOAD_SIZE_BYTES = _env_int("MAX_UPLOAD_SIZE_BYTES", 10 * 1024 * 1024)


def sanitize_filename(raw: str | None) -> str:
    """Validate and sanitize a user-supplied filename."""
    if not raw:
        raise ValidationError("Filename is required")

    # Strip path components (defence against path-traversal)
    name = PurePosixPath(raw).name
    # Also handle Windows-style backslash paths
    name = name.split("\\")[-1].strip()

    if not name or name in (".", ".."):
        raise ValidationError("Invalid filename")

    if len(name) > MAX_FILENAME_LENGTH:
        raise ValidationError("Filename too long")

    if not SAFE_FILENAME_RE.match(name):
        raise ValidationError("Filename contains invalid characters")

    return name


def validate_spreadsheet(filename: str, content_type: str | None, size: int | None) -> None:
    """Accept Excel workbooks by content type or by extension, up to the size cap."""
    ext = PurePosixPath(filename).suffix.lower()
    if content_type not in SPREADSHEET_CONTENT_TYPES and ext not in SPREADSHEET_EXTENSIONS:
        raise UnsupportedFileType("Please select a valid Excel file (.xls or .xlsx)")

    if size is not None and size > MAX_UPLOAD_SIZE_BYTES:
        limit_mb = MAX_UPLOAD_SIZE_BYTES // (1024 * 1024)
        raise FileTooLarge(f"File size must be less than {limit_mb}MB")


def storage_filename(original: str, now: datetime | None = None) -> str:
    """Collision-resistant storage name: ``<epoch-millis>_<original>``."""
    moment = now or datetime.now(UTC)
    return f"{int(moment.timestamp() * 1000)}_{original}"
