"""
File validation service - Checks on uploaded combat logs before parsing
"""

from fastapi import UploadFile, HTTPException
from pathlib import Path
import zipfile
import io

import config

ALLOWED_EXTENSIONS = {'.evtc', '.zevtc', '.zip'}
ARCHIVE_MEMBER_EXTENSIONS = {'.evtc', ''}
MAX_ARCHIVE_MEMBERS = 10


def _size_label(size: int) -> str:
    return f"{size // (1024 * 1024)}MB"


def validate_archive(content: bytes, max_size: int) -> None:
    """
    Check a zip upload: sane member names, at least one combat log inside,
    and a bounded uncompressed size.

    Raises:
        HTTPException: If the archive is rejected
    """
    try:
        with zipfile.ZipFile(io.BytesIO(content)) as zf:
            infos = zf.infolist()
            if not infos:
                raise HTTPException(status_code=400, detail="ZIP archive is empty")
            if len(infos) > MAX_ARCHIVE_MEMBERS:
                raise HTTPException(
                    status_code=400,
                    detail=f"ZIP contains too many files (max {MAX_ARCHIVE_MEMBERS})"
                )

            for info in infos:
                if info.filename.startswith('/') or '..' in info.filename:
                    raise HTTPException(status_code=400, detail="ZIP contains invalid file paths")
                # arcdps names the member after the log without an extension
                if Path(info.filename).suffix.lower() not in ARCHIVE_MEMBER_EXTENSIONS:
                    raise HTTPException(
                        status_code=400,
                        detail="ZIP must only contain .evtc combat logs"
                    )

            total_size = sum(info.file_size for info in infos)
            if total_size > max_size * 4:
                raise HTTPException(status_code=413, detail="ZIP uncompressed size too large")
    except zipfile.BadZipFile:
        raise HTTPException(status_code=400, detail="Invalid or corrupted ZIP file")


async def validate_upload_file(file: UploadFile, max_size: int = None) -> bytes:
    """
    Validate an uploaded combat log

    Args:
        file: Uploaded file
        max_size: Size limit in bytes, defaults to EVTC_MAX_FILE_SIZE

    Returns:
        File content as bytes

    Raises:
        HTTPException: If validation fails
    """
    max_size = max_size or config.MAX_FILE_SIZE

    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    file_ext = Path(file.filename).suffix.lower()
    if file_ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )

    content = await file.read()
    file_size = len(content)

    if file_size > max_size:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {_size_label(max_size)}"
        )

    if file_size == 0:
        raise HTTPException(status_code=400, detail="Empty file")

    # .zevtc is a zip in practice; only run archive checks on zip content
    if content[:2] == b'PK':
        validate_archive(content, max_size)
    elif file_ext == '.zip':
        raise HTTPException(status_code=400, detail="Invalid or corrupted ZIP file")

    return content
