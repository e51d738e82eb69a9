"""Receipt uploads for reimbursement items.

Uploaded parts are written to disk before the submission transaction starts,
then grouped by the line item they were attached to. The form field name
carries the item position: ``item_<N>_attachments``.
"""
import logging
import os
import re
import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from fastapi import HTTPException, UploadFile, status

from app.core.config import settings

logger = logging.getLogger(__name__)

ITEM_FIELD_PATTERN = re.compile(r"^item_(\d+)_attachments$")

CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class StoredFile:
    field_name: str
    original_name: str
    path: str
    size: int
    content_type: Optional[str] = None


def organize_item_files(files: Optional[Iterable[StoredFile]]) -> Dict[int, List[StoredFile]]:
    """Map line-item index -> files uploaded against it, in upload order.

    Files whose field name does not follow the item convention are left out.
    """
    item_files_map: Dict[int, List[StoredFile]] = {}
    if not files:
        return item_files_map

    for stored in files:
        match = ITEM_FIELD_PATTERN.match(stored.field_name or "")
        if not match:
            continue
        item_index = int(match.group(1))
        item_files_map.setdefault(item_index, []).append(stored)

    return item_files_map


def get_file_extension(filename: str) -> str:
    """Extract file extension from filename"""
    return os.path.splitext(filename)[1].lower()


async def store_upload(field_name: str, file: UploadFile, upload_dir: Optional[str] = None) -> StoredFile:
    """Write one uploaded part to the upload directory under a unique name."""
    target_dir = upload_dir or settings.UPLOAD_DIR
    os.makedirs(target_dir, exist_ok=True)

    original_name = file.filename or "upload"
    stored_name = f"{uuid.uuid4().hex}{get_file_extension(original_name)}"
    path = os.path.join(target_dir, stored_name)

    size = 0
    try:
        with open(path, "wb") as out:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > settings.MAX_UPLOAD_SIZE:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"File {original_name} exceeds maximum allowed size of "
                               f"{settings.MAX_UPLOAD_SIZE} bytes",
                    )
                out.write(chunk)
    except Exception:
        _remove_quietly(path)
        raise

    logger.debug(f"Stored upload {original_name} ({size} bytes) at {path}")
    return StoredFile(
        field_name=field_name,
        original_name=original_name,
        path=path,
        size=size,
        content_type=file.content_type,
    )


async def store_uploads(parts: Iterable, upload_dir: Optional[str] = None) -> List[StoredFile]:
    """Store every ``(field_name, UploadFile)`` pair. Already stored files are removed if one fails."""
    stored: List[StoredFile] = []
    try:
        for field_name, upload in parts:
            stored.append(await store_upload(field_name, upload, upload_dir))
    except Exception:
        discard_uploads(stored)
        raise
    return stored


def discard_uploads(files: Iterable[StoredFile]) -> None:
    """Remove stored files for a submission that was not persisted."""
    for stored in files:
        _remove_quietly(stored.path)


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove upload {path}: {e}")
