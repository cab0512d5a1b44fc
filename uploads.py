import logging
import os
import uuid

from fastapi import HTTPException, UploadFile
from fastapi.staticfiles import StaticFiles

from config import UPLOAD_DIR, MAX_UPLOAD_BYTES

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads/"
CHUNK_SIZE = 1024 * 1024


async def save_upload(file: UploadFile) -> str:
    """
    Stream an uploaded file into UPLOAD_DIR under a random name.

    Returns the relative URL the file is served under. Oversized files are
    removed again and rejected with 413.
    """
    if not file or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    os.makedirs(UPLOAD_DIR, exist_ok=True)
    ext = os.path.splitext(file.filename)[1].lower()
    stored_name = f"{uuid.uuid4().hex}{ext}"
    path = os.path.join(UPLOAD_DIR, stored_name)

    total = 0
    with open(path, "wb") as out:
        while True:
            chunk = await file.read(CHUNK_SIZE)
            if not chunk:
                break
            total += len(chunk)
            if total > MAX_UPLOAD_BYTES:
                break
            out.write(chunk)
    if total > MAX_UPLOAD_BYTES:
        os.remove(path)
        raise HTTPException(status_code=413, detail=f"File too large. Maximum size: {MAX_UPLOAD_BYTES // (1024 * 1024)}MB")

    logger.info("Stored upload %s (%d bytes)", stored_name, total)
    return URL_PREFIX + stored_name


def remove_upload(url: str) -> bool:
    """Delete the file behind an attachment URL. Returns False when it was already gone."""
    # External links in an attachment list are never ours to delete
    if not url.startswith(URL_PREFIX):
        return False
    filename = os.path.basename(url[len(URL_PREFIX):])
    if not filename:
        return False
    path = os.path.join(UPLOAD_DIR, filename)
    if os.path.exists(path):
        os.remove(path)
        return True
    return False


class AttachmentFiles(StaticFiles):
    """Serves stored uploads as downloads so the browser never renders them inline."""

    def file_response(self, *args, **kwargs):
        response = super().file_response(*args, **kwargs)
        response.headers["Content-Disposition"] = "attachment"
        response.headers["X-Content-Type-Options"] = "nosniff"
        return response
