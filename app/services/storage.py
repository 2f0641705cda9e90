import logging
import os
import shutil
import uuid
from dataclasses import dataclass

from fastapi import HTTPException, UploadFile

from app.core.config import settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp"}
_EXT_BY_TYPE = {"image/jpeg": ".jpg", "image/png": ".png", "image/webp": ".webp"}


@dataclass(frozen=True)
class StoredImage:
    url: str
    path: str
    content_type: str
    size_bytes: int


def appointment_dir(appointment_id: str) -> str:
    return os.path.join(settings.UPLOAD_DIR, appointment_id)


def public_url(appointment_id: str, filename: str) -> str:
    return f"/public/appointments/{appointment_id}/photos/{filename}"


def save_evidence_image(appointment_id: str, file: UploadFile) -> StoredImage:
    """
    Stream an evidence image to disk, enforcing type and max size.
    Returns the stored reference; nothing is recorded against the appointment.
    """
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Only jpeg/png/webp images are allowed")

    folder = appointment_dir(appointment_id)
    os.makedirs(folder, exist_ok=True)

    filename = f"{uuid.uuid4()}{_EXT_BY_TYPE[file.content_type]}"
    path = os.path.join(folder, filename)

    max_bytes = settings.MAX_UPLOAD_MB * 1024 * 1024
    bytes_written = 0

    try:
        with open(path, "wb") as out:
            while True:
                chunk = file.file.read(1024 * 1024)  # 1MB chunks
                if not chunk:
                    break
                bytes_written += len(chunk)
                if bytes_written > max_bytes:
                    raise HTTPException(
                        status_code=413,
                        detail=f"File too large. Max is {settings.MAX_UPLOAD_MB}MB.",
                    )
                out.write(chunk)
    except HTTPException:
        remove_file(path)
        raise
    except OSError as e:
        remove_file(path)
        logger.exception("Evidence upload failed for appointment %s", appointment_id)
        raise HTTPException(status_code=500, detail=f"Upload failed: {e}")

    if bytes_written == 0:
        remove_file(path)
        raise HTTPException(status_code=400, detail="Empty file")

    return StoredImage(
        url=public_url(appointment_id, filename),
        path=path,
        content_type=file.content_type,
        size_bytes=bytes_written,
    )


def resolve_photo_path(appointment_id: str, filename: str) -> str:
    """Absolute path of a stored image, refusing anything outside the appointment's folder."""
    folder = os.path.abspath(appointment_dir(appointment_id))
    abs_path = os.path.abspath(os.path.join(folder, filename))
    if not abs_path.startswith(folder + os.sep):
        raise HTTPException(status_code=400, detail="Invalid file path")
    if not os.path.exists(abs_path):
        raise HTTPException(status_code=404, detail="File missing on server")
    return abs_path


def remove_file(path: str) -> None:
    if os.path.exists(path):
        try:
            os.remove(path)
        except OSError:
            logger.warning("Could not remove %s", path)


def remove_appointment_files(appointment_id: str) -> None:
    shutil.rmtree(appointment_dir(appointment_id), ignore_errors=True)
