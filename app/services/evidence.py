"""
Photo evidence: a per-submission staging buffer and the permanent ledger.

Staged photos belong to one worker's in-progress submission and are visible
to nobody else. Committing appends them to the appointment's ledger, which
is never edited or trimmed afterwards.
"""
import logging
import threading
from typing import Iterable, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import NotFound, TooManyPhotos
from app.models.photo import EvidencePhoto
from app.services import activity
from app.services.storage import StoredImage, remove_file

logger = logging.getLogger(__name__)

PhotoRef = Union[StoredImage, str]


class StagingArea:
    def __init__(self, limit: int | None = None):
        self._lock = threading.Lock()
        self._pending: dict[tuple[str, str], list[PhotoRef]] = {}
        self.limit = limit

    def stage(self, appointment_id: str, worker_id: str, ref: PhotoRef) -> list[PhotoRef]:
        limit = self.limit or settings.MAX_STAGED_PHOTOS
        with self._lock:
            items = self._pending.setdefault((appointment_id, worker_id), [])
            if len(items) >= limit:
                raise TooManyPhotos(f"At most {limit} photos per submission")
            items.append(ref)
            return list(items)

    def unstage(self, appointment_id: str, worker_id: str, index: int) -> PhotoRef:
        with self._lock:
            items = self._pending.get((appointment_id, worker_id), [])
            if index < 0 or index >= len(items):
                raise NotFound("No staged photo at that position")
            ref = items.pop(index)
        if isinstance(ref, StoredImage):
            remove_file(ref.path)
        return ref

    def pending(self, appointment_id: str, worker_id: str) -> list[PhotoRef]:
        with self._lock:
            return list(self._pending.get((appointment_id, worker_id), []))

    def clear(self, appointment_id: str, worker_id: str) -> None:
        with self._lock:
            self._pending.pop((appointment_id, worker_id), None)

    def drop_appointment(self, appointment_id: str) -> None:
        with self._lock:
            for key in [k for k in self._pending if k[0] == appointment_id]:
                del self._pending[key]


staging = StagingArea()


def _as_row(appointment_id: str, worker_id: str | None, ref: PhotoRef) -> EvidencePhoto:
    if isinstance(ref, StoredImage):
        return EvidencePhoto(
            appointment_id=appointment_id,
            uploaded_by_worker_id=worker_id,
            url=ref.url,
            content_type=ref.content_type,
            size_bytes=ref.size_bytes,
        )
    return EvidencePhoto(appointment_id=appointment_id, uploaded_by_worker_id=worker_id, url=ref)


def commit(
    db: Session, appointment_id: str, refs: Iterable[PhotoRef], worker_id: str | None = None
) -> list[EvidencePhoto]:
    """Append refs to the appointment's ledger in the given order.

    A ref already in the ledger is skipped, so a retried or concurrent submit
    of the same staged photos adds each of them once.
    """
    rows = []
    for ref in refs:
        row = _as_row(appointment_id, worker_id, ref)
        db.add(row)
        # one commit per row keeps id order and lets a duplicate fail alone
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info("Photo %s already in the ledger of appointment %s", ref_url(ref), appointment_id)
            continue
        rows.append(row)
    if not rows:
        return rows

    activity.log_event(db, appointment_id, "EVIDENCE_COMMITTED", f"{len(rows)} photo(s) added", worker_id)
    db.commit()
    logger.info("Committed %d evidence photo(s) to appointment %s", len(rows), appointment_id)
    return rows


def list_by_appointment(db: Session, appointment_id: str) -> list[EvidencePhoto]:
    return (
        db.query(EvidencePhoto)
        .filter(EvidencePhoto.appointment_id == appointment_id)
        .order_by(EvidencePhoto.id.asc())
        .all()
    )


def ref_url(ref: PhotoRef) -> str:
    return ref.url if isinstance(ref, StoredImage) else ref
