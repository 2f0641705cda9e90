import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.note import WorkerNote


def upsert_note(db: Session, appointment_id: str, worker_id: str, body: str) -> WorkerNote:
    """Replace the worker's note on the appointment, creating it on first use."""
    body = body.strip()
    note = (
        db.query(WorkerNote)
        .filter(WorkerNote.appointment_id == appointment_id, WorkerNote.worker_id == worker_id)
        .first()
    )
    if note is None:
        note = WorkerNote(id=str(uuid.uuid4()), appointment_id=appointment_id, worker_id=worker_id, body=body)
        db.add(note)
        try:
            db.commit()
        except IntegrityError:
            # another submit from the same worker created it first
            db.rollback()
            return upsert_note(db, appointment_id, worker_id, body)
    else:
        note.body = body
        db.commit()
    db.refresh(note)
    return note


def notes_by_worker(db: Session, appointment_id: str) -> dict[str, str]:
    rows = db.query(WorkerNote).filter(WorkerNote.appointment_id == appointment_id).all()
    return {n.worker_id: n.body for n in rows}
