"""
Unauthenticated surface behind the customer's link.

Everything is keyed by appointment id. Workers act on their own row by
worker id; the customer can only rate.
"""
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.db import SessionLocal, get_db
from app.core.errors import AppointmentClosed, NotAssigned
from app.models.appointment import Appointment
from app.schemas.appointment import AppointmentSnapshot, RatingCreate, RatingOut, StagedPhotoOut, SubmitForReview
from app.services import assignments, evidence, ratings, workflow
from app.services.appointments import get_appointment
from app.services.realtime import hub
from app.services.snapshot import load_snapshot
from app.services.storage import remove_file, resolve_photo_path, save_evidence_image

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public/appointments", tags=["public"])


def _assert_assigned_and_open(db: Session, appointment_id: str, worker_id: str) -> Appointment:
    appointment = get_appointment(db, appointment_id)
    if appointment.current_status.is_terminal:
        raise AppointmentClosed()
    if worker_id not in {r.worker_id for r in assignments.effective_assignments(db, appointment)}:
        raise NotAssigned()
    return appointment


def _staged_out(appointment_id: str, worker_id: str) -> list[StagedPhotoOut]:
    return [
        StagedPhotoOut(index=i, url=evidence.ref_url(ref))
        for i, ref in enumerate(evidence.staging.pending(appointment_id, worker_id))
    ]


def _progress_out(db: Session, appointment_id: str, worker_id: str, status) -> dict:
    snapshot = load_snapshot(db, appointment_id, repair=False)
    worker = next((w for w in snapshot.workers if w.worker_id == worker_id), None)
    return {"worker": worker, "status": status.value}


@router.get("/{appointment_id}", response_model=AppointmentSnapshot)
def get_public_appointment(appointment_id: str, db: Session = Depends(get_db)):
    return load_snapshot(db, appointment_id)


@router.post("/{appointment_id}/workers/{worker_id}/start")
def start_work(appointment_id: str, worker_id: str, db: Session = Depends(get_db)):
    _, status = workflow.start_work(db, appointment_id, worker_id)
    return _progress_out(db, appointment_id, worker_id, status)


@router.post("/{appointment_id}/workers/{worker_id}/photos", response_model=list[StagedPhotoOut])
def stage_photo(
    appointment_id: str,
    worker_id: str,
    photo: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    _assert_assigned_and_open(db, appointment_id, worker_id)
    stored = save_evidence_image(appointment_id, photo)
    try:
        evidence.staging.stage(appointment_id, worker_id, stored)
    except Exception:
        remove_file(stored.path)
        raise
    return _staged_out(appointment_id, worker_id)


@router.get("/{appointment_id}/workers/{worker_id}/photos", response_model=list[StagedPhotoOut])
def list_staged_photos(appointment_id: str, worker_id: str, db: Session = Depends(get_db)):
    get_appointment(db, appointment_id)
    return _staged_out(appointment_id, worker_id)


@router.delete("/{appointment_id}/workers/{worker_id}/photos/{index}", response_model=list[StagedPhotoOut])
def unstage_photo(appointment_id: str, worker_id: str, index: int, db: Session = Depends(get_db)):
    get_appointment(db, appointment_id)
    evidence.staging.unstage(appointment_id, worker_id, index)
    return _staged_out(appointment_id, worker_id)


@router.post("/{appointment_id}/workers/{worker_id}/submit")
def submit_for_review(
    appointment_id: str,
    worker_id: str,
    payload: Optional[SubmitForReview] = None,
    db: Session = Depends(get_db),
):
    note = payload.note if payload else None
    _, status = workflow.submit_for_review(db, appointment_id, worker_id, note=note)
    return _progress_out(db, appointment_id, worker_id, status)


@router.post("/{appointment_id}/rating", response_model=RatingOut)
def submit_rating(appointment_id: str, payload: RatingCreate, db: Session = Depends(get_db)):
    return ratings.submit_rating(db, appointment_id, payload.rating, payload.comment)


@router.get("/{appointment_id}/photos/{filename}")
def download_photo(appointment_id: str, filename: str, db: Session = Depends(get_db)):
    get_appointment(db, appointment_id)
    return FileResponse(path=resolve_photo_path(appointment_id, filename))


def _appointment_exists(appointment_id: str) -> bool:
    with SessionLocal() as db:
        return db.get(Appointment, appointment_id) is not None


@router.websocket("/{appointment_id}/ws")
async def appointment_changes(websocket: WebSocket, appointment_id: str):
    """Push a bare "changed" signal whenever the appointment's state moves."""
    if not await run_in_threadpool(_appointment_exists, appointment_id):
        await websocket.close(code=4404)
        return
    await websocket.accept()

    loop = asyncio.get_running_loop()
    signals: asyncio.Queue = asyncio.Queue()

    def on_change():
        if not loop.is_closed():
            loop.call_soon_threadsafe(signals.put_nowait, None)

    subscription = hub.subscribe(appointment_id, on_change)
    # the client refetches once on (re)connect before relying on pushes
    signals.put_nowait(None)

    async def forward():
        while True:
            await signals.get()
            await websocket.send_json({"event": "changed"})

    async def watch_disconnect():
        while True:
            await websocket.receive_text()

    tasks = [asyncio.create_task(forward()), asyncio.create_task(watch_disconnect())]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning("Change stream for appointment %s ended: %r", appointment_id, exc)
    finally:
        for task in tasks:
            task.cancel()
        subscription.unsubscribe()
        logger.debug("Change stream closed for appointment %s", appointment_id)
