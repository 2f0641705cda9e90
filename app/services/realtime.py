"""
Change notifications for appointment state.

Any committed insert/update/delete touching an appointment, its assignments,
evidence, worker notes or rating produces one payload-free signal per
appointment id. Subscribers must respond by refetching the full state; the
signal carries nothing to patch from, and may be duplicated or reordered.
"""
import logging
import threading
import uuid
from itertools import chain
from typing import Callable

from sqlalchemy import event
from sqlalchemy.orm import Session

from app.models.appointment import Appointment
from app.models.assignment import Assignment
from app.models.note import WorkerNote
from app.models.photo import EvidencePhoto
from app.models.rating import Rating

logger = logging.getLogger(__name__)

_PENDING_KEY = "realtime_changed_appointments"
_TRACKED = (Assignment, EvidencePhoto, WorkerNote, Rating)


class Subscription:
    def __init__(self, hub: "RealtimeHub", appointment_id: str, token: str):
        self._hub = hub
        self.appointment_id = appointment_id
        self._token = token
        self.active = True

    def unsubscribe(self) -> None:
        # safe to call repeatedly, including from view teardown after disconnect
        if not self.active:
            return
        self.active = False
        self._hub._remove(self.appointment_id, self._token)


class RealtimeHub:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: dict[str, dict[str, Callable[[], None]]] = {}

    def subscribe(self, appointment_id: str, on_change: Callable[[], None]) -> Subscription:
        token = str(uuid.uuid4())
        with self._lock:
            self._subscribers.setdefault(appointment_id, {})[token] = on_change
        logger.debug("Subscribed %s to appointment %s", token, appointment_id)
        return Subscription(self, appointment_id, token)

    def _remove(self, appointment_id: str, token: str) -> None:
        with self._lock:
            subs = self._subscribers.get(appointment_id)
            if not subs:
                return
            subs.pop(token, None)
            if not subs:
                self._subscribers.pop(appointment_id, None)

    def subscriber_count(self, appointment_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(appointment_id, {}))

    def publish(self, appointment_id: str) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(appointment_id, {}).values())
        for callback in callbacks:
            try:
                callback()
            except Exception:
                # one broken viewer must not block the others
                logger.exception("Change subscriber failed for appointment %s", appointment_id)


hub = RealtimeHub()


def mark_changed(db: Session, appointment_id: str) -> None:
    """Queue a notification for writes the session cannot see (Core UPDATE statements)."""
    db.info.setdefault(_PENDING_KEY, set()).add(appointment_id)


def _appointment_id_of(obj) -> str | None:
    if isinstance(obj, Appointment):
        return obj.id
    if isinstance(obj, _TRACKED):
        return obj.appointment_id
    return None


def install(session_factory) -> None:
    """Feed ``hub`` from every session produced by ``session_factory``."""

    @event.listens_for(session_factory, "after_flush")
    def _collect(session, _flush_context):
        for obj in chain(session.new, session.dirty, session.deleted):
            appointment_id = _appointment_id_of(obj)
            if appointment_id:
                mark_changed(session, appointment_id)

    @event.listens_for(session_factory, "after_commit")
    def _publish(session):
        changed = session.info.pop(_PENDING_KEY, set())
        for appointment_id in changed:
            hub.publish(appointment_id)

    @event.listens_for(session_factory, "after_soft_rollback")
    def _discard(session, previous_transaction):
        if previous_transaction.parent is None:
            session.info.pop(_PENDING_KEY, None)
