"""Read-only lookups into the customer and staff directories."""
from typing import Optional

from sqlalchemy.orm import Session

from app.models.appointment import Appointment
from app.models.customer import Customer
from app.models.user import StaffRole, User
from app.services import assignments


def get_customer_by_id(db: Session, customer_id: str) -> Optional[Customer]:
    return db.get(Customer, customer_id)


def get_worker_by_id(db: Session, worker_id: str) -> Optional[User]:
    return (
        db.query(User)
        .filter(User.id == worker_id, User.role == StaffRole.WORKER, User.is_active == True)  # noqa: E712
        .first()
    )


def list_assigned_workers(db: Session, appointment: Appointment) -> list[User]:
    ids = [r.worker_id for r in assignments.effective_assignments(db, appointment)]
    if not ids:
        return []
    by_id = {u.id: u for u in db.query(User).filter(User.id.in_(ids)).all()}
    return [by_id[i] for i in ids if i in by_id]
