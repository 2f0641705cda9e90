import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.auth import get_current_user, schedulers
from app.core.db import get_db
from app.models.customer import Customer
from app.models.user import StaffRole, User
from app.schemas.appointment import CustomerCreate, CustomerOut
from app.services import directory

router = APIRouter(tags=["directory"])


@router.get("/users")
def list_users(
    role: str | None = None,
    db: Session = Depends(get_db),
    _user: User = Depends(schedulers),
):
    q = db.query(User).filter(User.is_active == True)  # noqa: E712
    if role:
        try:
            q = q.filter(User.role == StaffRole(role))
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid role")
    users = q.order_by(User.name.asc()).all()
    return [{"id": u.id, "name": u.name, "phone": u.phone, "role": u.role.value} for u in users]


@router.post("/customers", response_model=CustomerOut)
def create_customer(
    payload: CustomerCreate,
    db: Session = Depends(get_db),
    _user: User = Depends(schedulers),
):
    customer = Customer(id=str(uuid.uuid4()), **payload.model_dump())
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


@router.get("/customers/{customer_id}", response_model=CustomerOut)
def get_customer(
    customer_id: str,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    customer = directory.get_customer_by_id(db, customer_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer
