import logging
import uuid
from sqlalchemy.orm import Session

from app.core.auth import hash_password
from app.models.user import StaffRole, User

logger = logging.getLogger(__name__)


def seed_users(db: Session):
    # Only seed if no users exist
    if db.query(User).count() > 0:
        return

    demo = [
        ("Admin", "+15550000001", StaffRole.ADMIN, "admin123"),
        ("Office Dispatcher", "+15550000002", StaffRole.DISPATCHER, "dispatch123"),
        ("Worker One", "+15550000003", StaffRole.WORKER, "worker123"),
        ("Worker Two", "+15550000004", StaffRole.WORKER, "worker123"),
    ]
    db.add_all(
        User(
            id=str(uuid.uuid4()),
            name=name,
            phone=phone,
            role=role,
            password_hash=hash_password(password),
            is_active=True,
        )
        for name, phone, role, password in demo
    )
    db.commit()
    logger.info("Seeded %d demo staff accounts", len(demo))
