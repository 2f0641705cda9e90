import logging

from fastapi import FastAPI
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import Base, engine, SessionLocal
from app.core.errors import register_error_handlers
from app.routers.appointments import router as appointments_router
from app.routers.auth import router as auth_router
from app.routers.public import router as public_router
from app.routers.users import router as users_router
from app.services import realtime
from app.services.seed import seed_users
from app.web.router import router as web_router

# Import models so SQLAlchemy registers them before create_all()
import app.models.user  # noqa: F401
import app.models.customer  # noqa: F401
import app.models.appointment  # noqa: F401
import app.models.assignment  # noqa: F401
import app.models.photo  # noqa: F401
import app.models.note  # noqa: F401
import app.models.rating  # noqa: F401
import app.models.event  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, version="0.1.0")

Base.metadata.create_all(bind=engine)
realtime.install(SessionLocal)

if settings.SEED_DEMO_USERS:
    with SessionLocal() as db:  # type: Session
        seed_users(db)

register_error_handlers(app)

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(appointments_router)
app.include_router(public_router)
app.include_router(web_router)


@app.get("/")
def root():
    return {"name": settings.APP_NAME, "docs": "/docs", "health": "/health"}


@app.get("/health")
def health():
    return {"ok": True}
