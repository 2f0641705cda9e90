import os

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import get_db
from app.core.errors import NotFound
from app.services.appointments import get_appointment

templates = Jinja2Templates(directory=os.path.join(os.path.dirname(__file__), "templates"))

router = APIRouter(tags=["web"])


@router.get("/a/{appointment_id}", response_class=HTMLResponse)
def public_appointment_page(appointment_id: str, request: Request, db: Session = Depends(get_db)):
    # The page renders only a shell; state comes from the JSON snapshot so
    # the first paint and every later refresh go through the same path.
    try:
        appointment = get_appointment(db, appointment_id)
    except NotFound:
        return templates.TemplateResponse(
            request, "not_found.html", {"app_name": settings.APP_NAME}, status_code=404
        )
    return templates.TemplateResponse(
        request,
        "public_appointment.html",
        {"app_name": settings.APP_NAME, "appointment_id": appointment.id, "title": appointment.title},
    )
