from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..db import get_session
from ..dependencies import get_current_user
from ..responses import envelope
from ..services.dashboard_service import get_dashboard_stats

router = APIRouter(prefix="/dashboard", tags=["dashboard"], dependencies=[Depends(get_current_user)])


@router.get("/stats")
def dashboard_stats(session: Session = Depends(get_session)):
    return envelope(get_dashboard_stats(session))
