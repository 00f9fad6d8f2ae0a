from fastapi import APIRouter, Depends, Response
from sqlmodel import Session, text

from app.database import get_session
from app.utils.clock import utcnow

router = APIRouter()

@router.get("")
def health_check(session: Session = Depends(get_session)):
    db_status = "ok"

    try:
        # simple DB ping
        session.exec(text("SELECT 1"))
    except Exception:
        db_status = "failed"

    return {
        "status": "ok",
        "database": db_status,
        "timestamp": utcnow().isoformat()
    }


# lightweight probe used by terminals to detect connectivity
@router.head("")
def health_probe():
    return Response(
        status_code=200,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )
