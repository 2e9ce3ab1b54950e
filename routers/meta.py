from fastapi import APIRouter

from config.settings import settings
from schemas.common import make_meta

router = APIRouter(prefix="/meta", tags=["Meta"])

@router.get("/health")
def health():
    return {"status": "ok", "meta": make_meta("meta")}

@router.get("/limits")
def limits():
    return {
        "dashboard_poll_seconds": settings.DASHBOARD_POLL_SECONDS,
        "diagnostic_poll_seconds": settings.DIAGNOSTIC_POLL_SECONDS,
        "ranking_limit": settings.RANKING_LIMIT,
        "attention_threshold": settings.ATTENTION_THRESHOLD,
        "max_import_mb": settings.MAX_IMPORT_MB,
        "orphan_classroom_policy": settings.ORPHAN_CLASSROOM_POLICY,
        "meta": make_meta("meta"),
    }
