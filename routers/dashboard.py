from fastapi import APIRouter, Depends

from dependencies.gradebook import get_source
from dependencies.security import require_role
from schemas.common import ok
from services import dashboard_service
from services.data_source import GradebookSource
from services.record_store import now_ms

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


# ✅ 관리자 대시보드: 시스템 전체 통계
@router.get("/admin")
def admin_dashboard(
    source: GradebookSource = Depends(get_source),
    _admin: dict = Depends(require_role("Admin")),
):
    return ok(dashboard_service.admin_dashboard(source.load_collections(), now_ms()))


# ✅ 교사 대시보드: 내가 채점한 성적 기준
@router.get("/teacher")
def teacher_dashboard(
    source: GradebookSource = Depends(get_source),
    user: dict = Depends(require_role("Teacher")),
):
    return ok(dashboard_service.teacher_dashboard(source.load_collections(), user["authority"], now_ms()))


# ✅ 학생 대시보드: 내 성적 / 내 학급
@router.get("/student")
def student_dashboard(
    source: GradebookSource = Depends(get_source),
    user: dict = Depends(require_role("Student")),
):
    return ok(dashboard_service.student_dashboard(source.load_collections(), user["authority"]))
