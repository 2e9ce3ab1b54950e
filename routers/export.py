from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from dependencies.gradebook import get_source
from dependencies.security import require_role
from schemas.common import make_meta, ok
from services import aggregation
from services.data_source import GradebookSource
from services.export_service import export_service
from services.record_store import now_ms

router = APIRouter(prefix="/export", tags=["export"])


# ✅ 전체 JSON 덤프 (관리자) → storage/import 로 다시 적재 가능
@router.get("/json")
def export_json(
    source: GradebookSource = Depends(get_source),
    _admin: dict = Depends(require_role("Admin")),
):
    collections = source.load_collections()
    return ok(
        export_service.build_json_export(collections),
        meta=make_meta(collections["source"], collections["notice"]),
    )


# ✅ 성적 CSV. 교사는 본인 채점분만, 관리자는 teacher 필터 선택
@router.get("/grades.csv")
def export_grades_csv(
    teacher: Optional[str] = None,
    source: GradebookSource = Depends(get_source),
    user: dict = Depends(require_role("Teacher")),
):
    if user["role"] != "Admin":
        teacher = user["authority"]
    grades = source.load_collections()["grades"]
    if teacher:
        grades = aggregation.grades_for_teacher(grades, teacher)

    filename = export_service.filename("grades", "csv")
    return Response(
        content=export_service.grades_csv(grades),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ✅ 교사 리포트 (통계 + 채점 목록)
@router.get("/teacher-report")
def export_teacher_report(
    source: GradebookSource = Depends(get_source),
    user: dict = Depends(require_role("Teacher")),
):
    collections = source.load_collections()
    grades = aggregation.grades_for_teacher(collections["grades"], user["authority"])
    return ok(export_service.teacher_report(user, grades, now_ms()))
