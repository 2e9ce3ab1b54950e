import logging

from fastapi import APIRouter, Depends

from dependencies.gradebook import get_source, get_store
from dependencies.security import require_role
from schemas.common import make_meta, ok
from schemas.grades import GradeCreate
from services import aggregation
from services.data_source import GradebookSource
from services.record_store import RecordStore
from utils.exceptions import NotAvailableError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/grades", tags=["grades"])


def _listing(grades, collections):
    rows = [aggregation.with_percentage(g) for g in grades]
    return ok(rows, meta=make_meta(collections["source"], collections["notice"], len(rows)))


# ==========================================================
# [조회] 전체 / 학생별 / 교사별
# ==========================================================

# ✅ 전체 성적 (percentage 는 조회 시 계산)
@router.get("")
def list_grades(source: GradebookSource = Depends(get_source)):
    collections = source.load_collections()
    return _listing(collections["grades"], collections)


# ✅ 학생 성적 (최신순)
@router.get("/student/{authority}")
def grades_for_student(authority: str, source: GradebookSource = Depends(get_source)):
    collections = source.load_collections()
    return _listing(aggregation.grades_for_student(collections["grades"], authority), collections)


# ✅ 교사가 채점한 성적
@router.get("/teacher/{authority}")
def grades_for_teacher(authority: str, source: GradebookSource = Depends(get_source)):
    collections = source.load_collections()
    return _listing(aggregation.grades_for_teacher(collections["grades"], authority), collections)


# ==========================================================
# [등록] 교사 채점
# ==========================================================
@router.post("", status_code=201)
def add_grade(
    payload: GradeCreate,
    store: RecordStore = Depends(get_store),
    source: GradebookSource = Depends(get_source),
    user: dict = Depends(require_role("Teacher")),
):
    store.require_teacher(user["authority"], "teacher_wallet")
    signature = None
    if source.use_ledger():
        try:
            signature = source.adapter.add_grade(
                payload.student_wallet, payload.assignment_name,
                payload.grade, payload.max_grade, user["authority"],
            )
        except NotAvailableError as e:
            logger.warning(f"원장 성적 등록 실패, 로컬에만 기록: {e}")

    grade = store.add_grade(
        payload.student_wallet, user["authority"], payload.assignment_name,
        payload.grade, payload.max_grade,
    )
    return ok({**aggregation.with_percentage(grade), "signature": signature}, message="Grade added")
