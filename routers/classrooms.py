import logging
from typing import Optional

from fastapi import APIRouter, Depends

from dependencies.gradebook import get_source, get_store
from dependencies.security import require_role
from schemas.classrooms import ClassroomCreate, StudentEnroll
from schemas.common import make_meta, ok
from services import aggregation
from services.data_source import GradebookSource
from services.record_store import RecordStore
from utils.exceptions import NotAvailableError, PermissionDeniedError, RecordNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/classrooms", tags=["classrooms"])


# ✅ 학급 목록 (teacher / student 필터)
@router.get("")
def list_classrooms(
    teacher: Optional[str] = None,
    student: Optional[str] = None,
    source: GradebookSource = Depends(get_source),
):
    collections = source.load_collections()
    classrooms = collections["classrooms"]
    if teacher:
        classrooms = aggregation.classrooms_for_teacher(classrooms, teacher)
    if student:
        classrooms = aggregation.classrooms_for_student(classrooms, student)
    return ok(classrooms, meta=make_meta(collections["source"], collections["notice"], len(classrooms)))


# ✅ 학급 생성 (교사, 담당 교사는 요청자)
@router.post("", status_code=201)
def create_classroom(
    payload: ClassroomCreate,
    store: RecordStore = Depends(get_store),
    source: GradebookSource = Depends(get_source),
    user: dict = Depends(require_role("Teacher")),
):
    # 담당 교사는 등록된 Teacher 계정만
    store.require_teacher(user["authority"], "teacher")
    signature = None
    if source.use_ledger():
        try:
            signature = source.adapter.create_classroom(payload.name, payload.course, user["authority"])
        except NotAvailableError as e:
            logger.warning(f"원장 학급 생성 실패, 로컬에만 기록: {e}")

    classroom = store.create_classroom(payload.name, payload.course, user["authority"])
    return ok({**classroom, "signature": signature}, message="Classroom created")


# ✅ 수강생 추가 (담당 교사만)
@router.post("/{classroom_id}/students")
def enroll_student(
    classroom_id: str,
    payload: StudentEnroll,
    store: RecordStore = Depends(get_store),
    user: dict = Depends(require_role("Teacher")),
):
    classroom = store.get_classroom(classroom_id)
    if classroom is None:
        raise RecordNotFoundError("Classroom", classroom_id)
    if user["role"] != "Admin" and classroom["teacher"] != user["authority"]:
        raise PermissionDeniedError("Only the classroom teacher can enroll students")

    updated = store.enroll_student(classroom_id, payload.pubkey)
    return ok(updated, message="Student enrolled")


# ✅ 학급 평균 (수강생 성적 백분율 평균)
@router.get("/{classroom_id}/average")
def classroom_average(classroom_id: str, source: GradebookSource = Depends(get_source)):
    collections = source.load_collections()
    classroom = next(
        (c for c in collections["classrooms"] if c.get("classroom_id") == classroom_id), None
    )
    if classroom is None:
        raise RecordNotFoundError("Classroom", classroom_id)
    return ok(
        {
            "classroom_id": classroom_id,
            "name": classroom.get("name"),
            "student_count": len(classroom.get("students") or []),
            "average": aggregation.class_average(classroom, collections["grades"]),
        },
        meta=make_meta(collections["source"], collections["notice"]),
    )
