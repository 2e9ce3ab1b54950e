"""Record Store: Users / Classrooms / Grades 세 컬렉션 + 사용자 단위 blob 저장소.

레코드는 키(authority / classroom_id / grade_id) 단위 행으로 저장하고,
읽을 때마다 버전 스키마로 정규화해서 dict 목록으로 돌려줍니다.
컬렉션 전체 교체(write_collection)는 일괄 가져오기 용도로만 남겨두며, 한 트랜잭션으로 처리합니다.
"""

import json
import logging
import secrets
import time
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from models.classrooms import Classroom as ClassroomModel, ClassroomStudent as ClassroomStudentModel
from models.grades import Grade as GradeModel
from models.user_data import UserData as UserDataModel
from models.users import User as UserModel
from schemas.records import CURRENT_SCHEMA_VERSION
from services.normalize import COLLECTIONS, normalize_collection
from services.validation import (
    validate_authority, validate_required, validate_role, validate_score,
)
from utils.exceptions import (
    PartialFailureError, RecordNotFoundError, RecordValidationError, RegistrationError,
)

logger = logging.getLogger(__name__)

DEFAULT_SCOPED_KEY = "profile"


def now_seconds() -> int:
    return int(time.time())


def now_ms() -> int:
    return int(time.time() * 1000)


# ==========================================================
# [공통] ORM → dict 변환
# ==========================================================
def user_to_record(m: UserModel) -> Dict[str, Any]:
    return {
        "authority": m.authority,
        "username": m.username,
        "role": m.role,
        "created_at": m.created_at,
        "is_active": m.is_active,
        "schema_version": m.schema_version,
    }


def classroom_to_record(m: ClassroomModel) -> Dict[str, Any]:
    return {
        "classroom_id": m.classroom_id,
        "name": m.name,
        "course": m.course,
        "teacher": m.teacher,
        "students": [{"pubkey": s.pubkey} for s in m.students],
        "created_at": m.created_at,
        "is_active": m.is_active,
        "schema_version": m.schema_version,
    }


def grade_to_record(m: GradeModel) -> Dict[str, Any]:
    return {
        "grade_id": m.grade_id,
        "student_wallet": m.student_wallet,
        "teacher_wallet": m.teacher_wallet,
        "assignment_name": m.assignment_name,
        "grade": m.grade,
        "max_grade": m.max_grade,
        "timestamp": m.timestamp,
        "schema_version": m.schema_version,
    }


def _user_model(r: Dict[str, Any]) -> UserModel:
    return UserModel(
        authority=r["authority"], username=r["username"], role=r["role"],
        created_at=r["created_at"], is_active=r["is_active"],
        schema_version=CURRENT_SCHEMA_VERSION,
    )


def _classroom_model(r: Dict[str, Any]) -> ClassroomModel:
    model = ClassroomModel(
        classroom_id=r["classroom_id"], name=r["name"], course=r["course"],
        teacher=r["teacher"], created_at=r["created_at"], is_active=r["is_active"],
        schema_version=CURRENT_SCHEMA_VERSION,
    )
    seen = set()
    for s in r["students"]:
        if s["pubkey"] not in seen:
            seen.add(s["pubkey"])
            model.students.append(ClassroomStudentModel(pubkey=s["pubkey"]))
    return model


def _grade_model(r: Dict[str, Any]) -> GradeModel:
    return GradeModel(
        grade_id=r["grade_id"], student_wallet=r["student_wallet"],
        teacher_wallet=r["teacher_wallet"], assignment_name=r["assignment_name"],
        grade=r["grade"], max_grade=r["max_grade"], timestamp=r["timestamp"],
        schema_version=CURRENT_SCHEMA_VERSION,
    )


_READERS = {
    "users": (UserModel, user_to_record, UserModel.created_at),
    "classrooms": (ClassroomModel, classroom_to_record, ClassroomModel.created_at),
    "grades": (GradeModel, grade_to_record, GradeModel.timestamp),
}

_BUILDERS = {
    "users": _user_model,
    "classrooms": _classroom_model,
    "grades": _grade_model,
}


class RecordStore:
    """SQLAlchemy 세션 위의 동기 Record Store"""

    def __init__(self, db: Session):
        self.db = db

    # ==========================================================
    # [컬렉션] 전체 읽기/쓰기
    # ==========================================================
    def read_collection(self, name: str) -> List[Dict[str, Any]]:
        """컬렉션 전체를 생성 순서대로 반환. 없거나 손상된 경우 빈 목록 (예외 없음)"""
        if name not in _READERS:
            return []
        model, to_record, order_col = _READERS[name]
        try:
            rows = self.db.query(model).order_by(order_col).all()
        except SQLAlchemyError as e:
            logger.error(f"[{name}] 컬렉션 읽기 실패: {e}")
            self.db.rollback()
            return []
        records, _ = normalize_collection(name, [to_record(r) for r in rows])
        return records

    def write_collection(self, name: str, records: List[Any]) -> bool:
        """컬렉션 전체 교체. 스키마 불일치 항목은 격리되어 쓰지 않음"""
        if name not in _BUILDERS:
            return False
        try:
            self.replace_collections({name: records})
        except PartialFailureError:
            return False
        return True

    def replace_collections(self, payload: Dict[str, List[Any]]) -> Dict[str, Dict[str, int]]:
        """여러 컬렉션을 한 트랜잭션으로 교체

        Returns:
            {컬렉션: {"written": n, "quarantined": m}}
        Raises:
            PartialFailureError: 커밋 실패 (전부 롤백되어 applied 는 비어 있음)
        """
        names = [n for n in COLLECTIONS if n in payload]
        summary = {}
        try:
            for name in names:
                normalized, quarantined = normalize_collection(name, payload[name] or [])
                if name == "classrooms":
                    self.db.query(ClassroomStudentModel).delete(synchronize_session=False)
                self.db.query(_READERS[name][0]).delete(synchronize_session=False)
                # 같은 키로 다시 넣으므로 세션에 남은 이전 객체는 분리 (앞 컬렉션은 이미 flush 됨)
                self.db.expunge_all()
                self.db.add_all([_BUILDERS[name](r) for r in normalized])
                self.db.flush()
                summary[name] = {"written": len(normalized), "quarantined": len(quarantined)}
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"컬렉션 교체 실패, 롤백: {names}: {e}")
            raise PartialFailureError("Collection replace was rolled back", applied=[], failed=names) from e

        logger.info(f"컬렉션 교체 완료: {summary}")
        return summary

    def collections(self) -> Dict[str, List[Dict[str, Any]]]:
        return {name: self.read_collection(name) for name in COLLECTIONS}

    def collection_sizes(self) -> Dict[str, int]:
        return {name: self.db.query(_READERS[name][0]).count() for name in COLLECTIONS}

    # ==========================================================
    # [Users] 단건
    # ==========================================================
    def get_user(self, authority: str) -> Optional[Dict[str, Any]]:
        model = self.db.query(UserModel).filter(UserModel.authority == authority).first()
        return user_to_record(model) if model else None

    def register_user(self, authority: str, username: str, role: str) -> Dict[str, Any]:
        validate_authority(authority)
        username = validate_required(username, "username")
        validate_role(role)

        if self.get_user(authority):
            raise RegistrationError(f"User already registered with account {authority}")

        model = UserModel(
            authority=authority, username=username, role=role,
            created_at=now_seconds(), is_active=True,
            schema_version=CURRENT_SCHEMA_VERSION,
        )
        try:
            self.db.add(model)
            self.db.commit()
        except IntegrityError as e:
            # 동시에 같은 계정으로 등록한 경우 PK 제약에서 걸림
            self.db.rollback()
            raise RegistrationError(f"User already registered with account {authority}") from e
        logger.info(f"사용자 등록: {username} ({role})")
        return user_to_record(model)

    def require_teacher(self, authority: str, field: str) -> None:
        """학급 담당/채점 교사는 등록된 활성 Teacher 여야 함"""
        user = self.get_user(authority)
        if user is None or user["role"] != "Teacher" or not user["is_active"]:
            raise RecordValidationError(f"{field} must be a registered Teacher", field=field)

    # ==========================================================
    # [Classrooms] 단건
    # ==========================================================
    def get_classroom(self, classroom_id: str) -> Optional[Dict[str, Any]]:
        model = self._classroom(classroom_id)
        return classroom_to_record(model) if model else None

    def _classroom(self, classroom_id: str) -> Optional[ClassroomModel]:
        return (
            self.db.query(ClassroomModel)
            .filter(ClassroomModel.classroom_id == classroom_id)
            .first()
        )

    def create_classroom(self, name: str, course: str, teacher: str) -> Dict[str, Any]:
        name = validate_required(name, "name")
        course = validate_required(course, "course")
        validate_authority(teacher, "teacher")
        self.require_teacher(teacher, "teacher")

        model = ClassroomModel(
            classroom_id=secrets.token_hex(8), name=name, course=course,
            teacher=teacher, created_at=now_seconds(), is_active=True,
            schema_version=CURRENT_SCHEMA_VERSION,
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        logger.info(f"학급 생성: {name} ({course}) by {teacher}")
        return classroom_to_record(model)

    def enroll_student(self, classroom_id: str, pubkey: str) -> Dict[str, Any]:
        validate_authority(pubkey, "pubkey")
        model = self._classroom(classroom_id)
        if model is None:
            raise RecordNotFoundError("Classroom", classroom_id)
        if pubkey not in [s.pubkey for s in model.students]:
            model.students.append(ClassroomStudentModel(pubkey=pubkey))
            self.db.commit()
            self.db.refresh(model)
        return classroom_to_record(model)

    # ==========================================================
    # [Grades] 단건
    # ==========================================================
    def add_grade(
        self,
        student_wallet: str,
        teacher_wallet: str,
        assignment_name: str,
        grade: int,
        max_grade: int,
        timestamp: Optional[int] = None,
    ) -> Dict[str, Any]:
        validate_authority(student_wallet, "student_wallet")
        validate_authority(teacher_wallet, "teacher_wallet")
        assignment_name = validate_required(assignment_name, "assignment_name")
        validate_score(grade, max_grade)
        self.require_teacher(teacher_wallet, "teacher_wallet")

        ts = timestamp if timestamp is not None else now_ms()
        model = GradeModel(
            grade_id=f"{student_wallet}_{assignment_name}_{ts}",
            student_wallet=student_wallet, teacher_wallet=teacher_wallet,
            assignment_name=assignment_name, grade=grade, max_grade=max_grade,
            timestamp=ts, schema_version=CURRENT_SCHEMA_VERSION,
        )
        self.db.merge(model)
        self.db.commit()
        logger.info(f"성적 등록: {assignment_name} {grade}/{max_grade} → {student_wallet}")
        return grade_to_record(model)

    # ==========================================================
    # [User-scoped] blob 저장소
    # ==========================================================
    def read_user_scoped(self, authority: str, key: str = DEFAULT_SCOPED_KEY) -> Optional[Any]:
        row = (
            self.db.query(UserDataModel)
            .filter(UserDataModel.authority == authority, UserDataModel.key == key)
            .first()
        )
        if row is None:
            return None
        try:
            return json.loads(row.blob)
        except (TypeError, ValueError):
            logger.warning(f"손상된 사용자 데이터 무시: {authority}/{key}")
            return None

    def write_user_scoped(self, authority: str, blob: Any, key: str = DEFAULT_SCOPED_KEY) -> bool:
        payload = json.dumps(blob, ensure_ascii=False, default=str)
        try:
            row = (
                self.db.query(UserDataModel)
                .filter(UserDataModel.authority == authority, UserDataModel.key == key)
                .first()
            )
            if row is None:
                self.db.add(UserDataModel(authority=authority, key=key, blob=payload))
            else:
                row.blob = payload
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"사용자 데이터 쓰기 실패: {authority}/{key}: {e}")
            return False
        return True

    def delete_user_scoped(self, authority: str, commit: bool = True) -> int:
        """해당 사용자의 모든 키 삭제, 삭제 건수 반환"""
        count = (
            self.db.query(UserDataModel)
            .filter(UserDataModel.authority == authority)
            .delete(synchronize_session=False)
        )
        if commit:
            self.db.commit()
        return count

    def list_user_scoped_keys(self, authority: str) -> List[str]:
        rows = (
            self.db.query(UserDataModel.key)
            .filter(UserDataModel.authority == authority)
            .order_by(UserDataModel.key)
            .all()
        )
        return [r[0] for r in rows]
