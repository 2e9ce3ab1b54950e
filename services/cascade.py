"""관리자용 사용자 연쇄 삭제.

사용자 한 명과 그에 딸린 성적/학급 멤버십/사용자 데이터를 한 트랜잭션으로 제거합니다.
커밋이 실패하면 전부 롤백되고 PartialFailureError(applied=[]) 로 알립니다.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.classrooms import Classroom as ClassroomModel, ClassroomStudent as ClassroomStudentModel
from models.grades import Grade as GradeModel
from models.user_data import UserData as UserDataModel
from models.users import User as UserModel
from utils.exceptions import PartialFailureError, RecordNotFoundError

logger = logging.getLogger(__name__)

ORPHAN_POLICIES = ("deactivate", "delete")
AFFECTED_COLLECTIONS = ["users", "grades", "classrooms", "user_data"]


@dataclass
class CascadeReport:
    authority: str
    policy: str
    users_removed: int = 0
    grades_removed: int = 0
    classrooms_deleted: int = 0
    classrooms_deactivated: int = 0
    memberships_removed: int = 0
    user_data_removed: int = 0
    collections: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict:
        return {
            "authority": self.authority,
            "policy": self.policy,
            "users_removed": self.users_removed,
            "grades_removed": self.grades_removed,
            "classrooms_deleted": self.classrooms_deleted,
            "classrooms_deactivated": self.classrooms_deactivated,
            "memberships_removed": self.memberships_removed,
            "user_data_removed": self.user_data_removed,
            "collections": self.collections,
        }


def cascade_delete_user(db: Session, authority: str, policy: str = "deactivate") -> CascadeReport:
    """사용자 연쇄 삭제

    (a) 사용자 삭제
    (b) 학생 또는 교사로 연결된 성적 삭제
    (c) 담당 학급: policy=deactivate → 교사 참조 제거 + 비활성화, policy=delete → 학급 삭제
    (d) 모든 학급의 수강생 목록에서 제거
    (e) 사용자 단위 데이터 삭제
    """
    if policy not in ORPHAN_POLICIES:
        raise ValueError(f"unknown orphan classroom policy: {policy}")

    user = db.query(UserModel).filter(UserModel.authority == authority).first()
    if user is None:
        raise RecordNotFoundError("User", authority)

    report = CascadeReport(authority=authority, policy=policy)
    try:
        # (a)
        db.delete(user)
        report.users_removed = 1

        # (b)
        report.grades_removed = (
            db.query(GradeModel)
            .filter(or_(GradeModel.student_wallet == authority, GradeModel.teacher_wallet == authority))
            .delete(synchronize_session=False)
        )

        # (c)
        owned = db.query(ClassroomModel).filter(ClassroomModel.teacher == authority).all()
        for classroom in owned:
            if policy == "delete":
                db.delete(classroom)
                report.classrooms_deleted += 1
            else:
                classroom.teacher = None
                classroom.is_active = False
                report.classrooms_deactivated += 1

        # (d)
        # 학급 삭제 cascade 와 같은 행을 두 번 지우지 않도록 ORM 단위로 삭제
        memberships = (
            db.query(ClassroomStudentModel)
            .filter(ClassroomStudentModel.pubkey == authority)
            .all()
        )
        for membership in memberships:
            db.delete(membership)
        report.memberships_removed = len(memberships)

        # (e)
        report.user_data_removed = (
            db.query(UserDataModel)
            .filter(UserDataModel.authority == authority)
            .delete(synchronize_session=False)
        )

        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"사용자 연쇄 삭제 실패, 롤백: {authority}: {e}")
        raise PartialFailureError(
            f"Cascade delete of {authority} was rolled back",
            applied=[],
            failed=AFFECTED_COLLECTIONS,
        ) from e

    # 관계 컬렉션이 세션 캐시에 남지 않도록 만료
    db.expire_all()
    report.collections = AFFECTED_COLLECTIONS
    logger.info(
        f"사용자 연쇄 삭제 완료: {authority} (성적 {report.grades_removed}, "
        f"학급 삭제 {report.classrooms_deleted}/비활성 {report.classrooms_deactivated}, "
        f"멤버십 {report.memberships_removed})"
    )
    return report
