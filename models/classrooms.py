from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from database.db import Base

class Classroom(Base):
    __tablename__ = "classrooms"

    classroom_id = Column(String(64), primary_key=True, index=True)  # 학급 고유 ID (PK)
    name = Column(String(100), nullable=False)                       # 학급 이름
    course = Column(String(100), nullable=False)                     # 과목/코스명
    teacher = Column(String(64), index=True, nullable=True)          # 담당 교사 authority (삭제 시 NULL)
    created_at = Column(Integer, nullable=False)                     # 생성 시각 (epoch 초)
    is_active = Column(Boolean, nullable=False, default=True)        # 활성 여부
    schema_version = Column(Integer, nullable=False, default=1)

    # ==========================================================
    # [관계 설정]
    # ==========================================================

    # ✅ 수강 학생 목록 (1:N, 등록 순서 유지)
    students = relationship(
        "ClassroomStudent",
        back_populates="classroom",
        cascade="all, delete-orphan",
        order_by="ClassroomStudent.id",
    )


class ClassroomStudent(Base):
    __tablename__ = "classroom_students"
    __table_args__ = (UniqueConstraint("classroom_id", "pubkey", name="uq_classroom_student"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    classroom_id = Column(String(64), ForeignKey("classrooms.classroom_id", ondelete="CASCADE"), index=True)
    pubkey = Column(String(64), index=True, nullable=False)        # 학생 authority

    classroom = relationship("Classroom", back_populates="students")
