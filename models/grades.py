from sqlalchemy import Column, Integer, BigInteger, String
from database.db import Base

class Grade(Base):
    __tablename__ = "grades"  # 과제별 성적 테이블 (percentage 는 저장하지 않고 조회 시 계산)

    grade_id = Column(String(255), primary_key=True, index=True)   # 성적 고유 ID (Primary Key)
    student_wallet = Column(String(64), index=True, nullable=False)  # 학생 authority
    teacher_wallet = Column(String(64), index=True, nullable=False)  # 채점 교사 authority
    assignment_name = Column(String(200), nullable=False)          # 과제명
    grade = Column(Integer, nullable=False)                        # 획득 점수
    max_grade = Column(Integer, nullable=False)                    # 만점
    timestamp = Column(BigInteger, nullable=False)                 # 생성 시각 (epoch 밀리초)
    schema_version = Column(Integer, nullable=False, default=1)
