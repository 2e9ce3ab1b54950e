from sqlalchemy import Column, Integer, String, Boolean
from database.db import Base

class User(Base):
    __tablename__ = "users"  # 사용자(관리자/교사/학생) 테이블

    authority = Column(String(64), primary_key=True, index=True)  # 지갑/계정 주소 (Primary Key)
    username = Column(String(100), nullable=False)                # 표시 이름
    role = Column(String(20), nullable=False)                     # 역할 (Teacher, Student, Admin)
    created_at = Column(Integer, nullable=False)                  # 생성 시각 (epoch 초)
    is_active = Column(Boolean, nullable=False, default=True)     # 활성 여부
    schema_version = Column(Integer, nullable=False, default=1)   # 레코드 스키마 버전
