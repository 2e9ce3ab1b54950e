from sqlalchemy import Column, Integer, String, Text, UniqueConstraint
from database.db import Base

class UserData(Base):
    __tablename__ = "user_data"  # 사용자 단위 임의 blob 저장소
    __table_args__ = (UniqueConstraint("authority", "key", name="uq_user_data_key"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    authority = Column(String(64), index=True, nullable=False)     # 소유 사용자 authority
    key = Column(String(100), nullable=False)                      # 키 (예: profile, settings)
    blob = Column(Text, nullable=False)                            # JSON 직렬화 문자열
