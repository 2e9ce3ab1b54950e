from pathlib import Path

from sqlalchemy import create_engine               # SQLAlchemy 엔진 생성 도구
from sqlalchemy.orm import declarative_base        # 모델의 Base 클래스
from sqlalchemy.orm import sessionmaker            # 세션 팩토리 함수

from config.settings import settings               # ✅ 환경변수 설정 파일 불러오기


def _engine_kwargs(url: str) -> dict:
    # SQLite 는 FastAPI 워커 스레드에서 세션을 공유하므로 스레드 체크 해제
    if url.startswith("sqlite"):
        db_file = url.replace("sqlite:///", "", 1)
        if db_file and db_file != ":memory:":
            Path(db_file).parent.mkdir(parents=True, exist_ok=True)
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


# ✅ 설정에서 DB 연결 URL을 불러와 엔진 생성
engine = create_engine(settings.DB_URL, **_engine_kwargs(settings.DB_URL))

# ✅ 세션 팩토리: DB 연결에 사용할 세션 생성기 정의
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# ✅ 모델 정의 시 상속할 Base 클래스 (Declarative 방식 사용)
Base = declarative_base()


def init_db():
    """모든 모델 테이블 생성 (없을 때만)"""
    import models  # noqa: F401  모델을 Base.metadata 에 등록
    Base.metadata.create_all(bind=engine)


def get_db():
    """FastAPI 의존성: 요청 단위 DB 세션"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
