import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.logging_config import setup_logging
from config.settings import settings
from database.db import init_db
from services.data_source import LedgerHealth
from services.ledger_client import create_ledger_adapter
from services.poller import PeriodicTask

# ✅ 로깅 설정 (HTTP 라이브러리 디버그 로그 비활성화 포함)
setup_logging()
logger = logging.getLogger(__name__)

# ✅ 미들웨어 임포트
from middlewares.timing import TimingMiddleware
from middlewares.error_handler import add_error_handlers

# ✅ 라우터 임포트
from routers import (
    classrooms, dashboard, export, grades, ledger, meta, storage, users,
)


# ✅ 앱 수명주기: DB 테이블 준비 + 원장 헬스 폴링 시작/중지
@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()

    adapter = create_ledger_adapter()
    health = LedgerHealth(adapter)
    app.state.ledger_health = health

    poller = None
    if adapter is not None:
        poller = PeriodicTask(settings.DIAGNOSTIC_POLL_SECONDS, health.probe, name="ledger-health")
        poller.start()
    else:
        logger.info("원장 비활성화 → 로컬 레코드만 사용")

    yield

    if poller is not None:
        await poller.stop()


app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# ✅ CORS 설정 (프론트엔드 대시보드 연동)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ 요청 지연 측정 미들웨어 (응답 헤더 X-Latency-Ms 추가)
app.add_middleware(TimingMiddleware)

# ✅ 전역 에러 핸들러 등록 (일관된 JSON 에러 포맷)
add_error_handlers(app)

# ✅ /v1 프리픽스 라우터 등록
app.include_router(users.router,       prefix="/v1")
app.include_router(classrooms.router,  prefix="/v1")
app.include_router(grades.router,      prefix="/v1")
app.include_router(dashboard.router,   prefix="/v1")
app.include_router(ledger.router,      prefix="/v1")
app.include_router(export.router,      prefix="/v1")
app.include_router(storage.router,     prefix="/v1")
app.include_router(meta.router,        prefix="/v1")

# ✅ 헬스체크 엔드포인트
@app.get("/health")
def health_check():
    return {"status": "ok", "message": "API is running"}

# ✅ 루트 엔드포인트
@app.get("/")
def root():
    return {"message": f"{settings.APP_TITLE} - 성적 원장 대시보드"}
