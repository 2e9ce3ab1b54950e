from fastapi import Depends, Request
from sqlalchemy.orm import Session

from database.db import get_db
from services.data_source import GradebookSource, LedgerHealth
from services.record_store import RecordStore


def get_store(db: Session = Depends(get_db)) -> RecordStore:
    return RecordStore(db)


def get_ledger_health(request: Request) -> LedgerHealth:
    # lifespan 에서 app.state 에 올려둔 앱 단위 헬스 상태
    health = getattr(request.app.state, "ledger_health", None)
    return health if health is not None else LedgerHealth(None)


def get_source(
    store: RecordStore = Depends(get_store),
    health: LedgerHealth = Depends(get_ledger_health),
) -> GradebookSource:
    return GradebookSource(store, health)
