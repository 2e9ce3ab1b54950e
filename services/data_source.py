"""데이터 소스 선택: 원장이 건강하면 원장, 아니면 Record Store.

헬스 상태는 LedgerHealth 가 들고 있으며 폴링 주기마다 한 번만 다시 평가합니다.
원장 호출이 실패하면 재시도 없이 바로 Record Store 로 내려가고, 사용자에게 보여줄 notice 를 남깁니다.
"""

import logging
import threading
from typing import Any, Dict, Optional

from services.ledger_client import LedgerAdapter
from services.record_store import RecordStore, now_ms
from utils.exceptions import NotAvailableError

logger = logging.getLogger(__name__)

FALLBACK_NOTICE = "Ledger program not accessible. Using local records."


class LedgerHealth:
    """앱 단위로 공유하는 원장 헬스 상태"""

    def __init__(self, adapter: Optional[LedgerAdapter]):
        self.adapter = adapter
        self.healthy: Optional[bool] = None
        self.checked_at: Optional[int] = None
        self._lock = threading.Lock()

    def probe(self) -> bool:
        if self.adapter is None:
            healthy = False
        else:
            healthy = self.adapter.health_check()
        with self._lock:
            if self.healthy is not False and not healthy and self.adapter is not None:
                logger.warning("원장 프로그램 접근 불가 → 로컬 레코드 사용")
            self.healthy = healthy
            self.checked_at = now_ms()
        return healthy

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "enabled": self.adapter is not None,
                "healthy": bool(self.healthy),
                "checked_at": self.checked_at,
            }


class GradebookSource:
    def __init__(self, store: RecordStore, health: Optional[LedgerHealth] = None):
        self.store = store
        self.health = health

    @property
    def adapter(self) -> Optional[LedgerAdapter]:
        return self.health.adapter if self.health else None

    def use_ledger(self) -> bool:
        return self.adapter is not None and bool(self.health.healthy)

    def load_collections(self) -> Dict[str, Any]:
        """{"users", "classrooms", "grades", "source", "notice"}"""
        notice = None
        if self.use_ledger():
            try:
                return {
                    "users": self.adapter.fetch_all_users(),
                    "classrooms": self.adapter.fetch_all_classrooms(),
                    "grades": self.adapter.fetch_all_grades(),
                    "source": "ledger",
                    "notice": None,
                }
            except NotAvailableError as e:
                logger.warning(f"원장 조회 실패, 로컬 레코드로 대체: {e}")
                notice = FALLBACK_NOTICE
        elif self.adapter is not None:
            notice = FALLBACK_NOTICE

        collections: Dict[str, Any] = self.store.collections()
        collections.update({"source": "local", "notice": notice})
        return collections
