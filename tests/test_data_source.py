from services.data_source import FALLBACK_NOTICE, GradebookSource, LedgerHealth
from tests.factories import STUDENT, TEACHER, make_grade
from utils.exceptions import NotAvailableError


class StubAdapter:
    def __init__(self, healthy=True, fail_fetch=False):
        self.healthy = healthy
        self.fail_fetch = fail_fetch
        self.health_calls = 0

    def health_check(self):
        self.health_calls += 1
        return self.healthy

    def _fetch(self, value):
        if self.fail_fetch:
            raise NotAvailableError("down")
        return value

    def fetch_all_users(self):
        return self._fetch([{"authority": TEACHER, "username": "kim", "role": "Teacher"}])

    def fetch_all_classrooms(self):
        return self._fetch([])

    def fetch_all_grades(self):
        return self._fetch([make_grade(STUDENT, TEACHER, 9, 10)])


def test_no_adapter_uses_local_without_notice(store):
    source = GradebookSource(store, LedgerHealth(None))
    collections = source.load_collections()
    assert collections["source"] == "local"
    assert collections["notice"] is None


def test_healthy_ledger_is_preferred(store):
    health = LedgerHealth(StubAdapter())
    assert health.probe() is True
    collections = GradebookSource(store, health).load_collections()
    assert collections["source"] == "ledger"
    assert len(collections["grades"]) == 1


def test_unhealthy_ledger_falls_back_with_notice(store):
    store.register_user(TEACHER, "kim", "Teacher")
    store.add_grade(STUDENT, TEACHER, "local", 5, 10, timestamp=1)
    health = LedgerHealth(StubAdapter(healthy=False))
    health.probe()
    collections = GradebookSource(store, health).load_collections()
    assert collections["source"] == "local"
    assert collections["notice"] == FALLBACK_NOTICE
    assert collections["grades"][0]["assignment_name"] == "local"


def test_fetch_failure_falls_back_without_retry(store):
    adapter = StubAdapter(fail_fetch=True)
    health = LedgerHealth(adapter)
    health.probe()
    collections = GradebookSource(store, health).load_collections()
    assert collections["source"] == "local"
    assert collections["notice"] == FALLBACK_NOTICE
    # 헬스체크는 폴링 주기에만 다시 평가
    assert adapter.health_calls == 1


def test_snapshot_reports_state():
    health = LedgerHealth(StubAdapter(healthy=False))
    assert health.snapshot() == {"enabled": True, "healthy": False, "checked_at": None}
    health.probe()
    assert health.snapshot()["checked_at"] is not None
