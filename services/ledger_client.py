"""Remote Ledger Adapter.

- LedgerRPCClient: 노드 JSON-RPC (잔액, 프로그램 계정, 트랜잭션 이력, 슬롯/에포크)
- LedgerGatewayClient: 온체인 프로그램 메서드 호출을 대신해주는 내부 게이트웨이 HTTP API
- LedgerAdapter: 위 둘을 묶어 Record Store 와 같은 레코드 형태로 돌려줌

네트워크 실패는 모두 NotAvailableError 로 변환하며, 재시도는 하지 않습니다.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from config.settings import settings
from services.normalize import normalize_collection
from utils.exceptions import NotAvailableError, RegistrationError

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000


def _expect(value: Any, kind: type, what: str) -> Any:
    """원장 응답 형태 검사. 기대한 타입이 아니면 NotAvailableError"""
    if not isinstance(value, kind):
        raise NotAvailableError(f"Ledger returned malformed {what}")
    return value


def _int_field(data: Dict[str, Any], key: str) -> int:
    try:
        return int(data.get(key) or 0)
    except (TypeError, ValueError) as e:
        raise NotAvailableError(f"Ledger returned malformed {key}") from e


# ==========================================================
# [1단계] 노드 JSON-RPC 클라이언트
# ==========================================================
class LedgerRPCClient:
    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.BaseTransport] = None):
        self.base = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self._request_id = 0

    def call(self, method: str, params: Optional[list] = None) -> Any:
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params or []}
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                r = client.post(self.base, json=payload)
                r.raise_for_status()
                body = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise NotAvailableError(f"Ledger RPC {method} failed: {e}") from e

        body = _expect(body, dict, f"RPC {method} response")
        if body.get("error"):
            error = body["error"]
            message = error.get("message", "unknown error") if isinstance(error, dict) else error
            raise NotAvailableError(f"Ledger RPC {method} error: {message}")
        return body.get("result")

    def _dict(self, method: str, params: Optional[list] = None) -> Dict[str, Any]:
        return _expect(self.call(method, params) or {}, dict, f"RPC {method} result")

    def _list(self, method: str, params: Optional[list] = None) -> List[Any]:
        return _expect(self.call(method, params) or [], list, f"RPC {method} result")

    # 필요한 RPC 메서드만 노출
    def get_account_info(self, pubkey: str) -> Optional[Dict[str, Any]]:
        value = self._dict("getAccountInfo", [pubkey, {"encoding": "base64"}]).get("value")
        return _expect(value, dict, "account info") if value is not None else None

    def get_balance(self, pubkey: str) -> int:
        return _int_field(self._dict("getBalance", [pubkey]), "value")

    def get_signatures_for_address(self, pubkey: str, limit: int = 10) -> List[Dict[str, Any]]:
        return [s for s in self._list("getSignaturesForAddress", [pubkey, {"limit": limit}]) if isinstance(s, dict)]

    def get_slot(self) -> int:
        return _int_field({"slot": self.call("getSlot") or 0}, "slot")

    def get_epoch_info(self) -> Dict[str, Any]:
        return self._dict("getEpochInfo")

    def get_latest_blockhash(self) -> str:
        value = self._dict("getLatestBlockhash").get("value") or {}
        return str(_expect(value, dict, "latest blockhash").get("blockhash", ""))

    def get_recent_performance_samples(self, limit: int = 1) -> List[Dict[str, Any]]:
        return [s for s in self._list("getRecentPerformanceSamples", [limit]) if isinstance(s, dict)]


# ==========================================================
# [2단계] 프로그램 게이트웨이 클라이언트
# ==========================================================
class LedgerGatewayClient:
    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base = base_url.rstrip("/")
        self.headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.timeout = timeout
        self.transport = transport

    def _request(self, method: str, path: str, json: Optional[dict] = None) -> Any:
        url = f"{self.base}{path}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                r = client.request(method, url, json=json, headers=self.headers)
        except httpx.HTTPError as e:
            raise NotAvailableError(f"Ledger gateway {method} {path} failed: {e}") from e

        if r.status_code == 409:
            raise RegistrationError("Account already registered on ledger")
        if r.status_code >= 400:
            raise NotAvailableError(f"Ledger gateway {method} {path} returned {r.status_code}")
        try:
            return r.json()
        except ValueError as e:
            raise NotAvailableError(f"Ledger gateway {method} {path} returned invalid JSON") from e

    def get(self, path: str) -> Any:
        return self._request("GET", path)

    def post(self, path: str, json: dict) -> Any:
        return self._request("POST", path, json=json)


# ==========================================================
# [3단계] 어댑터
# ==========================================================
class LedgerAdapter:
    """원장 프로그램 위의 Users / Classrooms / Grades 읽기/쓰기"""

    def __init__(self, rpc: LedgerRPCClient, gateway: LedgerGatewayClient, program_id: str):
        self.rpc = rpc
        self.gateway = gateway
        self.program_id = program_id

    # ✅ 헬스체크: 프로그램 계정이 존재하고 실행 가능해야 정상
    def health_check(self) -> bool:
        try:
            info = self.rpc.get_account_info(self.program_id)
        except NotAvailableError as e:
            logger.warning(f"원장 헬스체크 실패: {e}")
            return False
        return bool(info) and bool(info.get("executable"))

    # ---------------- 쓰기 ----------------
    def _submit(self, path: str, payload: Dict[str, Any]) -> str:
        """게이트웨이에 프로그램 호출 요청 → 트랜잭션 서명"""
        result = self.gateway.post(path, payload)
        signature = result.get("signature") if isinstance(result, dict) else None
        if not isinstance(signature, str) or not signature:
            raise NotAvailableError(f"Ledger gateway POST {path} returned no signature")
        return signature

    def register_user(self, username: str, role: str, authority: str) -> str:
        return self._submit(
            "/program/users",
            {"username": username, "role": role.lower(), "authority": authority},
        )

    def create_classroom(self, name: str, course: str, teacher: str) -> str:
        return self._submit("/program/classrooms", {"name": name, "course": course, "teacher": teacher})

    def add_grade(self, student: str, assignment_name: str, grade: int, max_grade: int, teacher: str) -> str:
        return self._submit(
            "/program/grades",
            {
                "student": student,
                "assignment_name": assignment_name,
                "grade": grade,
                "max_grade": max_grade,
                "teacher": teacher,
            },
        )

    # ---------------- 읽기 ----------------
    def _fetch(self, path: str) -> List[Any]:
        return _expect(self.gateway.get(path) or [], list, f"GET {path} response")

    def fetch_all_users(self) -> List[Dict[str, Any]]:
        records, _ = normalize_collection("users", self._fetch("/program/users"))
        return records

    def fetch_all_classrooms(self) -> List[Dict[str, Any]]:
        records, _ = normalize_collection("classrooms", self._fetch("/program/classrooms"))
        return records

    def fetch_all_grades(self) -> List[Dict[str, Any]]:
        raws = []
        for raw in self._fetch("/program/grades"):
            if isinstance(raw, dict) and isinstance(raw.get("timestamp"), int):
                # 원장 타임스탬프는 초 단위 → 밀리초
                raw = {**raw, "timestamp": raw["timestamp"] * 1000}
            raws.append(raw)
        records, _ = normalize_collection("grades", raws)
        return records

    # ---------------- 진단 ----------------
    def get_balance(self, account: str) -> float:
        return self.rpc.get_balance(account) / LAMPORTS_PER_SOL

    def program_info(self) -> Dict[str, Any]:
        info = self.rpc.get_account_info(self.program_id)
        if not info:
            raise NotAvailableError("Program account not found")
        lamports = _int_field(info, "lamports")
        return {
            "program_id": self.program_id,
            "balance": lamports / LAMPORTS_PER_SOL,
            "lamports": lamports,
            "executable": bool(info.get("executable")),
            "owner": info.get("owner", ""),
        }

    def recent_transactions(self, limit: int = 10) -> List[Dict[str, Any]]:
        signatures = self.rpc.get_signatures_for_address(self.program_id, limit)
        return [
            {
                "signature": s.get("signature"),
                "slot": s.get("slot") or 0,
                "block_time": s.get("blockTime"),
                "confirmation_status": s.get("confirmationStatus") or "unknown",
                "err": s.get("err"),
                "memo": s.get("memo"),
            }
            for s in signatures
        ]

    def network_info(self) -> Dict[str, Any]:
        epoch = self.rpc.get_epoch_info()
        samples = self.rpc.get_recent_performance_samples(1)
        sample = samples[0] if samples else {}
        return {
            "current_slot": self.rpc.get_slot(),
            "epoch": epoch.get("epoch", 0),
            "slot_index": epoch.get("slotIndex", 0),
            "slots_in_epoch": epoch.get("slotsInEpoch", 0),
            "recent_blockhash": self.rpc.get_latest_blockhash(),
            "transaction_count": sample.get("numTransactions", 0),
            "sample_period_secs": sample.get("samplePeriodSecs", 0),
        }


def create_ledger_adapter(transport: Optional[httpx.BaseTransport] = None) -> Optional[LedgerAdapter]:
    """설정에서 원장 어댑터 생성. LEDGER_ENABLED 가 아니면 None"""
    if not settings.LEDGER_ENABLED:
        return None
    return LedgerAdapter(
        rpc=LedgerRPCClient(settings.LEDGER_RPC_URL, settings.LEDGER_TIMEOUT, transport),
        gateway=LedgerGatewayClient(
            settings.LEDGER_GATEWAY_URL, settings.LEDGER_INTERNAL_TOKEN, settings.LEDGER_TIMEOUT, transport
        ),
        program_id=settings.LEDGER_PROGRAM_ID,
    )
