import logging

from fastapi import APIRouter, Depends, Query

from dependencies.gradebook import get_ledger_health
from schemas.common import ok
from services.data_source import LedgerHealth
from services.ledger_client import LedgerAdapter
from services.validation import validate_authority
from utils.exceptions import NotAvailableError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ledger", tags=["ledger"])


def _adapter(health: LedgerHealth) -> LedgerAdapter:
    if health.adapter is None:
        raise NotAvailableError("Ledger is not configured")
    return health.adapter


# ✅ 원장 상태: 마지막 헬스체크 결과 + 프로그램 계정 정보
@router.get("/status")
def ledger_status(health: LedgerHealth = Depends(get_ledger_health)):
    data = health.snapshot()
    data["program"] = None
    if health.adapter is not None and data["healthy"]:
        try:
            data["program"] = health.adapter.program_info()
        except NotAvailableError as e:
            logger.warning(f"프로그램 정보 조회 실패: {e}")
    return ok(data)


# ✅ 계정 잔액 (SOL)
@router.get("/balance/{account}")
def ledger_balance(account: str, health: LedgerHealth = Depends(get_ledger_health)):
    validate_authority(account, "account")
    return ok({"account": account, "balance": _adapter(health).get_balance(account)})


# ✅ 프로그램 최근 트랜잭션
@router.get("/transactions")
def ledger_transactions(
    limit: int = Query(10, ge=1, le=100),
    health: LedgerHealth = Depends(get_ledger_health),
):
    return ok(_adapter(health).recent_transactions(limit))


# ✅ 네트워크 정보 (slot / epoch / blockhash)
@router.get("/network")
def ledger_network(health: LedgerHealth = Depends(get_ledger_health)):
    return ok(_adapter(health).network_info())
