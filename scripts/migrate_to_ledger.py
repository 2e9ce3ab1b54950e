import sys

from sqlalchemy.orm import Session

from config.logging_config import setup_logging
from database.db import SessionLocal, init_db
from services.ledger_client import create_ledger_adapter
from services.migration import migrate_to_ledger
from services.record_store import RecordStore
from utils.exceptions import NotAvailableError, PartialFailureError


def migrate():
    setup_logging()
    adapter = create_ledger_adapter()
    if adapter is None:
        print("❌ LEDGER_ENABLED=false → 원장 설정을 먼저 확인하세요")
        return 1

    init_db()
    db: Session = SessionLocal()
    try:
        result = migrate_to_ledger(RecordStore(db), adapter)
    except PartialFailureError as e:
        print(f"⚠️ 일부 실패: 적용 {len(e.applied)}건, 실패 {len(e.failed)}건")
        for key in e.failed:
            print(f"  - {key}")
        return 1
    except NotAvailableError as e:
        print(f"❌ 원장 이전 실패: {e}")
        return 1
    finally:
        db.close()

    print(f"✅ 로컬 레코드 → 원장 이전 완료 (적용 {len(result['applied'])}건, 건너뜀 {len(result['skipped'])}건)")
    return 0


if __name__ == "__main__":
    sys.exit(migrate())
