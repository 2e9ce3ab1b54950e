import json
import sys

from sqlalchemy.orm import Session

from database.db import SessionLocal, init_db
from services.migration import import_dump
from services.record_store import RecordStore

JSON_PATH = "data/gradebook-export.json"  # ✅ /v1/export/json 으로 받은 덤프 파일


def import_records(path: str = JSON_PATH):
    init_db()
    db: Session = SessionLocal()

    with open(path, encoding="utf-8-sig") as f:
        dump = json.load(f)
    # /v1/export/json 응답 전체를 그대로 저장한 경우
    if isinstance(dump, dict) and isinstance(dump.get("data"), dict):
        dump = dump["data"]

    try:
        summary = import_dump(RecordStore(db), dump)
    finally:
        db.close()

    for name, counts in summary.items():
        print(f"  {name}: {counts['written']}건 저장, {counts['quarantined']}건 격리")
    print("✅ JSON 덤프 → DB 가져오기 완료")


if __name__ == "__main__":
    import_records(sys.argv[1] if len(sys.argv) > 1 else JSON_PATH)
