import csv
import io
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from services import aggregation

CSV_COLUMNS = ["Assignment", "Student", "Grade", "MaxGrade", "Percentage", "Date"]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _date(ts_ms: Any) -> str:
    try:
        return datetime.fromtimestamp(int(ts_ms) / 1000, tz=timezone.utc).date().isoformat()
    except (TypeError, ValueError, OverflowError, OSError):
        return ""


class ExportService:
    """전체 JSON 덤프 / 성적 CSV / 교사 리포트 생성"""

    def build_json_export(self, collections: Dict[str, Any]) -> Dict[str, Any]:
        users = collections.get("users", [])
        classrooms = collections.get("classrooms", [])
        grades = collections.get("grades", [])
        return {
            "users": users,
            "classrooms": classrooms,
            "grades": [aggregation.with_percentage(g) for g in grades],
            "metadata": {
                "exported_at": _now_iso(),
                "source": collections.get("source", "local"),
                "counts": {
                    "users": len(users),
                    "classrooms": len(classrooms),
                    "grades": len(grades),
                },
                "storage_bytes": aggregation.storage_report(users, classrooms, grades),
            },
        }

    def grades_csv(self, grades: List[Dict[str, Any]]) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_COLUMNS)
        for g in grades:
            pct = aggregation.grade_percentage(g)
            writer.writerow([
                g.get("assignment_name", ""),
                g.get("student_wallet", ""),
                g.get("grade", ""),
                g.get("max_grade", ""),
                f"{pct}%" if pct is not None else "",
                _date(g.get("timestamp")),
            ])
        return buffer.getvalue()

    def teacher_report(self, teacher: Dict[str, Any], grades: List[Dict[str, Any]], now: int) -> Dict[str, Any]:
        return {
            "teacher": teacher.get("username"),
            "authority": teacher.get("authority"),
            "generated_at": _now_iso(),
            "stats": aggregation.teaching_stats(grades, now),
            "grades": [aggregation.with_percentage(g) for g in grades],
        }

    @staticmethod
    def filename(prefix: str, ext: str, now_ms: Optional[int] = None) -> str:
        stamp = now_ms if now_ms is not None else int(datetime.now(timezone.utc).timestamp() * 1000)
        return f"{prefix}-{stamp}.{ext}"


export_service = ExportService()
