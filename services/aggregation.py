"""성적 집계/통계 엔진.

Users / Classrooms / Grades 세 컬렉션(dict 레코드 목록)을 받아 대시보드용 파생 뷰를 계산합니다.
모든 함수는 순수 함수이며, 필드가 빠지거나 잘못된 레코드가 섞여 있어도 예외를 던지지 않습니다.

- percentage 는 항상 grade / max_grade 로 재계산 (저장된 값은 신뢰하지 않음)
- max_grade <= 0, grade < 0, grade > max_grade 인 성적은 무효 레코드로 보고 집계에서 제외
- 분모가 0 인 비율은 항상 0
"""

import json
import math
from typing import Any, Dict, Iterable, List, Optional, Sequence

Record = Dict[str, Any]

ROLES = ("Teacher", "Student", "Admin")

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS

PASS_THRESHOLD = 70
EXCELLENT_THRESHOLD = 90


# ==========================================================
# [공통] 값 정규화 / 반올림
# ==========================================================
def round_half_up(value: float) -> int:
    """0.5 는 올림 (12.5 → 13)"""
    return int(math.floor(value + 0.5))


def _ratio(part: float, total: float) -> float:
    if not total:
        return 0.0
    return part / total


def _int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _ts(record: Record) -> int:
    return _int(record.get("timestamp")) or 0


def _field(record: Record, *names: str) -> Any:
    for name in names:
        if name in record and record[name] is not None:
            return record[name]
    return None


def _student_of(grade: Record) -> Optional[str]:
    value = _field(grade, "student_wallet", "studentWallet")
    return str(value) if value is not None else None


def _teacher_of(grade: Record) -> Optional[str]:
    value = _field(grade, "teacher_wallet", "teacherWallet", "graded_by", "gradedBy")
    return str(value) if value is not None else None


# ==========================================================
# [4.1] 통계
# ==========================================================
def grade_percentage(grade: Record) -> Optional[int]:
    """round(grade / max_grade * 100), 무효 레코드면 None"""
    score = _int(grade.get("grade")) if "grade" in grade else 0
    max_score = _int(_field(grade, "max_grade", "maxGrade"))
    if score is None or max_score is None or max_score <= 0:
        return None
    if score < 0 or score > max_score:
        return None
    return round_half_up(score / max_score * 100)


def _percentages(grades: Iterable[Record]) -> List[int]:
    result = []
    for g in grades:
        pct = grade_percentage(g)
        if pct is not None:
            result.append(pct)
    return result


def role_counts(users: Sequence[Record]) -> Dict[str, Any]:
    """역할별 인원 수와 비율(소수 1자리). 사용자가 없으면 비율은 모두 0"""
    counts = {role: 0 for role in ROLES}
    for user in users:
        role = user.get("role")
        if role in counts:
            counts[role] += 1
    total = len(users)
    percentages = {role: round(_ratio(n, total) * 100, 1) for role, n in counts.items()}
    return {"total": total, "counts": counts, "percentages": percentages}


def average_percentage(grades: Iterable[Record]) -> int:
    values = _percentages(grades)
    if not values:
        return 0
    return round_half_up(sum(values) / len(values))


def grade_distribution(grades: Iterable[Record]) -> Dict[str, int]:
    """A=[90,100], B=[80,90), C=[70,80), D=[0,70)"""
    buckets = {"A": 0, "B": 0, "C": 0, "D": 0}
    for pct in _percentages(grades):
        if pct >= 90:
            buckets["A"] += 1
        elif pct >= 80:
            buckets["B"] += 1
        elif pct >= 70:
            buckets["C"] += 1
        else:
            buckets["D"] += 1
    return buckets


def distribution_percentages(grades: Iterable[Record]) -> Dict[str, int]:
    buckets = grade_distribution(grades)
    total = sum(buckets.values())
    return {k: round_half_up(_ratio(v, total) * 100) for k, v in buckets.items()}


def grade_extremes(grades: Iterable[Record]) -> Dict[str, int]:
    values = _percentages(grades)
    if not values:
        return {"highest": 0, "lowest": 0}
    return {"highest": max(values), "lowest": min(values)}


def pass_rate(grades: Iterable[Record], threshold: int = PASS_THRESHOLD) -> int:
    values = _percentages(grades)
    passed = len([v for v in values if v >= threshold])
    return round_half_up(_ratio(passed, len(values)) * 100)


def recent_activity_count(records: Iterable[Record], window_ms: int, now: int) -> int:
    """timestamp(ms) 가 [now - window_ms, now] 안에 있는 레코드 수"""
    start = now - window_ms
    return len([r for r in records if start <= _ts(r) <= now])


def storage_footprint(*collections: Any) -> int:
    """직렬화(JSON) 기준 바이트 크기 추정치. 여러 컬렉션이면 합계"""
    total = 0
    for collection in collections:
        payload = json.dumps(collection, ensure_ascii=False, separators=(",", ":"), default=str)
        total += len(payload.encode("utf-8"))
    return total


def storage_report(users: Sequence[Record], classrooms: Sequence[Record], grades: Sequence[Record]) -> Dict[str, int]:
    return {
        "users": storage_footprint(users),
        "classrooms": storage_footprint(classrooms),
        "grades": storage_footprint(grades),
        "total": storage_footprint({"users": users, "classrooms": classrooms, "grades": grades}),
    }


def active_user_count(users: Iterable[Record]) -> int:
    return len([u for u in users if u.get("is_active", u.get("isActive", True))])


def excellent_grades(grades: Iterable[Record], n: int = 10) -> List[Record]:
    """90% 이상 성적, 최신순"""
    excellent = [g for g in grades if (grade_percentage(g) or 0) >= EXCELLENT_THRESHOLD]
    return sorted(excellent, key=_ts, reverse=True)[:max(n, 0)]


# ==========================================================
# [4.2] 학생별 그룹핑 / 랭킹
# ==========================================================
def per_student_averages(grades: Iterable[Record]) -> List[Dict[str, Any]]:
    """학생별 {sum, count, average}. 처음 등장한 순서 유지"""
    groups: Dict[str, Dict[str, Any]] = {}
    for g in grades:
        student = _student_of(g)
        pct = grade_percentage(g)
        if student is None or pct is None:
            continue
        if student not in groups:
            groups[student] = {"student_wallet": student, "sum": 0, "count": 0}
        groups[student]["sum"] += pct
        groups[student]["count"] += 1

    return [
        {**item, "average": round_half_up(item["sum"] / item["count"])}
        for item in groups.values()
    ]


def top_performers(grades: Iterable[Record], n: int = 10) -> List[Dict[str, Any]]:
    ranked = sorted(per_student_averages(grades), key=lambda x: x["average"], reverse=True)
    return ranked[:max(n, 0)]


def needs_attention(grades: Iterable[Record], threshold: int = PASS_THRESHOLD, n: int = 10) -> List[Dict[str, Any]]:
    """평균이 threshold 미만인 학생 (개별 성적이 아니라 평균 기준), 낮은 순"""
    below = [s for s in per_student_averages(grades) if s["average"] < threshold]
    return sorted(below, key=lambda x: x["average"])[:max(n, 0)]


def _student_keys(classroom: Record) -> List[str]:
    keys = []
    for s in classroom.get("students") or []:
        if isinstance(s, dict) and s.get("pubkey") is not None:
            keys.append(str(s["pubkey"]))
        elif isinstance(s, str):
            keys.append(s)
    return keys


def class_average(classroom: Record, grades: Iterable[Record]) -> int:
    members = set(_student_keys(classroom))
    return average_percentage(g for g in grades if _student_of(g) in members)


# ==========================================================
# [4.3] 역할별 필터링
# ==========================================================
def grades_for_student(grades: Iterable[Record], authority: str) -> List[Record]:
    """해당 학생 성적, 최신순 (화면 계약)"""
    mine = [g for g in grades if _student_of(g) == authority]
    return sorted(mine, key=_ts, reverse=True)


def grades_for_teacher(grades: Iterable[Record], authority: str) -> List[Record]:
    return [g for g in grades if _teacher_of(g) == authority]


def classrooms_for_student(classrooms: Iterable[Record], authority: str) -> List[Record]:
    return [c for c in classrooms if authority in _student_keys(c)]


def classrooms_for_teacher(classrooms: Iterable[Record], authority: str) -> List[Record]:
    return [c for c in classrooms if c.get("teacher") == authority]


def search_users(
    users: Iterable[Record],
    query: str = "",
    role: Optional[str] = None,
    active: Optional[bool] = None,
) -> List[Record]:
    q = (query or "").strip()
    result = []
    for user in users:
        # 이름은 대소문자 무시, 계정 주소(base58)는 대소문자 구분
        if q and q.lower() not in str(user.get("username", "")).lower() and q not in str(user.get("authority", "")):
            continue
        if role and user.get("role") != role:
            continue
        if active is not None and bool(user.get("is_active", True)) != active:
            continue
        result.append(user)
    return result


# ==========================================================
# [대시보드] 역할별 요약
# ==========================================================
def system_stats(
    users: Sequence[Record],
    classrooms: Sequence[Record],
    grades: Sequence[Record],
    now: int,
    recent_window_ms: int = DAY_MS,
) -> Dict[str, Any]:
    """관리자 개요"""
    active = active_user_count(users)
    return {
        "total_users": len(users),
        "total_classrooms": len(classrooms),
        "total_grades": len(grades),
        "active_users": active,
        "active_percentage": round(_ratio(active, len(users)) * 100, 1),
        "average_grade": average_percentage(grades),
        "recent_activity": recent_activity_count(grades, recent_window_ms, now),
        "roles": role_counts(users),
    }


def teaching_stats(grades: Sequence[Record], now: int, recent_window_ms: int = 7 * DAY_MS) -> Dict[str, Any]:
    """교사 개요 (grades 는 해당 교사가 채점한 성적)"""
    distribution = grade_distribution(grades)
    return {
        "total_grades": len(grades),
        "average_grade": average_percentage(grades),
        "recent_grades": recent_activity_count(grades, recent_window_ms, now),
        "pass_rate": pass_rate(grades),
        "excellence_rate": pass_rate(grades, EXCELLENT_THRESHOLD),
        "distribution": distribution,
        "distribution_percentages": distribution_percentages(grades),
        **grade_extremes(grades),
    }


def student_stats(grades: Sequence[Record]) -> Dict[str, Any]:
    """학생 개요 (grades 는 grades_for_student 결과, 최신순)"""
    values = _percentages(grades)
    return {
        "total_grades": len(grades),
        "average_grade": average_percentage(grades),
        "distribution": grade_distribution(grades),
        "distribution_percentages": distribution_percentages(grades),
        "passing_grades": len([v for v in values if v >= PASS_THRESHOLD]),
        "excellent_grades": len([v for v in values if v >= EXCELLENT_THRESHOLD]),
        "recent": list(grades[:5]),
        **grade_extremes(grades),
    }


def with_percentage(grade: Record) -> Record:
    """응답용 사본: percentage 를 재계산해서 붙임 (무효 레코드는 None)"""
    return {**grade, "percentage": grade_percentage(grade)}
