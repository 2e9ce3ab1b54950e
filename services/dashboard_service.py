"""역할별 대시보드 뷰 조립.

컬렉션(dict 목록)과 현재 시각을 받아 aggregation 함수들을 조합만 합니다.
"""

from typing import Any, Dict

from config.settings import settings
from services import aggregation
from services.aggregation import DAY_MS, HOUR_MS


def _envelope(collections: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "source": collections.get("source", "local"),
        "notice": collections.get("notice"),
        "refresh_seconds": settings.DASHBOARD_POLL_SECONDS,
    }


def _classroom_summary(classroom: Dict[str, Any], grades) -> Dict[str, Any]:
    return {
        **classroom,
        "student_count": len(classroom.get("students") or []),
        "average": aggregation.class_average(classroom, grades),
    }


# ==========================================================
# [관리자] 시스템 전체 개요
# ==========================================================
def admin_dashboard(collections: Dict[str, Any], now: int) -> Dict[str, Any]:
    users = collections["users"]
    classrooms = collections["classrooms"]
    grades = collections["grades"]
    newest = sorted(grades, key=lambda g: g.get("timestamp", 0), reverse=True)

    return {
        **_envelope(collections),
        "stats": aggregation.system_stats(
            users, classrooms, grades, now, settings.RECENT_ACTIVITY_HOURS * HOUR_MS
        ),
        "distribution": aggregation.grade_distribution(grades),
        "storage_bytes": aggregation.storage_report(users, classrooms, grades),
        "recent_grades": [aggregation.with_percentage(g) for g in newest[:20]],
        "excellent_grades": [
            aggregation.with_percentage(g)
            for g in aggregation.excellent_grades(grades, settings.RANKING_LIMIT)
        ],
        "top_performers": aggregation.top_performers(grades, settings.RANKING_LIMIT),
        "needs_attention": aggregation.needs_attention(
            grades, settings.ATTENTION_THRESHOLD, settings.RANKING_LIMIT
        ),
        "classrooms": [_classroom_summary(c, grades) for c in classrooms],
    }


# ==========================================================
# [교사] 내가 채점한 성적 / 내 학급
# ==========================================================
def teacher_dashboard(collections: Dict[str, Any], authority: str, now: int) -> Dict[str, Any]:
    grades = collections["grades"]
    my_grades = aggregation.grades_for_teacher(grades, authority)
    my_classrooms = aggregation.classrooms_for_teacher(collections["classrooms"], authority)
    newest = sorted(my_grades, key=lambda g: g.get("timestamp", 0), reverse=True)

    return {
        **_envelope(collections),
        "authority": authority,
        "stats": aggregation.teaching_stats(my_grades, now, settings.TEACHER_RECENT_DAYS * DAY_MS),
        "recent_grades": [aggregation.with_percentage(g) for g in newest[:5]],
        "top_performers": aggregation.top_performers(my_grades, settings.RANKING_LIMIT),
        "needs_attention": aggregation.needs_attention(
            my_grades, settings.ATTENTION_THRESHOLD, settings.RANKING_LIMIT
        ),
        "classrooms": [_classroom_summary(c, grades) for c in my_classrooms],
    }


# ==========================================================
# [학생] 내 성적 / 내 학급
# ==========================================================
def student_dashboard(collections: Dict[str, Any], authority: str) -> Dict[str, Any]:
    my_grades = aggregation.grades_for_student(collections["grades"], authority)
    my_classrooms = aggregation.classrooms_for_student(collections["classrooms"], authority)
    stats = aggregation.student_stats(my_grades)
    stats["recent"] = [aggregation.with_percentage(g) for g in stats["recent"]]

    return {
        **_envelope(collections),
        "authority": authority,
        "stats": stats,
        "grades": [aggregation.with_percentage(g) for g in my_grades],
        "classrooms": [
            {"classroom_id": c.get("classroom_id"), "name": c.get("name"),
             "course": c.get("course"), "teacher": c.get("teacher")}
            for c in my_classrooms
        ],
    }
