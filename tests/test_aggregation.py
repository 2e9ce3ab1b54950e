from services import aggregation
from services.aggregation import DAY_MS, HOUR_MS
from tests.factories import STUDENT, STUDENT2, STUDENT3, TEACHER, make_classroom, make_grade, make_user


def _grades(*pairs):
    return [
        make_grade(student, TEACHER, grade, assignment=f"A{i}", timestamp=i)
        for i, (student, grade) in enumerate(pairs)
    ]


# ==========================================================
# 백분율 / 통계
# ==========================================================
def test_grade_percentage_rounds_half_up():
    assert aggregation.grade_percentage(make_grade(STUDENT, TEACHER, 1, 8)) == 13  # 12.5
    assert aggregation.grade_percentage(make_grade(STUDENT, TEACHER, 45, 50)) == 90


def test_grade_percentage_invalid_records_are_none():
    assert aggregation.grade_percentage(make_grade(STUDENT, TEACHER, 10, 0)) is None
    assert aggregation.grade_percentage(make_grade(STUDENT, TEACHER, -1, 10)) is None
    assert aggregation.grade_percentage(make_grade(STUDENT, TEACHER, 11, 10)) is None
    assert aggregation.grade_percentage({"grade": 5}) is None


def test_percentage_always_within_bounds():
    for max_grade in (1, 3, 7, 50, 100):
        for grade in range(0, max_grade + 1):
            pct = aggregation.grade_percentage(make_grade(STUDENT, TEACHER, grade, max_grade))
            assert 0 <= pct <= 100


def test_stored_percentage_is_ignored():
    grade = {**make_grade(STUDENT, TEACHER, 45, 50), "percentage": 12}
    assert aggregation.grade_percentage(grade) == 90


def test_distribution_buckets_cover_every_grade():
    grades = _grades(*[(STUDENT, score) for score in (100, 90, 89, 80, 79, 70, 69, 0, 55, 95)])
    buckets = aggregation.grade_distribution(grades)
    assert sum(buckets.values()) == len(grades)
    assert buckets == {"A": 3, "B": 2, "C": 2, "D": 3}


def test_zero_max_grade_excluded_from_aggregates():
    grades = _grades((STUDENT, 80)) + [make_grade(STUDENT, TEACHER, 5, 0, assignment="broken")]
    assert aggregation.average_percentage(grades) == 80
    assert sum(aggregation.grade_distribution(grades).values()) == 1


def test_empty_inputs_never_divide_by_zero():
    assert aggregation.average_percentage([]) == 0
    counts = aggregation.role_counts([])
    assert counts["total"] == 0
    assert counts["percentages"] == {"Teacher": 0, "Student": 0, "Admin": 0}
    assert aggregation.pass_rate([]) == 0
    assert aggregation.distribution_percentages([]) == {"A": 0, "B": 0, "C": 0, "D": 0}
    assert aggregation.grade_extremes([]) == {"highest": 0, "lowest": 0}


def test_role_counts_percentages_one_decimal():
    users = [
        make_user(TEACHER, "Teacher"),
        make_user(STUDENT, "Student"),
        make_user(STUDENT2, "Student"),
    ]
    counts = aggregation.role_counts(users)
    assert counts["counts"] == {"Teacher": 1, "Student": 2, "Admin": 0}
    assert counts["percentages"]["Teacher"] == 33.3
    assert counts["percentages"]["Student"] == 66.7


def test_single_teacher_single_grade_summary():
    users = [make_user("A" * 32, "Teacher")]
    grades = [make_grade("S1", "A" * 32, 45, 50, timestamp=1_700_000_000_000)]
    assert aggregation.role_counts(users)["counts"]["Teacher"] == 1
    assert aggregation.average_percentage(grades) == 90
    assert aggregation.grade_distribution(grades) == {"A": 1, "B": 0, "C": 0, "D": 0}


def test_recent_activity_window_is_inclusive():
    now = 10 * DAY_MS
    records = [
        {"timestamp": now},
        {"timestamp": now - HOUR_MS},
        {"timestamp": now - DAY_MS},
        {"timestamp": now - DAY_MS - 1},
        {"timestamp": now + 1},
    ]
    assert aggregation.recent_activity_count(records, DAY_MS, now) == 3
    assert aggregation.recent_activity_count(records, 7 * DAY_MS, now) == 4


def test_storage_footprint_counts_utf8_bytes():
    assert aggregation.storage_footprint([]) == 2
    assert aggregation.storage_footprint([{"a": "é"}]) == len('[{"a":"é"}]'.encode("utf-8"))
    assert aggregation.storage_footprint([], []) == 4


# ==========================================================
# 학생별 그룹핑 / 랭킹
# ==========================================================
def test_per_student_averages_first_appearance_order_and_idempotent():
    grades = _grades((STUDENT2, 50), (STUDENT, 100), (STUDENT2, 71))
    first = aggregation.per_student_averages(grades)
    second = aggregation.per_student_averages(grades)
    assert first == second
    assert [s["student_wallet"] for s in first] == [STUDENT2, STUDENT]
    assert first[0] == {"student_wallet": STUDENT2, "sum": 121, "count": 2, "average": 61}


def test_top_performers_stable_and_truncated():
    grades = _grades((STUDENT, 80), (STUDENT2, 90), (STUDENT3, 80))
    top = aggregation.top_performers(grades, 2)
    assert [s["student_wallet"] for s in top] == [STUDENT2, STUDENT]
    assert aggregation.top_performers(grades, 0) == []


def test_rankings_bounded_by_n_and_range():
    grades = _grades(*[(f"S{i}", (i * 13) % 101) for i in range(30)])
    for n in (0, 1, 5, 50):
        for ranked in (aggregation.top_performers(grades, n), aggregation.needs_attention(grades, 70, n)):
            assert len(ranked) <= n
            assert all(0 <= s["average"] <= 100 for s in ranked)


def test_needs_attention_uses_average_not_single_grades():
    grades = _grades((STUDENT, 95), (STUDENT, 65))
    assert aggregation.needs_attention(grades, threshold=70) == []


def test_needs_attention_sorted_ascending():
    grades = _grades((STUDENT, 60), (STUDENT2, 30), (STUDENT3, 90))
    result = aggregation.needs_attention(grades, threshold=70)
    assert [s["student_wallet"] for s in result] == [STUDENT2, STUDENT]


def test_class_average_only_counts_members():
    classroom = make_classroom("c1", TEACHER, [STUDENT, STUDENT2])
    grades = _grades((STUDENT, 80), (STUDENT2, 90), (STUDENT3, 10))
    assert aggregation.class_average(classroom, grades) == 85
    assert aggregation.class_average(make_classroom("c2", TEACHER), grades) == 0


# ==========================================================
# 역할별 필터링
# ==========================================================
def test_grades_for_student_newest_first():
    grades = [
        make_grade(STUDENT, TEACHER, 80, timestamp=1),
        make_grade(STUDENT2, TEACHER, 80, timestamp=2),
        make_grade(STUDENT, TEACHER, 70, timestamp=3),
    ]
    result = aggregation.grades_for_student(grades, STUDENT)
    assert [g["timestamp"] for g in result] == [3, 1]


def test_role_scoped_classroom_filters():
    classrooms = [
        make_classroom("c1", TEACHER, [STUDENT]),
        make_classroom("c2", "other", [STUDENT2]),
    ]
    assert [c["classroom_id"] for c in aggregation.classrooms_for_teacher(classrooms, TEACHER)] == ["c1"]
    assert [c["classroom_id"] for c in aggregation.classrooms_for_student(classrooms, STUDENT2)] == ["c2"]
    assert aggregation.grades_for_teacher(_grades((STUDENT, 1)), "nobody") == []


def test_search_users_filters():
    users = [
        make_user(TEACHER, "Teacher", "Kim"),
        make_user(STUDENT, "Student", "Park", is_active=False),
    ]
    assert len(aggregation.search_users(users, "kim")) == 1
    assert len(aggregation.search_users(users, role="Student")) == 1
    assert aggregation.search_users(users, active=True)[0]["username"] == "Kim"


def test_search_users_authority_is_case_sensitive():
    users = [make_user(TEACHER, "Teacher", "Kim"), make_user(STUDENT, "Student", "Park")]
    assert aggregation.search_users(users, TEACHER[:10]) == [users[0]]
    assert aggregation.search_users(users, TEACHER.lower()) == []
    assert aggregation.search_users(users, "  PARK ") == [users[1]]


def test_missing_fields_do_not_raise():
    junk = [{}, {"grade": "x"}, {"max_grade": None}, {"student_wallet": STUDENT}]
    assert aggregation.average_percentage(junk) == 0
    assert aggregation.per_student_averages(junk) == []
    assert aggregation.recent_activity_count(junk, DAY_MS, 0) == 4
    stats = aggregation.system_stats([], [], junk, now=0)
    assert stats["total_grades"] == 4
    assert stats["average_grade"] == 0


def test_teaching_stats_summary():
    now = 30 * DAY_MS
    grades = [
        make_grade(STUDENT, TEACHER, 95, timestamp=now - DAY_MS),
        make_grade(STUDENT2, TEACHER, 60, timestamp=now - 10 * DAY_MS),
    ]
    stats = aggregation.teaching_stats(grades, now)
    assert stats["total_grades"] == 2
    assert stats["recent_grades"] == 1
    assert stats["pass_rate"] == 50
    assert stats["highest"] == 95
    assert stats["lowest"] == 60
