import pytest
from sqlalchemy.exc import SQLAlchemyError

from services.cascade import cascade_delete_user
from tests.factories import STUDENT, STUDENT2, TEACHER, TEACHER2, make_classroom, make_grade, make_user
from utils.exceptions import PartialFailureError, RecordNotFoundError


@pytest.fixture
def seeded(store):
    """교사 TEACHER 가 c1(학생 2명) 을 담당하고 성적 3건을 채점한 상태"""
    store.replace_collections({
        "users": [
            make_user(TEACHER, "Teacher"),
            make_user(TEACHER2, "Teacher"),
            make_user(STUDENT, "Student"),
            make_user(STUDENT2, "Student"),
        ],
        "classrooms": [
            make_classroom("c1", TEACHER, [STUDENT, STUDENT2]),
            make_classroom("c2", TEACHER2, [STUDENT, STUDENT2], name="Physics"),
        ],
        "grades": [
            make_grade(STUDENT, TEACHER, 80, assignment="hw1", timestamp=1),
            make_grade(STUDENT2, TEACHER, 70, assignment="hw1", timestamp=2),
            make_grade(STUDENT, TEACHER, 90, assignment="hw2", timestamp=3),
            make_grade(STUDENT, TEACHER2, 60, assignment="lab", timestamp=4),
        ],
    })
    store.write_user_scoped(TEACHER, {"theme": "dark"})
    return store


def test_cascade_delete_teacher_deactivates_classroom(seeded, db):
    report = cascade_delete_user(db, TEACHER, "deactivate")

    assert report.users_removed == 1
    assert report.grades_removed == 3
    assert report.classrooms_deactivated == 1

    assert seeded.get_user(TEACHER) is None
    assert all(g["teacher_wallet"] != TEACHER for g in seeded.read_collection("grades"))
    c1 = seeded.get_classroom("c1")
    assert c1["teacher"] is None
    assert c1["is_active"] is False
    assert seeded.read_user_scoped(TEACHER) is None


def test_cascade_delete_teacher_deletes_classroom(seeded, db):
    report = cascade_delete_user(db, TEACHER, "delete")

    assert report.classrooms_deleted == 1
    assert seeded.get_classroom("c1") is None
    assert seeded.get_classroom("c2") is not None
    assert [u["authority"] for u in seeded.read_collection("users") if u["authority"] == TEACHER] == []


def test_cascade_delete_student_removes_memberships_and_grades(seeded, db):
    report = cascade_delete_user(db, STUDENT)

    assert report.memberships_removed == 2
    assert report.grades_removed == 3
    for classroom in seeded.read_collection("classrooms"):
        assert {"pubkey": STUDENT} not in classroom["students"]
        assert {"pubkey": STUDENT2} in classroom["students"]
    assert [g["student_wallet"] for g in seeded.read_collection("grades")] == [STUDENT2]


def test_cascade_delete_unknown_user(store, db):
    with pytest.raises(RecordNotFoundError):
        cascade_delete_user(db, TEACHER)


def test_cascade_delete_unknown_policy(seeded, db):
    with pytest.raises(ValueError):
        cascade_delete_user(db, TEACHER, "archive")
    assert seeded.get_user(TEACHER) is not None


def _failing_commit():
    raise SQLAlchemyError("database is locked")


def test_cascade_commit_failure_rolls_back_everything(seeded, db, monkeypatch):
    grades_before = seeded.read_collection("grades")
    monkeypatch.setattr(db, "commit", _failing_commit)

    with pytest.raises(PartialFailureError) as exc:
        cascade_delete_user(db, TEACHER, "delete")
    assert exc.value.applied == []
    assert exc.value.failed == ["users", "grades", "classrooms", "user_data"]

    monkeypatch.undo()
    assert seeded.get_user(TEACHER) is not None
    assert seeded.read_collection("grades") == grades_before
    assert seeded.get_classroom("c1")["teacher"] == TEACHER
    assert seeded.read_user_scoped(TEACHER) == {"theme": "dark"}


def test_replace_collections_commit_failure_keeps_previous_rows(seeded, db, monkeypatch):
    monkeypatch.setattr(db, "commit", _failing_commit)

    with pytest.raises(PartialFailureError) as exc:
        seeded.replace_collections({"users": [], "grades": [make_grade(STUDENT, TEACHER, 10, assignment="new")]})
    assert exc.value.applied == []
    assert exc.value.failed == ["users", "grades"]

    monkeypatch.undo()
    assert seeded.collection_sizes() == {"users": 4, "classrooms": 2, "grades": 4}
    assert "new" not in [g["assignment_name"] for g in seeded.read_collection("grades")]
