"""테스트용 계정 주소 / 레코드 생성 도우미"""


def wallet(name: str) -> str:
    # base58 문자만 사용 (0, O, I, l 제외), 40자
    return (name + "1" * 44)[:40]


ADMIN = wallet("Admin")
TEACHER = wallet("Teacher")
TEACHER2 = wallet("TeacherTwo")
STUDENT = wallet("Student")
STUDENT2 = wallet("StudentTwo")
STUDENT3 = wallet("StudentThree")
GUEST = wallet("Guest")


def make_user(authority, role, username=None, is_active=True, created_at=0):
    return {
        "authority": authority,
        "username": username or role.lower(),
        "role": role,
        "created_at": created_at,
        "is_active": is_active,
    }


def make_grade(student, teacher, grade, max_grade=100, assignment="Quiz", timestamp=0):
    return {
        "grade_id": f"{student}_{assignment}_{timestamp}",
        "student_wallet": student,
        "teacher_wallet": teacher,
        "assignment_name": assignment,
        "grade": grade,
        "max_grade": max_grade,
        "timestamp": timestamp,
    }


def make_classroom(classroom_id, teacher, students=(), name="Algebra", course="Math", created_at=0):
    return {
        "classroom_id": classroom_id,
        "name": name,
        "course": course,
        "teacher": teacher,
        "students": [{"pubkey": s} for s in students],
        "created_at": created_at,
        "is_active": True,
    }
