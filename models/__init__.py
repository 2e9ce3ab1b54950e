# Base.metadata 에 모든 테이블을 등록하기 위한 import
from models.users import User  # noqa: F401
from models.classrooms import Classroom, ClassroomStudent  # noqa: F401
from models.grades import Grade  # noqa: F401
from models.user_data import UserData  # noqa: F401
