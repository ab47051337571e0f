from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


class Level(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class AttachmentType(str, Enum):
    DOCUMENT = "document"
    VIDEO = "video"
    OTHER = "other"


class Record(BaseModel):
    """Base for persisted documents: camelCase on the wire, snake_case in code."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "ignore"

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Lesson(Record):
    id: str
    title: str
    duration: str = ""
    video_url: str
    description: str = ""


class Attachment(Record):
    id: str
    title: str
    url: str
    type: AttachmentType = AttachmentType.OTHER


class Course(Record):
    id: str
    title: str
    description: str = ""
    image: str = ""
    instructor: str = ""
    instructor_id: str | None = None
    category: str = ""
    level: Level = Level.BEGINNER
    price: float = Field(0, ge=0)
    is_free: bool = False
    duration: str = ""
    content: list[Lesson] = []
    attachments: list[Attachment] = []

    def lesson_ids(self) -> list[str]:
        return [lesson.id for lesson in self.content]


class CourseView(Course):
    """A course annotated for one viewer. Never persisted."""
    is_purchased: bool = False


class SessionUser(Record):
    """Password-stripped projection stored as the current session."""
    name: str
    email: str
    role: Role = Role.STUDENT
    purchased_courses: list[str] = []
    created_courses: list[str] = []
    completed_lessons: dict[str, list[str]] = {}

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class User(SessionUser):
    password: str | None = None

    def to_session(self) -> SessionUser:
        return SessionUser.model_validate(self.model_dump(exclude={"password"}))


class Enrollment(Record):
    course_id: str
    user_id: str
    user_name: str
    enrollment_date: str


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a trailing Z."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
