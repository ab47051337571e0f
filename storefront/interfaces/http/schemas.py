from typing import Literal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from ...application.dto import NewAttachment, NewCourse, NewLesson, PaymentDetails
from ...domain.entities import AttachmentType, Lesson, Level


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class RegisterReq(CamelModel):
    name: str
    email: str
    password: str
    role: Literal["student", "instructor"] = "student"


class LoginReq(CamelModel):
    email: str
    password: str


class OkResp(CamelModel):
    ok: bool = True


class AttachmentIn(CamelModel):
    title: str
    url: str
    type: AttachmentType = AttachmentType.OTHER


class CourseCreate(CamelModel):
    title: str
    description: str
    category: str
    level: Level = Level.BEGINNER
    price: float = Field(0, ge=0)
    is_free: bool = False
    duration: str
    image: str = ""
    attachments: list[AttachmentIn] = []

    def to_dto(self) -> NewCourse:
        return NewCourse(
            title=self.title,
            description=self.description,
            category=self.category,
            level=self.level.value,
            price=self.price,
            is_free=self.is_free,
            duration=self.duration,
            image=self.image,
            attachments=[NewAttachment(title=a.title, url=a.url, type=a.type.value) for a in self.attachments],
        )


class LessonCreate(CamelModel):
    title: str
    description: str
    duration: str
    video_url: str

    def to_dto(self) -> NewLesson:
        return NewLesson(
            title=self.title,
            description=self.description,
            duration=self.duration,
            video_url=self.video_url,
        )


class ContentUpdate(CamelModel):
    content: list[Lesson]


class StudentAdd(CamelModel):
    email: str
    name: str


class PaymentReq(CamelModel):
    card_number: str
    card_holder: str
    expiry_date: str
    cvv: str

    def to_dto(self) -> PaymentDetails:
        return PaymentDetails(
            card_number=self.card_number,
            card_holder=self.card_holder,
            expiry_date=self.expiry_date,
            cvv=self.cvv,
        )


class CheckoutResp(CamelModel):
    state: str
    errors: dict[str, str] = {}
    message: str = ""


class CategoryOut(CamelModel):
    id: str
    name: str
    icon: str


class ProgressOut(CamelModel):
    course_id: str
    title: str
    completed: int
    total: int
    percent: int


class CompleteResp(CamelModel):
    ok: bool
    course_id: str
    lesson_id: str
    completed_lessons: list[str]


class StatsOut(CamelModel):
    courses: int
    instructors: int
    students: int
    enrollments: int


class ConsistencyIssueOut(CamelModel):
    course_id: str
    user_id: str
    issue: str
