from dataclasses import dataclass, field


@dataclass
class NewAttachment:
    title: str
    url: str
    type: str = "other"


@dataclass
class NewCourse:
    title: str
    description: str
    category: str
    level: str = "Beginner"
    price: float = 0.0
    is_free: bool = False
    duration: str = ""
    image: str = ""
    attachments: list[NewAttachment] = field(default_factory=list)


@dataclass
class NewLesson:
    title: str
    description: str
    duration: str
    video_url: str


@dataclass
class PaymentDetails:
    card_number: str
    card_holder: str
    expiry_date: str
    cvv: str


@dataclass
class CourseProgress:
    course_id: str
    title: str
    completed: int
    total: int
    percent: int


@dataclass
class DashboardStats:
    courses: int
    instructors: int
    students: int
    enrollments: int


@dataclass
class ConsistencyIssue:
    course_id: str
    user_id: str
    issue: str
