import time
from typing import Iterable, Optional

import structlog

from ...config import settings
from ...domain.entities import (
    Attachment,
    AttachmentType,
    Course,
    CourseView,
    Enrollment,
    Lesson,
    Level,
    Role,
    SessionUser,
    User,
    utc_timestamp,
)
from ...domain.errors import ValidationError
from ...infrastructure.metrics import purchases_total
from ...infrastructure.repositories import StateRepository
from ...utils.validators import (
    validate_attachment_url,
    validate_email,
    validate_image_url,
    validate_video_url,
)
from ..dto import ConsistencyIssue, CourseProgress, DashboardStats, NewCourse, NewLesson
from ..seed import seed_courses

logger = structlog.get_logger()

CREATOR_ROLES = (Role.INSTRUCTOR, Role.ADMIN)


def course_errors(new_course: NewCourse) -> dict[str, str]:
    errors = {}
    if not new_course.title.strip():
        errors["title"] = "Please enter the course title"
    if not new_course.description.strip():
        errors["description"] = "Please enter the course description"
    if not new_course.duration.strip():
        errors["duration"] = "Please enter the course duration"
    if not new_course.is_free and new_course.price <= 0:
        errors["price"] = "Course price must be greater than zero"
    try:
        Level(new_course.level)
    except ValueError:
        errors["level"] = "Level must be Beginner, Intermediate or Advanced"
    if new_course.image and not validate_image_url(new_course.image):
        errors["image"] = "Please enter a valid image URL"
    for i, attachment in enumerate(new_course.attachments):
        if not validate_attachment_url(attachment.url, settings.TRUSTED_ATTACHMENT_DOMAINS):
            errors[f"attachments.{i}.url"] = "Attachments must be hosted on a trusted domain"
        try:
            AttachmentType(attachment.type)
        except ValueError:
            errors[f"attachments.{i}.type"] = "Attachment type must be document, video or other"
    return errors


def lesson_errors(new_lesson: NewLesson) -> dict[str, str]:
    errors = {}
    if not new_lesson.title.strip():
        errors["title"] = "Please enter the lesson title"
    if not new_lesson.description.strip():
        errors["description"] = "Please enter the lesson description"
    if not new_lesson.duration.strip():
        errors["duration"] = "Please enter the lesson duration"
    if not new_lesson.video_url:
        errors["video_url"] = "Please enter the video URL"
    elif not validate_video_url(new_lesson.video_url):
        errors["video_url"] = "Please enter a valid YouTube video URL (must contain /embed/)"
    return errors


def content_errors(lessons: list[Lesson]) -> dict[str, str]:
    errors = {}
    for i, lesson in enumerate(lessons):
        if not lesson.title.strip():
            errors[f"content.{i}.title"] = "Please enter the lesson title"
        if not validate_video_url(lesson.video_url):
            errors[f"content.{i}.video_url"] = "Please enter a valid YouTube video URL (must contain /embed/)"
    ids = [lesson.id for lesson in lessons]
    if len(ids) != len(set(ids)):
        errors["content"] = "Lesson ids must be unique within a course"
    return errors


def student_errors(email: str, name: str) -> dict[str, str]:
    errors = {}
    if not email or not name or not name.strip():
        errors["student"] = "Please enter both email and student name"
    elif not validate_email(email):
        errors["email"] = "Please enter a valid email"
    return errors


def _strip_courses(users: Iterable[User], course_ids: set[str]) -> None:
    for u in users:
        u.purchased_courses = [c for c in u.purchased_courses if c not in course_ids]
        u.created_courses = [c for c in u.created_courses if c not in course_ids]


class CatalogStore:
    """Courses, lessons, enrollments and purchases.

    Mutations check the acting user's role themselves and report failure by
    returning False/None (after logging why) rather than raising. Malformed
    input is the exception: it raises ValidationError.
    """

    def __init__(self, repo: StateRepository, seed: Optional[bool] = None):
        self.repo = repo
        if settings.SEED_CATALOG if seed is None else seed:
            self.ensure_seeded()

    def ensure_seeded(self) -> None:
        with self.repo.lock:
            if self.repo.courses() is None:
                self.repo.commit(courses=seed_courses())
                logger.info("catalog_seeded")

    # --- reads

    @property
    def courses(self) -> list[Course]:
        return self.repo.courses() or []

    @property
    def enrollments(self) -> list[Enrollment]:
        return self.repo.enrollments()

    def get_course(self, course_id: str) -> Optional[Course]:
        return next((c for c in self.courses if c.id == course_id), None)

    def get_course_enrollments(self, course_id: str) -> list[Enrollment]:
        return [e for e in self.repo.enrollments() if e.course_id == course_id]

    def enrollment_count(self, course_id: str) -> int:
        return len(self.get_course_enrollments(course_id))

    def courses_by_instructor(self, instructor_id: str) -> list[Course]:
        return [c for c in self.courses if c.instructor_id == instructor_id]

    def _purchased_ids(self, user: Optional[SessionUser]) -> set[str]:
        if user is None:
            return set()
        record = self.repo.get_user(user.email)
        return set(record.purchased_courses) if record else set()

    def courses_with_purchase_status(self, acting_user: Optional[SessionUser]) -> list[CourseView]:
        purchased = self._purchased_ids(acting_user)
        return [
            CourseView(**c.model_dump(), is_purchased=c.id in purchased)
            for c in self.courses
        ]

    def list_courses(
        self,
        acting_user: Optional[SessionUser],
        category: Optional[str] = None,
        query: Optional[str] = None,
    ) -> list[CourseView]:
        views = self.courses_with_purchase_status(acting_user)
        if category:
            views = [c for c in views if c.category == category]
        if query and query.strip():
            needle = query.strip().lower()
            views = [
                c for c in views
                if needle in c.title.lower()
                or needle in c.description.lower()
                or needle in c.instructor.lower()
                or needle in c.category.lower()
            ]
        return views

    def purchased_courses(self, user: SessionUser) -> list[CourseView]:
        return [c for c in self.courses_with_purchase_status(user) if c.is_purchased]

    def can_manage(self, course: Course, user: Optional[SessionUser]) -> bool:
        if user is None:
            return False
        if user.role == Role.ADMIN:
            return True
        return user.role == Role.INSTRUCTOR and course.instructor_id == user.email

    def has_access(self, course: Course, user: Optional[SessionUser]) -> bool:
        """Free, purchased or managed courses can be watched."""
        if course.is_free:
            return True
        if course.id in self._purchased_ids(user):
            return True
        return self.can_manage(course, user)

    def course_progress(self, user: SessionUser, course_id: str) -> Optional[CourseProgress]:
        course = self.get_course(course_id)
        if course is None:
            return None
        record = self.repo.get_user(user.email)
        completed_map = record.completed_lessons if record else user.completed_lessons
        lesson_ids = set(course.lesson_ids())
        done = len([l for l in completed_map.get(course_id, []) if l in lesson_ids])
        total = len(lesson_ids)
        percent = round(done / total * 100) if total else 0
        return CourseProgress(course_id=course.id, title=course.title, completed=done, total=total, percent=percent)

    def student_progress(self, user: SessionUser) -> list[CourseProgress]:
        return [self.course_progress(user, c.id) for c in self.purchased_courses(user)]

    def dashboard_stats(self) -> DashboardStats:
        users = self.repo.users()
        return DashboardStats(
            courses=len(self.courses),
            instructors=len([u for u in users if u.role == Role.INSTRUCTOR]),
            students=len([u for u in users if u.role == Role.STUDENT]),
            enrollments=len(self.repo.enrollments()),
        )

    def check_consistency(self) -> list[ConsistencyIssue]:
        """Pairs where the purchase lists and the enrollment table disagree."""
        issues = []
        seen = set()
        for e in self.repo.enrollments():
            pair = (e.course_id, e.user_id)
            if pair in seen:
                issues.append(ConsistencyIssue(course_id=e.course_id, user_id=e.user_id, issue="duplicate_enrollment"))
            seen.add(pair)

        purchased = {(c, u.email) for u in self.repo.users() for c in u.purchased_courses}
        for course_id, user_id in sorted(seen - purchased):
            issues.append(ConsistencyIssue(course_id=course_id, user_id=user_id, issue="enrollment_without_purchase"))
        for course_id, user_id in sorted(purchased - seen):
            issues.append(ConsistencyIssue(course_id=course_id, user_id=user_id, issue="purchase_without_enrollment"))
        return issues

    # --- mutations

    @staticmethod
    def _new_course_id(courses: list[Course]) -> str:
        taken = {c.id for c in courses}
        stamp = int(time.time() * 1000)
        while f"course-{stamp}" in taken:
            stamp += 1
        return f"course-{stamp}"

    @staticmethod
    def _new_lesson_id(course: Course) -> str:
        taken = set(course.lesson_ids())
        n = len(course.content) + 1
        while f"{course.id}-{n}" in taken:
            n += 1
        return f"{course.id}-{n}"

    def add_course(self, new_course: NewCourse, acting_user: Optional[SessionUser]) -> Optional[Course]:
        if acting_user is None or acting_user.role not in CREATOR_ROLES:
            logger.warning("add_course_rejected", reason="not_authorized",
                           email=acting_user.email if acting_user else None)
            return None

        errors = course_errors(new_course)
        if errors:
            raise ValidationError(errors)

        with self.repo.lock:
            courses = self.courses
            course_id = self._new_course_id(courses)
            course = Course(
                id=course_id,
                title=new_course.title,
                description=new_course.description,
                image=new_course.image,
                instructor=acting_user.name,
                instructor_id=acting_user.email,
                category=new_course.category,
                level=Level(new_course.level),
                price=0 if new_course.is_free else new_course.price,
                is_free=new_course.is_free,
                duration=new_course.duration,
                content=[],
                attachments=[
                    Attachment(id=f"{course_id}-att-{i + 1}", title=a.title, url=a.url, type=AttachmentType(a.type))
                    for i, a in enumerate(new_course.attachments)
                ],
            )
            courses.append(course)

            users = self.repo.users()
            creator = next((u for u in users if u.email == acting_user.email), None)
            if creator is not None and course_id not in creator.created_courses:
                creator.created_courses.append(course_id)
            self.repo.commit(courses=courses, users=users)

        logger.info("course_added", course_id=course.id, instructor_id=acting_user.email)
        return course

    def update_course_content(
        self,
        course_id: str,
        lessons: list[Lesson],
        acting_user: Optional[SessionUser],
    ) -> bool:
        with self.repo.lock:
            courses = self.courses
            course = next((c for c in courses if c.id == course_id), None)
            if course is None:
                logger.warning("update_content_rejected", course_id=course_id, reason="course_not_found")
                return False
            if not self.can_manage(course, acting_user):
                logger.warning("update_content_rejected", course_id=course_id, reason="not_authorized")
                return False
            if not lessons and course.content:
                logger.warning("update_content_rejected", course_id=course_id, reason="course_must_keep_a_lesson")
                return False
            errors = content_errors(lessons)
            if errors:
                raise ValidationError(errors)

            course.content = list(lessons)
            self.repo.commit(courses=courses)

        logger.info("course_content_updated", course_id=course_id, lessons=len(lessons))
        return True

    def add_lesson(
        self,
        course_id: str,
        new_lesson: NewLesson,
        acting_user: Optional[SessionUser],
    ) -> Optional[Lesson]:
        errors = lesson_errors(new_lesson)
        if errors:
            raise ValidationError(errors)

        with self.repo.lock:
            course = self.get_course(course_id)
            if course is None:
                logger.warning("add_lesson_rejected", course_id=course_id, reason="course_not_found")
                return None
            lesson = Lesson(
                id=self._new_lesson_id(course),
                title=new_lesson.title,
                duration=new_lesson.duration,
                video_url=new_lesson.video_url,
                description=new_lesson.description,
            )
            if not self.update_course_content(course_id, course.content + [lesson], acting_user):
                return None
        return lesson

    def delete_lesson(self, course_id: str, lesson_id: str, acting_user: Optional[SessionUser]) -> bool:
        with self.repo.lock:
            course = self.get_course(course_id)
            if course is None or lesson_id not in course.lesson_ids():
                logger.warning("delete_lesson_rejected", course_id=course_id, lesson_id=lesson_id,
                               reason="not_found")
                return False
            if len(course.content) <= 1:
                logger.warning("delete_lesson_rejected", course_id=course_id, lesson_id=lesson_id,
                               reason="course_must_keep_a_lesson")
                return False
            remaining = [lesson for lesson in course.content if lesson.id != lesson_id]
            return self.update_course_content(course_id, remaining, acting_user)

    def purchase_course(self, course_id: str, acting_user: Optional[SessionUser]) -> bool:
        if acting_user is None:
            purchases_total.labels(outcome="not_logged_in").inc()
            return False

        with self.repo.lock:
            if self.get_course(course_id) is None:
                logger.warning("purchase_rejected", course_id=course_id, reason="course_not_found")
                purchases_total.labels(outcome="not_found").inc()
                return False

            users = self.repo.users()
            user = next((u for u in users if u.email == acting_user.email), None)
            if user is None:
                logger.warning("purchase_rejected", course_id=course_id, email=acting_user.email,
                               reason="user_not_found")
                purchases_total.labels(outcome="not_found").inc()
                return False

            # Re-read under the lock so a repeated submission cannot buy twice.
            if course_id in user.purchased_courses:
                logger.warning("purchase_rejected", course_id=course_id, email=user.email,
                               reason="already_purchased")
                purchases_total.labels(outcome="already_purchased").inc()
                return False

            user.purchased_courses.append(course_id)
            enrollments = self.repo.enrollments()
            if not any(e.course_id == course_id and e.user_id == user.email for e in enrollments):
                enrollments.append(Enrollment(
                    course_id=course_id,
                    user_id=user.email,
                    user_name=user.name,
                    enrollment_date=utc_timestamp(),
                ))
            self.repo.commit(users=users, enrollments=enrollments)

        purchases_total.labels(outcome="success").inc()
        logger.info("course_purchased", course_id=course_id, email=acting_user.email)
        return True

    def _cascade_delete(self, course_ids: set[str], courses, enrollments, users):
        courses = [c for c in courses if c.id not in course_ids]
        enrollments = [e for e in enrollments if e.course_id not in course_ids]
        _strip_courses(users, course_ids)
        return courses, enrollments, users

    def delete_course(self, course_id: str, acting_user: Optional[SessionUser]) -> bool:
        if acting_user is None or acting_user.role != Role.ADMIN:
            logger.warning("delete_course_rejected", course_id=course_id, reason="not_authorized")
            return False

        with self.repo.lock:
            courses = self.courses
            if not any(c.id == course_id for c in courses):
                logger.warning("delete_course_rejected", course_id=course_id, reason="course_not_found")
                return False
            courses, enrollments, users = self._cascade_delete(
                {course_id}, courses, self.repo.enrollments(), self.repo.users()
            )
            self.repo.commit(courses=courses, enrollments=enrollments, users=users)

        logger.info("course_deleted", course_id=course_id)
        return True

    def add_student_manually(
        self,
        course_id: str,
        email: str,
        name: str,
        acting_user: Optional[SessionUser],
    ) -> bool:
        errors = student_errors(email, name)
        if errors:
            raise ValidationError(errors)

        with self.repo.lock:
            course = self.get_course(course_id)
            if course is None:
                logger.warning("add_student_rejected", course_id=course_id, reason="course_not_found")
                return False
            if not self.can_manage(course, acting_user):
                logger.warning("add_student_rejected", course_id=course_id, reason="not_authorized")
                return False

            enrollments = self.repo.enrollments()
            if any(e.course_id == course_id and e.user_id == email for e in enrollments):
                logger.warning("add_student_rejected", course_id=course_id, email=email,
                               reason="duplicate_enrollment")
                return False

            users = self.repo.users()
            user = next((u for u in users if u.email == email), None)
            if user is None:
                users.append(User(
                    name=name,
                    email=email,
                    password=settings.PLACEHOLDER_PASSWORD,
                    role=Role.STUDENT,
                    purchased_courses=[course_id],
                ))
                logger.info("student_account_created", email=email)
            elif course_id not in user.purchased_courses:
                user.purchased_courses.append(course_id)

            enrollments.append(Enrollment(
                course_id=course_id,
                user_id=email,
                user_name=name,
                enrollment_date=utc_timestamp(),
            ))
            self.repo.commit(users=users, enrollments=enrollments)

        logger.info("student_added", course_id=course_id, email=email)
        return True

    def remove_student(self, course_id: str, user_id: str, acting_user: Optional[SessionUser]) -> bool:
        with self.repo.lock:
            course = self.get_course(course_id)
            allowed = self.can_manage(course, acting_user) if course else bool(acting_user and acting_user.is_admin)
            if not allowed:
                logger.warning("remove_student_rejected", course_id=course_id, reason="not_authorized")
                return False

            enrollments = self.repo.enrollments()
            remaining = [e for e in enrollments if not (e.course_id == course_id and e.user_id == user_id)]
            users = self.repo.users()
            user = next((u for u in users if u.email == user_id), None)
            had_purchase = user is not None and course_id in user.purchased_courses
            if len(remaining) == len(enrollments) and not had_purchase:
                logger.warning("remove_student_rejected", course_id=course_id, email=user_id,
                               reason="enrollment_not_found")
                return False

            if user is not None:
                user.purchased_courses = [c for c in user.purchased_courses if c != course_id]
            self.repo.commit(users=users, enrollments=remaining)

        logger.info("student_removed", course_id=course_id, email=user_id)
        return True

    def remove_instructor(self, instructor_id: str, acting_user: Optional[SessionUser]) -> bool:
        if acting_user is None or acting_user.role != Role.ADMIN:
            logger.warning("remove_instructor_rejected", email=instructor_id, reason="not_authorized")
            return False
        if acting_user.email == instructor_id:
            logger.warning("remove_instructor_rejected", email=instructor_id, reason="cannot_remove_self")
            return False

        with self.repo.lock:
            users = self.repo.users()
            instructor = next((u for u in users if u.email == instructor_id), None)
            if instructor is None or instructor.role != Role.INSTRUCTOR:
                logger.warning("remove_instructor_rejected", email=instructor_id, reason="instructor_not_found")
                return False

            owned = {c.id for c in self.courses if c.instructor_id == instructor_id}
            courses, enrollments, users = self._cascade_delete(
                owned, self.courses, self.repo.enrollments(), users
            )
            users = [u for u in users if u.email != instructor_id]
            self.repo.commit(courses=courses, enrollments=enrollments, users=users)

        logger.info("instructor_removed", email=instructor_id, courses_deleted=len(owned))
        return True
