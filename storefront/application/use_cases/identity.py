from typing import Optional

import structlog

from ...config import settings
from ...domain.entities import Role, SessionUser, User
from ...domain.errors import DuplicateEmailError, InvalidCredentialsError, ValidationError
from ...infrastructure.repositories import StateRepository
from ...utils.validators import validate_email, validate_password

logger = structlog.get_logger()

SELF_REGISTER_ROLES = (Role.STUDENT, Role.INSTRUCTOR)


class IdentityStore:
    """Registered users, the current session and lesson completion."""

    def __init__(self, repo: StateRepository, bootstrap: bool = True):
        self.repo = repo
        if bootstrap:
            self.ensure_admin()

    def ensure_admin(self) -> None:
        with self.repo.lock:
            users = self.repo.users()
            if any(u.email == settings.ADMIN_EMAIL for u in users):
                return
            users.append(User(
                name=settings.ADMIN_NAME,
                email=settings.ADMIN_EMAIL,
                password=settings.ADMIN_PASSWORD,
                role=Role.ADMIN,
            ))
            self.repo.commit(users=users)
        logger.info("admin_account_created", email=settings.ADMIN_EMAIL)

    @property
    def current_user(self) -> Optional[SessionUser]:
        return self.repo.session()

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    def register(self, name: str, email: str, password: str, role: Role = Role.STUDENT) -> SessionUser:
        errors = {}
        if not name or not name.strip():
            errors["name"] = "Please enter your name"
        if not validate_email(email):
            errors["email"] = "Please enter a valid email"
        if not validate_password(password, settings.MIN_PASSWORD_LENGTH):
            errors["password"] = f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters"
        try:
            role = Role(role)
        except ValueError:
            errors["role"] = "Unknown role"
        else:
            if role not in SELF_REGISTER_ROLES:
                errors["role"] = "Only students and instructors can register"
        if errors:
            raise ValidationError(errors)

        with self.repo.lock:
            users = self.repo.users()
            if any(u.email == email for u in users):
                logger.warning("registration_rejected", email=email, reason="duplicate_email")
                raise DuplicateEmailError(email)

            user = User(name=name, email=email, password=password, role=role)
            users.append(user)
            session = user.to_session()
            self.repo.commit(users=users, session=session)

        logger.info("user_registered", email=email, role=role.value)
        return session

    def login(self, email: str, password: str) -> SessionUser:
        user = next(
            (u for u in self.repo.users() if u.email == email and u.password == password),
            None,
        )
        if user is None:
            logger.warning("login_failed", email=email)
            raise InvalidCredentialsError()

        session = user.to_session()
        self.repo.commit(session=session)
        logger.info("user_logged_in", email=email)
        return session

    def logout(self) -> None:
        current = self.current_user
        self.repo.commit(session=None)
        if current is not None:
            logger.info("user_logged_out", email=current.email)

    def refresh_session(self) -> Optional[SessionUser]:
        """Re-project the session from the stored user record."""
        with self.repo.lock:
            current = self.repo.session()
            if current is None:
                return None
            user = self.repo.get_user(current.email)
            session = user.to_session() if user else None
            self.repo.commit(session=session)
            return session

    def record_lesson_completion(self, course_id: str, lesson_id: str) -> Optional[SessionUser]:
        with self.repo.lock:
            session = self.repo.session()
            if session is None:
                logger.warning("lesson_completion_ignored", reason="not_logged_in")
                return None

            users = self.repo.users()
            user = next((u for u in users if u.email == session.email), None)
            source = user if user is not None else session
            completed = {k: list(v) for k, v in source.completed_lessons.items()}
            lessons = completed.setdefault(course_id, [])
            if lesson_id in lessons:
                return session

            lessons.append(lesson_id)
            session = session.model_copy(update={"completed_lessons": completed})
            if user is not None:
                user.completed_lessons = completed
                self.repo.commit(users=users, session=session)
            else:
                self.repo.commit(session=session)

        logger.info("lesson_completed", email=session.email, course_id=course_id, lesson_id=lesson_id)
        return session

    def list_users(self, role: Optional[Role] = None, query: Optional[str] = None) -> list[SessionUser]:
        users = self.repo.users()
        if role is not None:
            users = [u for u in users if u.role == role]
        if query and query.strip():
            needle = query.strip().lower()
            users = [u for u in users if needle in u.name.lower() or needle in u.email.lower()]
        return [u.to_session() for u in users]
