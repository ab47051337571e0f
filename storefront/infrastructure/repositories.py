from typing import Optional, Type, TypeVar

import structlog
from pydantic import ValidationError as SchemaError

from ..domain.entities import Course, Enrollment, Record, SessionUser, User
from .storage import KeyValueStore

logger = structlog.get_logger()

USERS_KEY = "users"
SESSION_KEY = "user"
COURSES_KEY = "courses"
ENROLLMENTS_KEY = "enrollments"

R = TypeVar("R", bound=Record)

_UNSET = object()


def to_domain(model: Type[R], raw: dict, key: str) -> Optional[R]:
    try:
        return model.model_validate(raw)
    except SchemaError as e:
        logger.warning("malformed_record_skipped", key=key, errors=e.error_count())
        return None


class StateRepository:
    """Typed view over the four persisted documents.

    Loads always return whole collections; `commit` writes any combination of
    them back in a single atomic `write_many`.
    """

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    @property
    def lock(self):
        return self.kv.lock

    def _collection(self, key: str, model: Type[R]) -> Optional[list[R]]:
        raw = self.kv.get(key)
        if raw is None:
            return None
        if not isinstance(raw, list):
            logger.warning("malformed_document", key=key)
            return []
        items = (to_domain(model, item, key) for item in raw)
        return [item for item in items if item is not None]

    def users(self) -> list[User]:
        return self._collection(USERS_KEY, User) or []

    def get_user(self, email: str) -> Optional[User]:
        return next((u for u in self.users() if u.email == email), None)

    def courses(self) -> Optional[list[Course]]:
        """None means the catalog has never been saved."""
        return self._collection(COURSES_KEY, Course)

    def enrollments(self) -> list[Enrollment]:
        return self._collection(ENROLLMENTS_KEY, Enrollment) or []

    def session(self) -> Optional[SessionUser]:
        raw = self.kv.get(SESSION_KEY)
        if not isinstance(raw, dict):
            return None
        return to_domain(SessionUser, raw, SESSION_KEY)

    def commit(
        self,
        *,
        users: Optional[list[User]] = None,
        courses: Optional[list[Course]] = None,
        enrollments: Optional[list[Enrollment]] = None,
        session=_UNSET,
    ) -> None:
        """Persist the given collections together.

        `session=None` clears the session. When `users` is written without an
        explicit session, the stored session is re-projected from its user
        record (or cleared if that record is gone) in the same write.
        """
        if users is not None and session is _UNSET:
            current = self.session()
            if current is not None:
                owner = next((u for u in users if u.email == current.email), None)
                session = owner.to_session() if owner else None

        values = {}
        delete = []
        if users is not None:
            values[USERS_KEY] = [u.to_json() for u in users]
        if courses is not None:
            values[COURSES_KEY] = [c.to_json() for c in courses]
        if enrollments is not None:
            values[ENROLLMENTS_KEY] = [e.to_json() for e in enrollments]
        if session is not _UNSET:
            if session is None:
                delete.append(SESSION_KEY)
            else:
                if isinstance(session, User):
                    session = session.to_session()
                values[SESSION_KEY] = session.to_json()
        if values or delete:
            self.kv.write_many(values, delete=delete)
