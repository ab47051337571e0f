class StorefrontError(Exception):
    """Base class for storefront domain errors.

    `status_code` is what the HTTP layer answers with when the error escapes
    a router.
    """

    status_code = 400

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail


class ValidationError(StorefrontError):
    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{field}: {msg}" for field, msg in self.errors.items()))


class DuplicateEmailError(StorefrontError):
    status_code = 409

    def __init__(self, email: str):
        super().__init__(f"Email {email} already registered")
        self.email = email


class DuplicateEnrollmentError(StorefrontError):
    status_code = 409

    def __init__(self, course_id: str, user_id: str):
        super().__init__(f"User {user_id} is already enrolled in course {course_id}")
        self.course_id = course_id
        self.user_id = user_id


class InvalidCredentialsError(StorefrontError):
    status_code = 401

    def __init__(self):
        super().__init__("Invalid credentials")


class NotFoundError(StorefrontError):
    status_code = 404

    def __init__(self, entity: str, key: str | None = None):
        detail = f"{entity} {key} not found" if key else f"{entity} not found"
        super().__init__(detail)
        self.entity = entity
        self.key = key


class AuthorizationError(StorefrontError):
    status_code = 403

    def __init__(self, detail: str = "Not authorized"):
        super().__init__(detail)
