import asyncio
import random
from datetime import date
from enum import Enum
from typing import Optional

import structlog
from fastapi.concurrency import run_in_threadpool

from ...config import settings
from ...domain.entities import SessionUser
from ...domain.errors import NotFoundError, StorefrontError
from ...infrastructure.metrics import checkout_attempts_total
from ...utils.validators import expiry_date_error, validate_card_number, validate_cvv
from ..dto import PaymentDetails
from .catalog import CatalogStore

logger = structlog.get_logger()

PAYMENT_ERROR_MESSAGE = "An error occurred while processing your payment. Please try again."


class CheckoutState(str, Enum):
    BROWSING = "browsing"
    PAYMENT_DETAILS = "payment_details"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"
    WATCHING = "watching"


class CheckoutStateError(StorefrontError):
    status_code = 409

    def __init__(self, state: CheckoutState, action: str):
        super().__init__(f"Cannot {action} while in state {state.value}")
        self.state = state


def payment_errors(payment: PaymentDetails, today: Optional[date] = None) -> dict[str, str]:
    errors = {}
    if not validate_card_number(payment.card_number):
        errors["card_number"] = "The card number must consist of 16 digits."
    if not payment.card_holder or not payment.card_holder.strip():
        errors["card_holder"] = "Please enter cardholder name"
    expiry_error = expiry_date_error(payment.expiry_date, today)
    if expiry_error:
        errors["expiry_date"] = expiry_error
    if not validate_cvv(payment.cvv):
        errors["cvv"] = "CVV code must consist of 3 digits"
    return errors


class CheckoutFlow:
    """Simulated purchase flow for one user and one course.

    browsing -> payment_details -> processing -> success -> browsing
    processing -> error -> payment_details (retry)
    browsing -> watching when the course is free or already owned
    """

    def __init__(
        self,
        catalog: CatalogStore,
        course_id: str,
        user: SessionUser,
        processing_seconds: Optional[float] = None,
        failure_rate: Optional[float] = None,
        rng: Optional[random.Random] = None,
        today: Optional[date] = None,
    ):
        self.catalog = catalog
        self.course_id = course_id
        self.user = user
        self.processing_seconds = settings.PAYMENT_PROCESSING_SECONDS if processing_seconds is None else processing_seconds
        self.failure_rate = settings.PAYMENT_FAILURE_RATE if failure_rate is None else failure_rate
        self.rng = rng or random.Random()
        self.today = today
        self.state = CheckoutState.BROWSING
        self.errors: dict[str, str] = {}
        self.error_message = ""

    def _expect(self, state: CheckoutState, action: str) -> None:
        if self.state != state:
            raise CheckoutStateError(self.state, action)

    def start(self) -> CheckoutState:
        self._expect(CheckoutState.BROWSING, "start checkout")
        course = self.catalog.get_course(self.course_id)
        if course is None:
            raise NotFoundError("Course", self.course_id)

        if self.catalog.has_access(course, self.user):
            self.state = CheckoutState.WATCHING
        else:
            self.state = CheckoutState.PAYMENT_DETAILS
        return self.state

    async def submit(self, payment: PaymentDetails) -> CheckoutState:
        self._expect(CheckoutState.PAYMENT_DETAILS, "submit payment")
        self.errors = payment_errors(payment, self.today)
        if self.errors:
            checkout_attempts_total.labels(outcome="invalid").inc()
            return self.state

        self.state = CheckoutState.PROCESSING
        if self.processing_seconds > 0:
            await asyncio.sleep(self.processing_seconds)

        if self.rng.random() < self.failure_rate:
            logger.warning("payment_failed", course_id=self.course_id, email=self.user.email)
            checkout_attempts_total.labels(outcome="failed").inc()
            self.error_message = PAYMENT_ERROR_MESSAGE
            self.state = CheckoutState.ERROR
            return self.state

        # store calls block on I/O and the store lock: keep them off the event loop
        if not await run_in_threadpool(self._purchase):
            checkout_attempts_total.labels(outcome="failed").inc()
            self.error_message = PAYMENT_ERROR_MESSAGE
            self.state = CheckoutState.ERROR
            return self.state

        checkout_attempts_total.labels(outcome="success").inc()
        self.state = CheckoutState.SUCCESS
        return self.state

    def _purchase(self) -> bool:
        """True when the user owns the course afterwards."""
        if self.catalog.purchase_course(self.course_id, self.user):
            return True
        course = self.catalog.get_course(self.course_id)
        return course is not None and self.catalog.has_access(course, self.user)

    def retry(self) -> CheckoutState:
        self._expect(CheckoutState.ERROR, "retry")
        self.error_message = ""
        self.state = CheckoutState.PAYMENT_DETAILS
        return self.state

    def finish(self) -> CheckoutState:
        self._expect(CheckoutState.SUCCESS, "finish")
        self.state = CheckoutState.BROWSING
        return self.state
