from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from ....application.seed import CATEGORIES
from ....application.use_cases.catalog import CatalogStore
from ....application.use_cases.checkout import CheckoutFlow, CheckoutState
from ....config import settings
from ....domain.entities import Course, CourseView, Enrollment, Lesson, SessionUser
from ....domain.errors import AuthorizationError, DuplicateEnrollmentError, NotFoundError
from ....utils.validators import verify_video_url
from ..authz import get_current_user, get_optional_user, require_admin, require_instructor
from ..dependencies import get_catalog_store
from ..schemas import (
    CategoryOut,
    CheckoutResp,
    ContentUpdate,
    CourseCreate,
    LessonCreate,
    OkResp,
    PaymentReq,
    StudentAdd,
)

router = APIRouter(prefix="/api/courses", tags=["courses"])


def _managed_course(catalog: CatalogStore, course_id: str, user: SessionUser) -> Course:
    course = catalog.get_course(course_id)
    if course is None:
        raise NotFoundError("Course", course_id)
    if not catalog.can_manage(course, user):
        raise AuthorizationError("Not authorized to manage this course")
    return course


@router.get("", response_model=list[CourseView])
def list_courses(
    category: Optional[str] = None,
    query: Optional[str] = Query(None, max_length=200),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: Optional[SessionUser] = Depends(get_optional_user),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    views = catalog.list_courses(user, category=category, query=query)
    return views[offset:offset + limit]


@router.get("/categories", response_model=list[CategoryOut])
def categories():
    return CATEGORIES


@router.get("/{course_id}", response_model=CourseView)
def get_course(
    course_id: str,
    user: Optional[SessionUser] = Depends(get_optional_user),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    view = next((c for c in catalog.courses_with_purchase_status(user) if c.id == course_id), None)
    if view is None:
        raise HTTPException(404, "course not found")
    return view


@router.post("", response_model=Course, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreate,
    user: SessionUser = Depends(require_instructor),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    course = catalog.add_course(payload.to_dto(), user)
    if course is None:
        raise HTTPException(403, "Not authorized to add courses")
    return course


@router.put("/{course_id}/content", response_model=Course)
def update_content(
    course_id: str,
    payload: ContentUpdate,
    user: SessionUser = Depends(get_current_user),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    _managed_course(catalog, course_id, user)
    updated = catalog.update_course_content(course_id, payload.content, user)
    if not updated:
        raise HTTPException(400, "A course must contain at least one lesson")
    return catalog.get_course(course_id)


@router.post("/{course_id}/lessons", response_model=Lesson, status_code=status.HTTP_201_CREATED)
async def add_lesson(
    course_id: str,
    payload: LessonCreate,
    user: SessionUser = Depends(get_current_user),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    await run_in_threadpool(_managed_course, catalog, course_id, user)
    if not await verify_video_url(payload.video_url, settings.URL_VALIDATION_SECONDS):
        raise HTTPException(400, {"video_url": "Invalid URL. It must be a YouTube Embed URL"})
    lesson = await run_in_threadpool(catalog.add_lesson, course_id, payload.to_dto(), user)
    if lesson is None:
        raise HTTPException(404, "course not found")
    return lesson


@router.delete("/{course_id}/lessons/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_lesson(
    course_id: str,
    lesson_id: str,
    user: SessionUser = Depends(get_current_user),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    course = _managed_course(catalog, course_id, user)
    if lesson_id not in course.lesson_ids():
        raise HTTPException(404, "lesson not found")
    if not catalog.delete_lesson(course_id, lesson_id, user):
        raise HTTPException(400, "A course must contain at least one lesson")


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_course(
    course_id: str,
    admin: SessionUser = Depends(require_admin),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    if not catalog.delete_course(course_id, admin):
        raise HTTPException(404, "course not found")


@router.get("/{course_id}/enrollments", response_model=list[Enrollment])
def course_enrollments(
    course_id: str,
    user: SessionUser = Depends(get_current_user),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    _managed_course(catalog, course_id, user)
    return catalog.get_course_enrollments(course_id)


@router.post("/{course_id}/students", response_model=OkResp, status_code=status.HTTP_201_CREATED)
def add_student(
    course_id: str,
    payload: StudentAdd,
    user: SessionUser = Depends(get_current_user),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    _managed_course(catalog, course_id, user)
    added = catalog.add_student_manually(course_id, payload.email, payload.name, user)
    if not added:
        raise DuplicateEnrollmentError(course_id, payload.email)
    return OkResp()


@router.delete("/{course_id}/students/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_student(
    course_id: str,
    user_id: str,
    user: SessionUser = Depends(get_current_user),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    _managed_course(catalog, course_id, user)
    if not catalog.remove_student(course_id, user_id, user):
        raise HTTPException(404, "enrollment not found")


# --- Purchase flow:

@router.post("/{course_id}/start", response_model=CheckoutResp)
def start_course(
    course_id: str,
    user: SessionUser = Depends(get_current_user),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    state = CheckoutFlow(catalog, course_id, user).start()
    return CheckoutResp(state=state.value)


@router.post("/{course_id}/checkout", response_model=CheckoutResp)
async def checkout(
    course_id: str,
    payload: PaymentReq,
    user: SessionUser = Depends(get_current_user),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    flow = CheckoutFlow(catalog, course_id, user)
    if await run_in_threadpool(flow.start) == CheckoutState.WATCHING:
        return CheckoutResp(state=flow.state.value)

    state = await flow.submit(payload.to_dto())
    resp = CheckoutResp(state=state.value, errors=flow.errors, message=flow.error_message)
    if state == CheckoutState.PAYMENT_DETAILS:
        return JSONResponse(status_code=400, content=resp.model_dump(by_alias=True))
    if state == CheckoutState.ERROR:
        return JSONResponse(status_code=502, content=resp.model_dump(by_alias=True))
    return resp
