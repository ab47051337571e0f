from fastapi import APIRouter, Depends, HTTPException

from ....application.use_cases.catalog import CatalogStore
from ....application.use_cases.identity import IdentityStore
from ....domain.entities import SessionUser
from ..authz import get_current_user
from ..dependencies import get_catalog_store, get_identity_store
from ..schemas import CompleteResp, ProgressOut

router = APIRouter(prefix="/api/progress", tags=["progress"])


@router.post("/{course_id}/lessons/{lesson_id}/complete", response_model=CompleteResp)
def complete_lesson(
    course_id: str,
    lesson_id: str,
    user: SessionUser = Depends(get_current_user),
    identity: IdentityStore = Depends(get_identity_store),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    course = catalog.get_course(course_id)
    if course is None or lesson_id not in course.lesson_ids():
        raise HTTPException(404, "lesson not found")
    if not catalog.has_access(course, user):
        raise HTTPException(403, "Course not purchased")

    # idempotent: completing twice leaves a single entry
    session = identity.record_lesson_completion(course_id, lesson_id)
    return CompleteResp(
        ok=True,
        course_id=course_id,
        lesson_id=lesson_id,
        completed_lessons=session.completed_lessons.get(course_id, []),
    )


@router.get("/my", response_model=list[ProgressOut])
def my_progress(
    user: SessionUser = Depends(get_current_user),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    return catalog.student_progress(user)


@router.get("/{course_id}", response_model=ProgressOut)
def course_progress(
    course_id: str,
    user: SessionUser = Depends(get_current_user),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    progress = catalog.course_progress(user, course_id)
    if progress is None:
        raise HTTPException(404, "course not found")
    return progress
