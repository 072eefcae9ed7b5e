import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from examdesk.application.attempts.attempt_queries import get_attempt, get_attempt_review
from examdesk.infrastructure.attempt_system.eligibility import AttemptEligibilityChecker
from examdesk.infrastructure.attempt_system.errors import AttemptError
from examdesk.infrastructure.attempt_system.lifecycle import AttemptLifecycleEngine
from examdesk.presentation.dependencies import (
    get_current_user,
    get_db,
    get_eligibility_checker,
    get_lifecycle_engine,
    student_required,
)
from examdesk.presentation.schemas.attempt_schema import (
    AnswerRequest,
    AttemptDetailOut,
    BulkAnswersRequest,
    BulkSaveResponse,
    MessageResponse,
    StartAttemptResponse,
    SubmitRequest,
    SubmitResponse,
    selections_from_indices,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attempts", tags=["Test Attempts"])


# --------------------------------------------------
# 1. Start a new attempt
# --------------------------------------------------
@router.post(
    "/start/{test_id}",
    response_model=StartAttemptResponse,
    status_code=status.HTTP_201_CREATED,
)
def start_attempt(
    test_id: int,
    request: Request,
    current_user: dict = Depends(student_required),
    checker: AttemptEligibilityChecker = Depends(get_eligibility_checker),
):
    """
    Starts a new attempt for the current student. The question list never
    carries the answer key.
    """
    user_id = current_user["user_id"]
    try:
        logger.info(f"User {user_id} starting attempt for mock test {test_id}")
        return checker.start_attempt(
            user_id,
            test_id,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
    except AttemptError as e:
        logger.warning(f"Start rejected for user {user_id} on mock test {test_id}: {e}")
        raise
    except Exception as e:
        logger.error(f"Unexpected error starting attempt for user {user_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred.",
        )


# --------------------------------------------------
# 2. Save one answer
# --------------------------------------------------
@router.put("/{attempt_id}/answer", response_model=MessageResponse)
def save_answer(
    attempt_id: int,
    answer: AnswerRequest,
    current_user: dict = Depends(student_required),
    engine: AttemptLifecycleEngine = Depends(get_lifecycle_engine),
):
    user_id = current_user["user_id"]
    try:
        engine.save_answer(
            attempt_id,
            user_id,
            question_id=answer.question_id,
            selected_option=answer.selected_option,
            time_spent=answer.time_spent,
        )
        return MessageResponse(message="Answer submitted successfully")
    except AttemptError as e:
        logger.warning(f"Answer rejected for attempt {attempt_id}: {e}")
        raise
    except Exception as e:
        logger.error(f"Unexpected error saving answer for attempt {attempt_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred.",
        )


# --------------------------------------------------
# 3. Bulk save (autosave)
# --------------------------------------------------
@router.put("/{attempt_id}/answers", response_model=BulkSaveResponse)
def save_answers(
    attempt_id: int,
    payload: BulkAnswersRequest,
    current_user: dict = Depends(student_required),
    engine: AttemptLifecycleEngine = Depends(get_lifecycle_engine),
):
    user_id = current_user["user_id"]
    try:
        updated = engine.save_answers(attempt_id, user_id, selections_from_indices(payload.answers))
        return BulkSaveResponse(message="Answers saved successfully", updated=updated)
    except AttemptError as e:
        logger.warning(f"Bulk save rejected for attempt {attempt_id}: {e}")
        raise
    except Exception as e:
        logger.error(f"Unexpected error saving answers for attempt {attempt_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred.",
        )


# --------------------------------------------------
# 4. Final submission
# --------------------------------------------------
@router.post("/{attempt_id}/submit", response_model=SubmitResponse)
def submit_attempt(
    attempt_id: int,
    payload: Optional[SubmitRequest] = None,
    current_user: dict = Depends(student_required),
    engine: AttemptLifecycleEngine = Depends(get_lifecycle_engine),
):
    """
    Finalizes the attempt, merging any final answers first. Late submissions
    are accepted and flagged.
    """
    user_id = current_user["user_id"]
    try:
        logger.info(f"User {user_id} submitting attempt {attempt_id}")
        final_answers = selections_from_indices(payload.answers if payload else None)
        return engine.submit(attempt_id, user_id, final_answers)
    except AttemptError as e:
        logger.warning(f"Submit rejected for attempt {attempt_id}: {e}")
        raise
    except Exception as e:
        logger.error(f"Unexpected error submitting attempt {attempt_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred.",
        )


# --------------------------------------------------
# 5. Read an attempt
# --------------------------------------------------
@router.get("/{attempt_id}", response_model=AttemptDetailOut)
def read_attempt(
    attempt_id: int,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    try:
        return get_attempt(db, attempt_id, current_user)
    except AttemptError as e:
        logger.warning(f"Attempt lookup failed for attempt {attempt_id}: {e}")
        raise
    except Exception as e:
        logger.error(f"Unexpected error fetching attempt {attempt_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred.",
        )


@router.get("/{attempt_id}/review", response_model=AttemptDetailOut)
def review_attempt(
    attempt_id: int,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    try:
        return get_attempt_review(db, attempt_id, current_user)
    except AttemptError as e:
        logger.warning(f"Review denied for attempt {attempt_id}: {e}")
        raise
    except Exception as e:
        logger.error(f"Unexpected error reviewing attempt {attempt_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred.",
        )
