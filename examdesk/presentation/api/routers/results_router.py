import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from examdesk.application.results.results_usecase import (
    get_test_attempts,
    get_test_history,
    list_all_results,
    list_my_results,
)
from examdesk.infrastructure.attempt_system.analytics import ImprovementAnalyticsEngine
from examdesk.infrastructure.attempt_system.errors import AttemptError
from examdesk.infrastructure.config import settings
from examdesk.presentation.dependencies import (
    get_analytics_engine,
    get_db,
    staff_required,
    student_required,
)
from examdesk.presentation.schemas.improvement_schema import ImprovementReportResponse
from examdesk.presentation.schemas.results_schema import (
    HistoryResponse,
    ResultListResponse,
    TestAttemptsResponse,
)

logger = logging.getLogger(__name__)

# Registered before the attempt router so these literal paths win over /{attempt_id}
router = APIRouter(prefix="/attempts", tags=["Results"])


@router.get("/history", response_model=HistoryResponse)
def test_history(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: dict = Depends(student_required),
):
    try:
        return get_test_history(db, current_user["user_id"], page, limit)
    except Exception as e:
        logger.error(f"Error fetching test history for user {current_user['user_id']}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.get("/results/my", response_model=ResultListResponse)
def my_results(
    db: Session = Depends(get_db),
    current_user: dict = Depends(student_required),
):
    try:
        logger.info(f"User {current_user['user_id']} fetching own results")
        return list_my_results(db, current_user["user_id"])
    except Exception as e:
        logger.error(f"Error fetching results for user {current_user['user_id']}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.get("/results", response_model=ResultListResponse)
def all_results(
    db: Session = Depends(get_db),
    current_user: dict = Depends(staff_required),
):
    try:
        logger.info(f"User {current_user['user_id']} fetching all results")
        return list_all_results(db)
    except Exception as e:
        logger.error(f"Error fetching all results: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.get("/test/{test_id}", response_model=TestAttemptsResponse)
def attempts_for_test(
    test_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: dict = Depends(staff_required),
):
    try:
        return get_test_attempts(db, test_id, current_user, page, limit)
    except AttemptError as e:
        logger.warning(f"Attempt listing rejected for mock test {test_id}: {e}")
        raise
    except Exception as e:
        logger.error(f"Error fetching attempts for mock test {test_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.get("/{test_id}/improvement", response_model=ImprovementReportResponse)
def improvement_analysis(
    test_id: int,
    current_user: dict = Depends(student_required),
    engine: ImprovementAnalyticsEngine = Depends(get_analytics_engine),
):
    user_id = current_user["user_id"]
    try:
        return engine.analyze(user_id, test_id)
    except AttemptError as e:
        logger.warning(f"Improvement analysis rejected for user {user_id}, mock test {test_id}: {e}")
        raise
    except Exception as e:
        logger.error(f"Improvement analysis failed for user {user_id}, mock test {test_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal Server Error")
