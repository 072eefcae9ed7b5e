import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from examdesk.infrastructure.db.models.user_model import UserRole
from examdesk.infrastructure.db.session import SessionLocal
from examdesk.infrastructure.repositories.user_repository import UserRepository
from examdesk.infrastructure.security.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# auto_error=False so a missing token gets the same envelope as a bad one
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> dict:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(token)
    except ValueError as e:
        logger.warning(f"Token validation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    # Role comes from the user record, not the token
    user = UserRepository(db).get_by_id(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return {
        "user_id": user.id,
        "role": user.role,
    }


def student_required(current_user: dict = Depends(get_current_user)) -> dict:
    if current_user.get("role") != UserRole.STUDENT:
        logger.warning(f"Access denied for non-student user_id: {current_user.get('user_id')}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Student access required",
        )
    return current_user


def staff_required(current_user: dict = Depends(get_current_user)) -> dict:
    if current_user.get("role") not in (UserRole.TEACHER, UserRole.ADMIN):
        logger.warning(f"Access denied for non-staff user_id: {current_user.get('user_id')}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Teacher or admin privileges required",
        )
    return current_user


def get_eligibility_checker(db: Session = Depends(get_db)):
    from examdesk.infrastructure.attempt_system.eligibility import AttemptEligibilityChecker
    from examdesk.infrastructure.repositories.attempt_repository import AttemptRepository
    from examdesk.infrastructure.repositories.mock_test_repository import MockTestRepository

    return AttemptEligibilityChecker(
        test_repo=MockTestRepository(db),
        user_repo=UserRepository(db),
        attempt_repo=AttemptRepository(db),
    )


def get_lifecycle_engine(db: Session = Depends(get_db)):
    from examdesk.infrastructure.attempt_system.lifecycle import AttemptLifecycleEngine
    from examdesk.infrastructure.repositories.attempt_repository import AttemptRepository
    from examdesk.infrastructure.repositories.question_repository import QuestionRepository

    return AttemptLifecycleEngine(
        attempt_repo=AttemptRepository(db),
        question_repo=QuestionRepository(db),
    )


def get_analytics_engine(db: Session = Depends(get_db)):
    from examdesk.infrastructure.attempt_system.analytics import ImprovementAnalyticsEngine
    from examdesk.infrastructure.repositories.attempt_repository import AttemptRepository
    from examdesk.infrastructure.repositories.mock_test_repository import MockTestRepository

    return ImprovementAnalyticsEngine(
        attempt_repo=AttemptRepository(db),
        test_repo=MockTestRepository(db),
    )
