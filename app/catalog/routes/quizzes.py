from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth.dependencies import get_current_user
from app.auth.schemas import AuthenticatedUser
from app.catalog.schemas import LearnerQuizResponse
from app.catalog.services.catalog_service import CatalogService
from app.db.session import get_db

router = APIRouter()


@router.get("/quizzes/{quiz_id}", response_model=LearnerQuizResponse)
async def get_quiz(
    quiz_id: UUID,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> LearnerQuizResponse:
    """Quiz for taking: no correct flags and no free-text answers."""
    service = CatalogService(db)
    return service.to_learner_quiz(service.get_quiz(quiz_id))
