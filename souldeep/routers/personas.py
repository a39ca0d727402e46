# souldeep/routers/personas.py
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query, Response

from ..dependencies import get_persona_service
from ..models.personas import QuestionnaireAnswers, StoredPersona, SubmissionResult
from ..services.persona_service import PersonaService

router = APIRouter(
    prefix="/api/personas",
    tags=["personas"],
    responses={404: {"description": "Not found"}},
)

logger = logging.getLogger(__name__)


@router.post("", response_model=SubmissionResult, status_code=201)
@router.post(
    "/", response_model=SubmissionResult, status_code=201, include_in_schema=False
)
def submit_answers(
    answers: QuestionnaireAnswers,
    response: Response,
    service: PersonaService = Depends(get_persona_service),
):
    """
    Synthesize and store a persona from questionnaire answers.

    Returns 201 when the persona was stored, 207 when synthesis succeeded
    but storage failed.
    """
    logger.info("Questionnaire received, starting persona synthesis")
    result = service.submit(answers)
    if result.status == "partial":
        response.status_code = 207
    return result


@router.get("", response_model=List[Dict[str, Any]])
@router.get("/", response_model=List[Dict[str, Any]], include_in_schema=False)
def list_personas(
    limit: int = Query(100, ge=1, le=1000),
    service: PersonaService = Depends(get_persona_service),
):
    """List stored persona summaries, most recent first."""
    return service.list_personas(limit=limit)


@router.get("/{persona_id}", response_model=StoredPersona)
def get_persona(
    persona_id: str, service: PersonaService = Depends(get_persona_service)
):
    return service.get_persona(persona_id)
