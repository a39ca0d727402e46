# souldeep/routers/archetypes.py
import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ..dependencies import get_persona_service
from ..models.archetypes import ArchetypeResult
from ..models.personas import PersonaRecord
from ..services.classifier import classify
from ..services.persona_service import PersonaService

router = APIRouter(
    prefix="/api/archetypes",
    tags=["archetypes"],
    responses={404: {"description": "Not found"}},
)

logger = logging.getLogger(__name__)


class ClassifyRequest(BaseModel):
    a: PersonaRecord
    b: PersonaRecord
    one_directional: bool = False


@router.post("/classify", response_model=ArchetypeResult)
async def classify_pair(request: ClassifyRequest):
    """Classify the Cognitive Break between two persona records sent inline."""
    return classify(request.a, request.b, one_directional=request.one_directional)


@router.get("/compare", response_model=ArchetypeResult)
def compare_personas(
    a: str = Query(..., description="First persona ID"),
    b: str = Query(..., description="Second persona ID"),
    service: PersonaService = Depends(get_persona_service),
):
    """Classify the Cognitive Break between two stored personas."""
    return service.compare(a, b)
