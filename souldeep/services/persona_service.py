# souldeep/services/persona_service.py
import logging
from typing import Any, Dict, List

from souldeep.errors import PersonaNotFoundError
from souldeep.models.archetypes import ArchetypeResult
from souldeep.models.personas import (
    QuestionnaireAnswers,
    StoredPersona,
    SubmissionResult,
)
from souldeep.services.classifier import classify
from souldeep.services.synthesizer import PersonaSynthesizer

logger = logging.getLogger(__name__)


class PersonaService:
    """Ties synthesis, storage and classification together."""

    def __init__(self, synthesizer: PersonaSynthesizer, store):
        self.synthesizer = synthesizer
        self.store = store

    def submit(self, answers: QuestionnaireAnswers) -> SubmissionResult:
        """
        Synthesize a persona from questionnaire answers and store it.

        Synthesis errors propagate to the caller. A storage failure does not:
        the persona is still returned, with status "partial".

        Args:
            answers: Validated questionnaire answers

        Returns:
            SubmissionResult with the synthesized persona
        """
        persona = self.synthesizer.synthesize(answers)

        stored_persona = StoredPersona(
            answers=answers,
            record=answers.to_record(),
            persona=persona,
        )
        stored = self.store.append(stored_persona)

        if not stored:
            logger.warning(
                f"Persona {stored_persona.persona_id} synthesized but could not be stored"
            )
            return SubmissionResult(
                persona_id=stored_persona.persona_id,
                status="partial",
                stored=False,
                persona=persona,
                error="Persona synthesized but storage failed",
            )

        logger.info(f"Persona {stored_persona.persona_id} synthesized and stored")
        return SubmissionResult(
            persona_id=stored_persona.persona_id,
            status="complete",
            stored=True,
            persona=persona,
        )

    def get_persona(self, persona_id: str) -> StoredPersona:
        persona = self.store.get(persona_id)
        if persona is None:
            raise PersonaNotFoundError(persona_id)
        return persona

    def list_personas(self, limit: int = 100) -> List[Dict[str, Any]]:
        return self.store.list_personas(limit=limit)

    def compare(self, persona_id_a: str, persona_id_b: str) -> ArchetypeResult:
        """Classify the Cognitive Break between two stored personas."""
        record_a = self.get_persona(persona_id_a).record
        record_b = self.get_persona(persona_id_b).record
        result = classify(record_a, record_b)
        logger.info(
            f"Compared personas {persona_id_a} and {persona_id_b}: {result.label.value}"
        )
        return result
