# souldeep/services/mock_synthesizer.py
import logging

from souldeep.models.personas import (
    DefenseArchetype,
    QuestionnaireAnswers,
    SynthesizedPersona,
)
from souldeep.services.synthesizer import PersonaSynthesizer

logger = logging.getLogger(__name__)

# First match wins
_ARCHETYPE_HINTS = [
    (("anger", "attack", "yell", "lashing out", "erupt"), DefenseArchetype.ERUPT, "Lashing Out"),
    (("freeze", "shut down", "silent treatment"), DefenseArchetype.FREEZE, "Shutting Down"),
    (("flee", "withdrawal", "leave"), DefenseArchetype.FLEE, "Withdrawing"),
]


class MockSynthesizer(PersonaSynthesizer):
    """Offline synthesizer for local mode. Same answers, same persona."""

    def __init__(self):
        self.calls = 0

    def synthesize(self, answers: QuestionnaireAnswers) -> SynthesizedPersona:
        self.calls += 1
        seams = answers.seams.lower()

        archetype, mechanism = DefenseArchetype.PANIC, "Overexplaining"
        for keywords, hinted_archetype, hinted_mechanism in _ARCHETYPE_HINTS:
            if any(word in seams for word in keywords):
                archetype, mechanism = hinted_archetype, hinted_mechanism
                break

        logger.info(f"Mock persona synthesized (archetype: {archetype.value})")

        return SynthesizedPersona(
            persona_analysis=f"MOCK ANALYSIS: scar '{answers.scar}' shapes foundation '{answers.foundation}'.",
            seams_mechanism=mechanism,
            tki_score=answers.tki_score(),
            structural_principle="The Scar Forged The Foundation",
            scar_demand_requirement=f"A match must meet '{answers.scar}' with radical honesty.",
            red_button_requirement=f"Anything that threatens '{answers.foundation}'.",
            blast_radius_archetype=archetype,
        )
