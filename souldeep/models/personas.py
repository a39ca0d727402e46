# souldeep/models/personas.py
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class DefenseArchetype(str, Enum):
    """How a user behaves once their red button is pressed."""

    ERUPT = "Erupt"
    FREEZE = "Freeze"
    FLEE = "Flee"
    PANIC = "Panic"


class PersonaRecord(BaseModel):
    """
    Classifier input, one per user.

    The TKI axes are expected in [1, 5]; range checks belong to whoever builds
    the record (see QuestionnaireAnswers), not to the classifier.
    """

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, alias_generator=to_camel
    )

    scar_text: str = ""
    foundation_text: str = ""
    seams_text: str = ""
    tki_needs_vs_peace: float  # 1 = own needs first, 5 = peace first
    tki_common_vs_avoid: float  # 1 = seeks common ground, 5 = avoids

    @field_validator("scar_text", "foundation_text", "seams_text", mode="before")
    @classmethod
    def _missing_text_is_empty(cls, value):
        return "" if value is None else value


class QuestionnaireAnswers(BaseModel):
    """Raw answers to the Integrity Protocol Core questionnaire."""

    model_config = ConfigDict(populate_by_name=True)

    scar: str = Field(alias="B14")
    foundation: str = Field(alias="B16")
    seams: str = Field(alias="B15")
    needs_vs_peace: float = Field(alias="B21_A", ge=1, le=5)
    common_vs_avoid: float = Field(alias="B21_B", ge=1, le=5)

    @field_validator("scar", "foundation", "seams")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("answer must not be blank")
        return value

    def tki_score(self) -> float:
        """Average of both TKI axes, rounded half-up to one decimal."""
        average = Decimal(str(self.needs_vs_peace)) + Decimal(str(self.common_vs_avoid))
        average = average / 2
        return float(average.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))

    def to_record(self) -> PersonaRecord:
        return PersonaRecord(
            scar_text=self.scar,
            foundation_text=self.foundation,
            seams_text=self.seams,
            tki_needs_vs_peace=self.needs_vs_peace,
            tki_common_vs_avoid=self.common_vs_avoid,
        )


class SynthesizedPersona(BaseModel):
    """Persona JSON produced by the synthesizer. Every field is required."""

    model_config = ConfigDict(populate_by_name=True)

    persona_analysis: str
    seams_mechanism: str = Field(alias="B15_seams_mechanism")
    tki_score: float = Field(alias="B21_tki_score")
    structural_principle: str
    scar_demand_requirement: str
    red_button_requirement: str
    blast_radius_archetype: DefenseArchetype

    @field_validator("blast_radius_archetype", mode="before")
    @classmethod
    def _normalize_archetype(cls, value):
        # "erupt " -> "Erupt"; anything outside the enum still fails validation
        if isinstance(value, str):
            return value.strip().capitalize()
        return value


class StoredPersona(BaseModel):
    persona_id: str = Field(default_factory=lambda: str(uuid4()))
    created_at: datetime = Field(default_factory=datetime.now)
    answers: QuestionnaireAnswers
    record: PersonaRecord
    persona: SynthesizedPersona

    def summary(self) -> dict:
        return {
            "persona_id": self.persona_id,
            "created_at": self.created_at.isoformat(),
            "archetype": self.persona.blast_radius_archetype.value,
        }


class SubmissionResult(BaseModel):
    persona_id: str
    status: str  # "complete" or "partial"
    stored: bool
    persona: SynthesizedPersona
    error: Optional[str] = None
