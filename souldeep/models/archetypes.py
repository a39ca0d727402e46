# souldeep/models/archetypes.py
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ConflictArchetype(str, Enum):
    MIS_DIRECTION = "MisDirection"
    MIS_ATTACHMENT = "MisAttachment"
    MIS_ATTRIBUTION = "MisAttribution"
    STRUCTURAL_ALIGNMENT = "StructuralAlignment"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    ConflictArchetype.MIS_DIRECTION: "Mis-Direction",
    ConflictArchetype.MIS_ATTACHMENT: "Mis-Attachment",
    ConflictArchetype.MIS_ATTRIBUTION: "Mis-Attribution",
    ConflictArchetype.STRUCTURAL_ALIGNMENT: "Structural Alignment",
}


class ArchetypeResult(BaseModel):
    """Outcome of comparing two personas. Rationale and remedy are fixed per label."""

    model_config = ConfigDict(frozen=True)

    label: ConflictArchetype
    name: str
    rationale: str
    remedy: Optional[str] = None
