# souldeep/services/classifier.py
"""
Cognitive Break classification.

Compares two persona records and names the structural cause of conflict
between them. Rules are tried in a fixed priority order, most severe first,
and the first match wins; when nothing matches the pair is considered
structurally aligned.
"""
from dataclasses import dataclass
from typing import Callable, Tuple

from souldeep.models.archetypes import ArchetypeResult, ConflictArchetype
from souldeep.models.personas import PersonaRecord

DIRECTION_THRESHOLD = 3.5
AVOIDANCE_THRESHOLD = 4

AGGRESSIVE_SEAM_KEYWORDS = ("anger", "attack", "yell", "lashing out", "erupt")
PASSIVE_SEAM_KEYWORDS = ("withdrawal", "shut down", "freeze", "flee", "silent treatment")

RATIONALES = {
    ConflictArchetype.MIS_DIRECTION: "A fundamental conflict in priorities or direction.",
    ConflictArchetype.MIS_ATTACHMENT: (
        "A structural conflict in relational security and trust: both partners "
        "are avoidant, so neither builds a foundation."
    ),
    ConflictArchetype.MIS_ATTRIBUTION: (
        "A failure to correctly read the other person's Seams, mistaking their "
        "coping mechanism for a deliberate attack."
    ),
    ConflictArchetype.STRUCTURAL_ALIGNMENT: "No severe structural conflict identified.",
}

REMEDIES = {
    ConflictArchetype.MIS_DIRECTION: (
        "Requires strict boundary setting and clear, future-oriented goal alignment."
    ),
    ConflictArchetype.MIS_ATTACHMENT: (
        "Requires radical honesty and slow, deliberate trust-building; the Scar "
        "must be healed before the Foundation can hold."
    ),
    ConflictArchetype.MIS_ATTRIBUTION: (
        "Requires active emotional translation and agreement on the "
        "vulnerability cycle directive."
    ),
}


def _mentions_any(text: str, keywords: Tuple[str, ...]) -> bool:
    lowered = (text or "").lower()
    return any(word in lowered for word in keywords)


def is_aggressive(record: PersonaRecord) -> bool:
    return _mentions_any(record.seams_text, AGGRESSIVE_SEAM_KEYWORDS)


def is_passive(record: PersonaRecord) -> bool:
    return _mentions_any(record.seams_text, PASSIVE_SEAM_KEYWORDS)


def is_mis_direction(a: PersonaRecord, b: PersonaRecord) -> bool:
    needs_gap = abs(a.tki_needs_vs_peace - b.tki_needs_vs_peace)
    avoid_gap = abs(a.tki_common_vs_avoid - b.tki_common_vs_avoid)
    return needs_gap > DIRECTION_THRESHOLD or avoid_gap > DIRECTION_THRESHOLD


def is_mis_attachment(a: PersonaRecord, b: PersonaRecord) -> bool:
    return (
        a.tki_common_vs_avoid > AVOIDANCE_THRESHOLD
        and b.tki_common_vs_avoid > AVOIDANCE_THRESHOLD
    )


def _attribution_one_way(a: PersonaRecord, b: PersonaRecord) -> bool:
    aggressive_a = is_aggressive(a)
    passive_b = is_passive(b)
    # The second clause is a catch-all: neither side matched a keyword at all.
    return (aggressive_a and passive_b) or (not aggressive_a and not passive_b)


def is_mis_attribution(
    a: PersonaRecord, b: PersonaRecord, one_directional: bool = False
) -> bool:
    """
    Aggression meeting withdrawal, checked from both sides.

    With ``one_directional`` only ``a``'s aggression against ``b``'s passivity
    is checked. That matches the historical rule but is not symmetric.
    """
    if one_directional:
        return _attribution_one_way(a, b)
    return _attribution_one_way(a, b) or _attribution_one_way(b, a)


@dataclass(frozen=True)
class ArchetypeRule:
    archetype: ConflictArchetype
    predicate: Callable[[PersonaRecord, PersonaRecord], bool]


# Priority order matters: several predicates can hold for the same pair.
RULES: Tuple[ArchetypeRule, ...] = (
    ArchetypeRule(ConflictArchetype.MIS_DIRECTION, is_mis_direction),
    ArchetypeRule(ConflictArchetype.MIS_ATTACHMENT, is_mis_attachment),
    ArchetypeRule(ConflictArchetype.MIS_ATTRIBUTION, is_mis_attribution),
)

ONE_DIRECTIONAL_RULES: Tuple[ArchetypeRule, ...] = RULES[:2] + (
    ArchetypeRule(ConflictArchetype.MIS_ATTRIBUTION, _attribution_one_way),
)

DEFAULT_ARCHETYPE = ConflictArchetype.STRUCTURAL_ALIGNMENT


def result_for(archetype: ConflictArchetype) -> ArchetypeResult:
    return ArchetypeResult(
        label=archetype,
        name=archetype.display_name,
        rationale=RATIONALES[archetype],
        remedy=REMEDIES.get(archetype),
    )


def classify(
    a: PersonaRecord, b: PersonaRecord, one_directional: bool = False
) -> ArchetypeResult:
    """
    Return the Cognitive Break archetype for a pair of personas.

    Args:
        a: First persona record
        b: Second persona record
        one_directional: Evaluate Mis-Attribution only from ``a`` to ``b``

    Returns:
        ArchetypeResult for the first matching rule, or Structural Alignment
    """
    rules = ONE_DIRECTIONAL_RULES if one_directional else RULES
    for rule in rules:
        if rule.predicate(a, b):
            return result_for(rule.archetype)
    return result_for(DEFAULT_ARCHETYPE)
