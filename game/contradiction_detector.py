"""Contradiction detection.

Each rule pairs something a character might claim with the evidence that
proves the claim false. When the character says it (keyword match on their
reply) and the player already holds the proof, the contradiction is caught
and stored in that character's memory.
"""

import logging
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field

from game.models import Contradiction

logger = logging.getLogger(__name__)


class ContradictionRule(BaseModel):
    """A claim a character may make and the proof that breaks it."""

    id: str
    character_id: str
    description: str
    claim_keywords: List[str] = Field(description="Any of these in the reply counts as the claim")
    requires_evidence: List[str] = Field(default_factory=list)
    requires_analysis: List[str] = Field(default_factory=list)


CONTRADICTION_RULES: List[ContradictionRule] = [
    ContradictionRule(
        id="rachel-morning-call",
        character_id="rachel-kim",
        description=(
            "Rachel says she hadn't spoken to Mia that morning, but the phone "
            "records show she called her at 7:25 AM."
        ),
        claim_keywords=["didn't call", "did not call", "hadn't talked", "hadn't spoken",
                        "haven't talked", "no idea she", "just came over", "found her"],
        requires_evidence=["phone-company-records"],
    ),
    ContradictionRule(
        id="rachel-bracelet",
        character_id="rachel-kim",
        description=(
            "Rachel denies the charm is hers, but the boutique sold that "
            "bracelet to exactly one buyer: Rachel Kim."
        ),
        claim_keywords=["not mine", "never seen", "don't own", "don't wear", "isn't mine"],
        requires_evidence=["bracelet-charm"],
        requires_analysis=["bracelet-charm"],
    ),
    ContradictionRule(
        id="jordan-bar-alibi",
        character_id="jordan-valez",
        description=(
            "Jordan claims he was at The Lockwood until midnight, but his Uber "
            "receipt shows a pickup outside at 11:40 PM."
        ),
        claim_keywords=["until midnight", "till midnight", "all night", "closed the bar"],
        requires_evidence=["uber-receipt"],
    ),
    ContradictionRule(
        id="marvin-call-delay",
        character_id="marvin-lott",
        description=(
            "Marvin says he called as soon as he heard the scream, but the call "
            "came in hours later."
        ),
        claim_keywords=["called right away", "called immediately", "called straight away",
                        "called the police right"],
        requires_evidence=["security-footage"],
    ),
]


def rules_for(character_id: str) -> List[ContradictionRule]:
    return [r for r in CONTRADICTION_RULES if r.character_id == character_id]


def detect_contradictions(
    character_id: Optional[str],
    statement: Optional[str],
    evidence: Iterable[str] = (),
    completed_analysis: Iterable[str] = (),
    already_found: Iterable[str] = (),
    now: int = 0,
) -> List[Contradiction]:
    """Return contradictions newly caught in ``statement``.

    Args:
        character_id: Who made the statement
        statement: Their reply text
        evidence: Evidence ids the player holds
        completed_analysis: Evidence ids with finished lab results
        already_found: Contradiction ids already recorded for this character
        now: Game clock (elapsed minutes) to stamp on new contradictions
    """
    if not character_id or not statement:
        return []
    lowered = statement.lower()
    evidence = set(evidence or ())
    analysis = set(completed_analysis or ())
    seen = set(already_found or ())

    caught = []
    for rule in rules_for(character_id):
        if rule.id in seen:
            continue
        if not set(rule.requires_evidence) <= evidence:
            continue
        if not set(rule.requires_analysis) <= analysis:
            continue
        if not any(k in lowered for k in rule.claim_keywords):
            continue
        logger.info("[CONTRADICTION] %s caught: %s", character_id, rule.id)
        caught.append(
            Contradiction(
                id=rule.id,
                character_id=character_id,
                description=rule.description,
                detected_at=now,
            )
        )
    return caught
