"""Lexical signal extractors.

Pure functions that turn the player's free text into structured signals:
topics, who is being addressed, whether a conversation is ending, whether
the player is accusing someone, whether this is an investigative action and
whether evidence is being handed to the lab.

None of these functions touch shared state and none of them raise on odd
input. An empty or missing string always yields a neutral result.
"""

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Iterable, Optional, Set

from game import lexicon
from game.case_data import (
    CHARACTERS,
    EVIDENCE_BY_ID,
    PARTNER_ID,
    get_character,
)
from game.models import CharacterProfile, ConversationPhase, ConversationState

logger = logging.getLogger(__name__)

DEFAULT_MENTION_THRESHOLD = 5
DEFAULT_CONTINUATION_BONUS = 8
DEFAULT_FATIGUE_MINUTES = 15


@dataclass(frozen=True)
class AccusationSignal:
    is_accusation: bool
    type: Optional[str] = None  # "direct" or "timeline"


# =============================================================================
# Matching helpers
# =============================================================================

@lru_cache(maxsize=2048)
def _phrase_regex(phrase: str) -> "re.Pattern[str]":
    return re.compile(r"(?<!\w)" + re.escape(phrase) + r"(?!\w)")


def _normalize(text: Optional[str]) -> str:
    if not text or not isinstance(text, str):
        return ""
    # Curly quotes show up from mobile keyboards
    return text.lower().replace("’", "'").replace("‘", "'").strip()


def has_phrase(text: str, phrase: str) -> bool:
    """Whole-word, case-sensitive match of ``phrase`` inside normalized ``text``."""
    return bool(_phrase_regex(phrase).search(text))


def has_any(text: str, phrases: Iterable[str]) -> bool:
    return any(has_phrase(text, p) for p in phrases)


def _addressed(text: str, aliases: Iterable[str]) -> bool:
    """True when an addressing verb sits right before one of ``aliases``."""
    for alias in aliases:
        for verb in lexicon.ADDRESSING_VERBS:
            pattern = (
                r"(?<!\w)" + re.escape(verb) + r"\s+(?:\w+\s+)?"
                + re.escape(alias) + r"(?!\w)"
            )
            if re.search(pattern, text):
                return True
    return False


def _all_aliases(profile: CharacterProfile) -> list:
    tiers = profile.aliases
    return tiers.direct + tiers.location + tiers.role + tiers.descriptive


def _is_mid_conversation(state: Optional[ConversationState]) -> bool:
    return bool(
        state is not None
        and state.current_character
        and state.conversation_phase != ConversationPhase.NONE
    )


# =============================================================================
# Topics
# =============================================================================

def extract_topics(text: Optional[str]) -> Set[str]:
    """Return every topic whose keyword list appears in ``text``."""
    lowered = _normalize(text)
    if not lowered:
        return set()
    return {
        topic
        for topic, keywords in lexicon.TOPIC_KEYWORDS.items()
        if any(keyword in lowered for keyword in keywords)
    }


# =============================================================================
# Character mentions
# =============================================================================

def score_character(
    lowered: str,
    profile: CharacterProfile,
    state: Optional[ConversationState] = None,
    context: Optional[Dict] = None,
    ending: bool = False,
    continuation_bonus: int = DEFAULT_CONTINUATION_BONUS,
) -> int:
    """Score how strongly ``lowered`` refers to ``profile``.

    Each alias tier contributes its weight once. An addressing verb right in
    front of any alias adds a bonus, as does being the character the player
    is already talking to, or being at the character's usual location.
    """
    score = 0
    for tier, weight in lexicon.TIER_WEIGHTS.items():
        aliases = getattr(profile.aliases, tier)
        if has_any(lowered, aliases):
            score += weight

    if score and _addressed(lowered, _all_aliases(profile)):
        score += lexicon.ACTION_ALIAS_BONUS

    if (
        _is_mid_conversation(state)
        and state.current_character == profile.id
        and not ending
    ):
        score += continuation_bonus

    location = (context or {}).get("location")
    if location and profile.home_location == location and score:
        score += lexicon.LOCATION_CONTEXT_BONUS

    return score


def _is_asking_about(lowered: str) -> bool:
    return any(re.search(p, lowered) for p in lexicon.ABOUT_PATTERNS)


def detect_character_mention(
    text: Optional[str],
    conversation_state: Optional[ConversationState] = None,
    context: Optional[Dict] = None,
    threshold: int = DEFAULT_MENTION_THRESHOLD,
    continuation_bonus: int = DEFAULT_CONTINUATION_BONUS,
) -> Optional[str]:
    """Work out which character the player is addressing.

    Returns the id of the best-scoring character when that score reaches
    ``threshold``, otherwise None. Ties go to the first character in the
    fixed CHARACTERS order.

    While mid-conversation, a question ABOUT someone else ("what do you
    think of Jordan?") stays with the current character unless the player
    explicitly addresses the other person ("let me talk to Jordan").
    """
    lowered = _normalize(text)
    if not lowered:
        return None

    ending = is_ending_conversation(lowered, conversation_state)

    if _is_mid_conversation(conversation_state) and not ending and _is_asking_about(lowered):
        current = conversation_state.current_character
        addressed_other = any(
            _addressed(lowered, _all_aliases(p))
            for p in CHARACTERS
            if p.id != current
        )
        if not addressed_other:
            return current

    best_id: Optional[str] = None
    best_score = 0
    for profile in CHARACTERS:
        score = score_character(
            lowered, profile, conversation_state, context, ending, continuation_bonus
        )
        if score > best_score:
            best_id, best_score = profile.id, score

    if best_id is not None and best_score >= threshold:
        logger.debug("[SIGNALS] Mention %s (score %d)", best_id, best_score)
        return best_id
    return None


def mentions_partner(text: Optional[str]) -> bool:
    """True if the partner is named at all."""
    lowered = _normalize(text)
    partner = get_character(PARTNER_ID)
    return bool(
        lowered
        and partner
        and has_any(lowered, partner.aliases.direct + partner.aliases.role)
    )


# =============================================================================
# Ending detection
# =============================================================================

def _is_fatigued(
    state: ConversationState, now: Optional[int], fatigue_minutes: int
) -> bool:
    if now is None or not state.current_character:
        return False
    profile = get_character(state.current_character)
    memory = state.characters.get(state.current_character)
    if profile is None or memory is None or memory.last_interaction_time is None:
        return False
    if not profile.critical_topics:
        return False
    idle = now - memory.last_interaction_time
    covered = all(t in memory.topics_discussed for t in profile.critical_topics)
    return idle > fatigue_minutes and covered


def _redirects_to_partner(lowered: str, current: Optional[str]) -> bool:
    if current == PARTNER_ID:
        return False
    partner = get_character(PARTNER_ID)
    for alias in partner.aliases.direct:
        for template in lexicon.PARTNER_REDIRECT_PATTERNS:
            if re.search(template.format(partner=re.escape(alias)), lowered):
                return True
    return False


def is_ending_conversation(
    text: Optional[str],
    conversation_state: Optional[ConversationState] = None,
    now: Optional[int] = None,
    fatigue_minutes: int = DEFAULT_FATIGUE_MINUTES,
    include_redirects: bool = True,
) -> bool:
    """Decide whether the player is wrapping up the current conversation.

    With ``include_redirects=False`` only an explicit wrap-up counts:
    turning to the partner or addressing someone else does not.
    """
    lowered = _normalize(text)
    state = conversation_state or ConversationState()
    current = state.current_character
    current_profile = get_character(current)

    if lowered:
        if has_any(lowered, lexicon.GOODBYE_PHRASES):
            return True

        if has_any(lowered, lexicon.MOVEMENT_PHRASES) and has_any(lowered, lexicon.LOCATION_WORDS):
            names_current = bool(
                current_profile and has_any(lowered, current_profile.aliases.direct)
            )
            if not names_current:
                return True

        if include_redirects and current and _redirects_to_partner(lowered, current):
            return True

        if has_any(lowered, lexicon.INVESTIGATION_TRANSITION_PHRASES):
            return True

        if include_redirects and current:
            for profile in CHARACTERS:
                if profile.id == current:
                    continue
                if _addressed(lowered, _all_aliases(profile)):
                    return True

        if state.conversation_phase in (
            ConversationPhase.QUESTIONING,
            ConversationPhase.CONCLUDING,
        ) and has_any(lowered, lexicon.CONTEXTUAL_ENDINGS):
            return True

    return _is_fatigued(state, now, fatigue_minutes)


# =============================================================================
# Accusations
# =============================================================================

def detect_accusation(text: Optional[str]) -> AccusationSignal:
    lowered = _normalize(text)
    if not lowered:
        return AccusationSignal(False)
    if has_any(lowered, lexicon.DIRECT_ACCUSATIONS):
        return AccusationSignal(True, "direct")
    if has_any(lowered, lexicon.TIMELINE_ACCUSATIONS):
        return AccusationSignal(True, "timeline")
    return AccusationSignal(False)


# =============================================================================
# Investigative actions
# =============================================================================

def is_photography_action(text: Optional[str]) -> bool:
    lowered = _normalize(text)
    return bool(lowered) and any(k in lowered for k in lexicon.PHOTOGRAPHY_KEYWORDS)


def is_search_action(text: Optional[str]) -> bool:
    lowered = _normalize(text)
    return bool(lowered) and has_any(lowered, lexicon.SEARCH_VERBS) and has_any(
        lowered, lexicon.SEARCH_PLACES
    )


def is_general_investigative_action(text: Optional[str]) -> bool:
    lowered = _normalize(text)
    if not lowered:
        return False
    if is_photography_action(lowered):
        return True
    if has_any(lowered, lexicon.INVESTIGATION_VERBS):
        return True
    return has_any(lowered, lexicon.INVESTIGATION_NOUNS) and has_any(
        lowered, lexicon.ACTION_VERBS
    )


# =============================================================================
# Lab submissions
# =============================================================================

def detect_evidence_submission(
    text: Optional[str], available_evidence: Iterable[str]
) -> Set[str]:
    """Evidence ids the player is handing over for analysis.

    Needs both a submission verb and a keyword for the item, and the item
    must already be collected and analyzable.
    """
    lowered = _normalize(text)
    if not lowered or not has_any(lowered, lexicon.SUBMISSION_VERBS):
        return set()

    submitted = set()
    for evidence_id in available_evidence or ():
        definition = EVIDENCE_BY_ID.get(evidence_id)
        if definition is None or not definition.analyzable:
            continue
        if has_any(lowered, definition.keywords):
            submitted.add(evidence_id)
    return submitted


def detect_results_request(text: Optional[str]) -> bool:
    lowered = _normalize(text)
    return bool(lowered) and has_any(lowered, lexicon.RESULTS_PHRASES)


def detect_mood_signal(text: Optional[str]) -> Optional[str]:
    """'aggressive', 'empathetic' or None."""
    lowered = _normalize(text)
    if not lowered:
        return None
    if has_any(lowered, lexicon.AGGRESSIVE_WORDS):
        return "aggressive"
    if has_any(lowered, lexicon.EMPATHETIC_WORDS):
        return "empathetic"
    return None
