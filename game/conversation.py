"""Conversation engine.

Owns the ``ConversationState`` and every ``CharacterMemory`` inside it. No
other component writes to them; the orchestrator asks the engine to start,
continue, conclude or close conversations and the engine keeps the phase
and the character in focus consistent.

Phases for the character in focus::

    NONE -> GREETING -> QUESTIONING -> CONCLUDING -> NONE

``current_character is None`` if and only if the phase is NONE. Any write
that would break that is repaired on the spot and logged.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set

from game.case_data import (
    LAWYER_ARRIVAL,
    LAWYER_CLOSING,
    PARTNER_ID,
    PARTNER_TRANSITION_LINES,
    STAGE_DIRECTIONS,
    WITNESS_REMINDER,
    character_name,
    get_character,
    get_type_rules,
)
from game.models import (
    CharacterMemory,
    ClosurePolicy,
    Contradiction,
    ConversationEndState,
    ConversationPhase,
    ConversationState,
    DialogueTurn,
    MemoryState,
    PendingAction,
)
from game.narration import NarrationStep
from game.signals import detect_mood_signal, extract_topics

logger = logging.getLogger(__name__)

# Friendliest to most hostile
MOOD_LADDER = ["open", "neutral", "defensive", "agitated", "hostile"]


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _shift_mood(mood: str, steps: int) -> str:
    index = MOOD_LADDER.index(mood) if mood in MOOD_LADDER else 1
    return MOOD_LADDER[_clamp(index + steps, 0, len(MOOD_LADDER) - 1)]


class TransitionOutcome(str, Enum):
    ALLOW = "ALLOW"
    BLOCK = "BLOCK"
    NOOP = "NOOP"


class EscalationLevel(str, Enum):
    NONE = "NONE"
    WARNING = "WARNING"
    LAWYER = "LAWYER"


@dataclass
class StartResult:
    character_id: str
    first_visit: bool
    time_cost: int
    stage_direction: Optional[str] = None


@dataclass
class TransitionDecision:
    outcome: TransitionOutcome
    reminder: Optional[str] = None
    concluded: Optional[str] = None  # character wrapped up to make way


@dataclass
class EscalationResult:
    level: EscalationLevel
    line: Optional[str] = None
    steps: List[NarrationStep] = field(default_factory=list)


class ConversationEngine:
    """State machine for who the player is talking to and how it's going."""

    def __init__(
        self,
        state: Optional[ConversationState] = None,
        history_limit: int = 20,
        transition_delay: float = 1.5,
    ):
        self.state = state or ConversationState()
        self.history_limit = history_limit
        self.transition_delay = transition_delay
        self._closings = 0
        self._heal()

    # =========================================================================
    # Single write path
    # =========================================================================

    def update(self, **changes) -> ConversationState:
        """Apply ``changes`` to the conversation state, then repair invariants."""
        for key, value in changes.items():
            if not hasattr(self.state, key):
                raise AttributeError(f"ConversationState has no field '{key}'")
            setattr(self.state, key, value)
        self._heal()
        return self.state

    def _heal(self) -> None:
        state = self.state
        if state.current_character is None and state.conversation_phase != ConversationPhase.NONE:
            logger.warning(
                "[CONVO] Phase %s with nobody in focus, resetting to NONE",
                state.conversation_phase.value,
            )
            state.conversation_phase = ConversationPhase.NONE
            state.pending_action = None
        elif state.current_character is not None and state.conversation_phase == ConversationPhase.NONE:
            logger.warning(
                "[CONVO] %s in focus with phase NONE, moving to GREETING",
                state.current_character,
            )
            state.conversation_phase = ConversationPhase.GREETING

    # =========================================================================
    # Memory
    # =========================================================================

    def memory(self, character_id: str) -> CharacterMemory:
        """Get a character's memory, creating it on first contact."""
        if character_id not in self.state.characters:
            self.state.characters[character_id] = CharacterMemory(character_id=character_id)
        return self.state.characters[character_id]

    def is_lawyered(self, character_id: Optional[str]) -> bool:
        memory = self.state.characters.get(character_id or "")
        return bool(memory and memory.lawyered)

    @property
    def current_character(self) -> Optional[str]:
        return self.state.current_character

    @property
    def phase(self) -> ConversationPhase:
        return self.state.conversation_phase

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start_conversation(self, character_id: str, now: int) -> StartResult:
        """Put ``character_id`` in focus in the GREETING phase."""
        rules = get_type_rules(character_id)
        memory = self.memory(character_id)
        first_visit = memory.visit_count == 0

        memory.visit_count += 1
        if memory.visit_count > 1:
            memory.state = MemoryState.RETURNING
        memory.current_conversation_start_time = now
        memory.last_interaction_time = now

        pending = (
            PendingAction.ASK_PARTNER
            if character_id == PARTNER_ID
            else PendingAction.CONTINUE_CONVERSATION
        )
        self.update(
            current_character=character_id,
            conversation_phase=ConversationPhase.GREETING,
            pending_action=pending,
            end_state=None,
        )

        time_cost = rules.first_visit_cost if (rules and first_visit) else 0
        stage = STAGE_DIRECTIONS.get(character_id) if first_visit else None
        logger.info(
            "[CONVO] Start %s (visit %d, cost %d)",
            character_id, memory.visit_count, time_cost,
        )
        return StartResult(
            character_id=character_id,
            first_visit=first_visit,
            time_cost=time_cost,
            stage_direction=stage,
        )

    def record_turn(
        self,
        character_id: str,
        speaker: str,
        text: str,
        now: int,
        analysis: Optional[Dict] = None,
        contradictions: Optional[List[Contradiction]] = None,
    ) -> Set[str]:
        """Append a line to the character's history.

        Player lines feed topics and mood. Returns the topics found.
        """
        memory = self.memory(character_id)
        contradictions = contradictions or []
        memory.history.append(
            DialogueTurn(
                timestamp=now,
                speaker=speaker,
                text=text,
                analysis=analysis or {},
                contradictions=[c.id for c in contradictions],
            )
        )
        if len(memory.history) > self.history_limit:
            memory.history = memory.history[-self.history_limit:]

        known = {c.id for c in memory.contradictions}
        for contradiction in contradictions:
            if contradiction.id not in known:
                memory.contradictions.append(contradiction)
                memory.suspicion_level = _clamp(memory.suspicion_level + 2, 0, 10)

        topics: Set[str] = set()
        if speaker == "player":
            topics = extract_topics(text)
            memory.topics_discussed |= topics
            self.state.global_topics |= topics

            signal = detect_mood_signal(text)
            if signal == "aggressive":
                memory.mood = _shift_mood(memory.mood, 1)
                memory.relationship_level = _clamp(memory.relationship_level - 1, -10, 10)
            elif signal == "empathetic":
                memory.mood = _shift_mood(memory.mood, -1)
                memory.relationship_level = _clamp(memory.relationship_level + 1, -10, 10)

        memory.last_interaction_time = now

        if self.state.current_character == character_id and self.phase in (
            ConversationPhase.GREETING,
            ConversationPhase.QUESTIONING,
        ):
            self.update(conversation_phase=ConversationPhase.QUESTIONING)
        return topics

    def begin_conclusion(self, now: int) -> Optional[ConversationEndState]:
        """Start wrapping up the current conversation."""
        character_id = self.state.current_character
        if character_id is None or self.phase == ConversationPhase.CONCLUDING:
            return self.state.end_state

        memory = self.memory(character_id)
        started = memory.current_conversation_start_time
        turns = len([t for t in memory.history if started is None or t.timestamp >= started])
        snapshot = ConversationEndState(
            character_id=character_id,
            ended_at=now,
            turns=turns,
            topics=sorted(memory.topics_discussed),
            mood=memory.mood,
        )
        self.update(
            conversation_phase=ConversationPhase.CONCLUDING,
            pending_action=PendingAction.END_CONVERSATION,
            end_state=snapshot,
        )
        logger.info("[CONVO] Concluding %s after %d turn(s)", character_id, turns)
        return snapshot

    def finish_conclusion(self) -> Optional[str]:
        """CONCLUDING -> NONE. Returns who was just let go."""
        character_id = self.state.current_character
        if character_id is not None:
            self.memory(character_id).current_conversation_start_time = None
        self.update(
            current_character=None,
            conversation_phase=ConversationPhase.NONE,
            pending_action=None,
        )
        if character_id:
            logger.info("[CONVO] Closed conversation with %s", character_id)
        return character_id

    def force_close(self, reason: str = "") -> Optional[str]:
        """Drop the conversation regardless of phase."""
        character_id = self.state.current_character
        if character_id is not None:
            logger.info("[CONVO] Force-closing %s: %s", character_id, reason or "no reason")
        return self.finish_conclusion()

    def closing_steps(self, character_id: Optional[str]) -> List[NarrationStep]:
        """The partner's remark after a conversation wraps up."""
        if not character_id or character_id == PARTNER_ID:
            return []
        line = PARTNER_TRANSITION_LINES[self._closings % len(PARTNER_TRANSITION_LINES)]
        self._closings += 1
        return [
            NarrationStep(
                delay=self.transition_delay,
                speaker=character_name(PARTNER_ID),
                text=line,
            )
        ]

    # =========================================================================
    # Moving between characters
    # =========================================================================

    def request_transition(
        self, target: Optional[str], now: int, ending: bool = False
    ) -> TransitionDecision:
        """Can the player switch focus to ``target`` right now?

        Characters with AUTO closure are wrapped up automatically. BLOCK
        closure characters (witnesses) hold the player until they say goodbye.
        """
        current = self.state.current_character
        if current is None:
            return TransitionDecision(TransitionOutcome.ALLOW)
        if target == current:
            return TransitionDecision(TransitionOutcome.NOOP)

        rules = get_type_rules(current)
        if rules and rules.closure == ClosurePolicy.BLOCK and not ending:
            logger.info("[CONVO] %s blocks the move to %s", current, target)
            return TransitionDecision(
                TransitionOutcome.BLOCK,
                reminder=WITNESS_REMINDER.format(name=character_name(current)),
            )

        self.begin_conclusion(now)
        concluded = self.finish_conclusion()
        return TransitionDecision(TransitionOutcome.ALLOW, concluded=concluded)

    # =========================================================================
    # Accusations
    # =========================================================================

    def register_accusation(self, character_id: str) -> EscalationResult:
        """Count an accusation against ``character_id`` and escalate if due."""
        profile = get_character(character_id)
        rules = get_type_rules(character_id)
        memory = self.memory(character_id)
        memory.accusation_count += 1
        memory.suspicion_level = _clamp(memory.suspicion_level + 1, 0, 10)
        memory.mood = _shift_mood(memory.mood, 1)

        if (
            profile is None
            or rules is None
            or not rules.escalates
            or not profile.accusation_threshold
            or memory.lawyered
        ):
            return EscalationResult(EscalationLevel.NONE)

        count = memory.accusation_count
        if count < profile.accusation_threshold:
            lines = profile.warning_lines or [profile.fallback_line]
            line = lines[min(count, len(lines)) - 1]
            logger.info("[CONVO] %s warns the player (accusation %d)", character_id, count)
            return EscalationResult(EscalationLevel.WARNING, line=line)

        memory.lawyered = True
        memory.mood = "hostile"
        line = profile.lawyer_lines[0] if profile.lawyer_lines else profile.fallback_line
        if self.state.current_character == character_id:
            self.force_close("lawyer ended the interview")
        logger.info("[CONVO] %s lawyered up after %d accusations", character_id, count)

        steps = [
            NarrationStep(delay=0, speaker=profile.name, text=line),
            NarrationStep(delay=self.transition_delay, kind="stage", text=LAWYER_ARRIVAL),
            NarrationStep(delay=self.transition_delay, speaker="Lawyer", text=LAWYER_CLOSING),
        ]
        return EscalationResult(EscalationLevel.LAWYER, line=line, steps=steps)

    # =========================================================================
    # Dialogue context
    # =========================================================================

    def context_for(self, character_id: Optional[str], recent_turns: int = 6) -> Dict:
        """What the dialogue model needs to know about this conversation."""
        if not character_id:
            return {}
        profile = get_character(character_id)
        memory = self.memory(character_id)
        return {
            "active_character": character_id,
            "character_name": character_name(character_id),
            "character_type": profile.character_type.value if profile else None,
            "phase": self.phase.value,
            "memory_state": memory.state.value,
            "visit_count": memory.visit_count,
            "topics_discussed": sorted(memory.topics_discussed),
            "mood": memory.mood,
            "suspicion_level": memory.suspicion_level,
            "relationship_level": memory.relationship_level,
            "accusation_count": memory.accusation_count,
            "recent_history": [
                {"speaker": t.speaker, "text": t.text}
                for t in memory.history[-recent_turns:]
            ],
            "contradictions": [c.description for c in memory.contradictions],
        }
