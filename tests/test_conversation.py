import pytest

from game.case_data import CHARACTERS_BY_ID, LAWYER_ARRIVAL
from game.conversation import ConversationEngine, EscalationLevel, TransitionOutcome
from game.models import (
    ConversationPhase,
    ConversationState,
    MemoryState,
    PendingAction,
)


def assert_invariant(engine):
    state = engine.state
    assert (state.conversation_phase == ConversationPhase.NONE) == (state.current_character is None)


# =============================================================================
# Invariant healing
# =============================================================================

def test_update_heals_character_without_phase():
    engine = ConversationEngine()
    engine.update(current_character="marvin-lott")
    assert engine.phase == ConversationPhase.GREETING


def test_update_heals_phase_without_character():
    engine = ConversationEngine()
    engine.start_conversation("marvin-lott", now=0)
    engine.update(current_character=None)
    assert engine.phase == ConversationPhase.NONE
    assert engine.state.pending_action is None


def test_constructor_heals_loaded_state():
    engine = ConversationEngine(ConversationState(conversation_phase=ConversationPhase.QUESTIONING))
    assert engine.phase == ConversationPhase.NONE


def test_update_rejects_unknown_field():
    with pytest.raises(AttributeError):
        ConversationEngine().update(nonsense=1)


def test_invariant_holds_across_operations():
    engine = ConversationEngine()
    steps = [
        lambda: engine.start_conversation("marvin-lott", 0),
        lambda: engine.record_turn("marvin-lott", "player", "What time was the scream?", 5),
        lambda: engine.request_transition("rachel-kim", 6),
        lambda: engine.begin_conclusion(7),
        lambda: engine.finish_conclusion(),
        lambda: engine.start_conversation("rachel-kim", 8),
        lambda: engine.register_accusation("rachel-kim"),
        lambda: engine.register_accusation("rachel-kim"),
        lambda: engine.start_conversation("dr-chen", 9),
        lambda: engine.request_transition("navarro", 10),
        lambda: engine.start_conversation("navarro", 10),
        lambda: engine.force_close("test"),
        lambda: engine.update(conversation_phase=ConversationPhase.CONCLUDING),
    ]
    for step in steps:
        step()
        assert_invariant(engine)


# =============================================================================
# Lifecycle
# =============================================================================

def test_first_visit_costs_time_and_returns_are_free():
    engine = ConversationEngine()
    first = engine.start_conversation("marvin-lott", now=0)
    assert first.first_visit
    assert first.time_cost == 20
    assert first.stage_direction
    assert engine.memory("marvin-lott").state == MemoryState.INITIAL

    engine.finish_conclusion()
    second = engine.start_conversation("marvin-lott", now=30)
    assert not second.first_visit
    assert second.time_cost == 0
    assert second.stage_direction is None
    memory = engine.memory("marvin-lott")
    assert memory.visit_count == 2
    assert memory.state == MemoryState.RETURNING


def test_partner_and_forensic_are_free():
    engine = ConversationEngine()
    assert engine.start_conversation("navarro", 0).time_cost == 0
    assert engine.state.pending_action == PendingAction.ASK_PARTNER
    engine.finish_conclusion()
    assert engine.start_conversation("dr-chen", 0).time_cost == 0


def test_record_turn_moves_to_questioning_and_tracks_topics():
    engine = ConversationEngine()
    engine.start_conversation("marvin-lott", 0)
    topics = engine.record_turn("marvin-lott", "player", "Did you hear a scream last night?", 5)
    assert topics == {"scream", "timeline"}
    assert engine.phase == ConversationPhase.QUESTIONING
    memory = engine.memory("marvin-lott")
    assert memory.topics_discussed == {"scream", "timeline"}
    assert memory.last_interaction_time == 5
    assert engine.state.global_topics == {"scream", "timeline"}


def test_history_is_bounded():
    engine = ConversationEngine(history_limit=3)
    engine.start_conversation("marvin-lott", 0)
    for i in range(5):
        engine.record_turn("marvin-lott", "player", f"line {i}", i)
    history = engine.memory("marvin-lott").history
    assert len(history) == 3
    assert history[-1].text == "line 4"


def test_mood_and_relationship_follow_tone():
    engine = ConversationEngine()
    engine.start_conversation("jordan-valez", 0)
    engine.record_turn("jordan-valez", "player", "Stop lying to me", 1)
    memory = engine.memory("jordan-valez")
    assert memory.mood == "defensive"
    assert memory.relationship_level == -1

    engine.record_turn("jordan-valez", "player", "Sorry. I understand this is hard.", 2)
    assert memory.mood == "neutral"
    assert memory.relationship_level == 0


def test_conclusion_snapshot_and_close():
    engine = ConversationEngine()
    engine.start_conversation("marvin-lott", 0)
    engine.record_turn("marvin-lott", "player", "What time did you hear the scream?", 2)
    snapshot = engine.begin_conclusion(10)
    assert engine.phase == ConversationPhase.CONCLUDING
    assert engine.state.pending_action == PendingAction.END_CONVERSATION
    assert snapshot.character_id == "marvin-lott"
    assert snapshot.ended_at == 10
    assert snapshot.turns == 1

    assert engine.finish_conclusion() == "marvin-lott"
    assert engine.current_character is None
    assert engine.phase == ConversationPhase.NONE


def test_closing_steps_come_from_partner():
    engine = ConversationEngine(transition_delay=0)
    steps = engine.closing_steps("marvin-lott")
    assert len(steps) == 1
    assert steps[0].speaker == "Navarro"
    assert engine.closing_steps("navarro") == []


# =============================================================================
# Transitions
# =============================================================================

def test_witness_blocks_until_goodbye():
    engine = ConversationEngine()
    engine.start_conversation("marvin-lott", 0)

    blocked = engine.request_transition("rachel-kim", 5)
    assert blocked.outcome == TransitionOutcome.BLOCK
    assert "Marvin Lott" in blocked.reminder
    assert engine.current_character == "marvin-lott"

    allowed = engine.request_transition("rachel-kim", 5, ending=True)
    assert allowed.outcome == TransitionOutcome.ALLOW
    assert allowed.concluded == "marvin-lott"
    assert engine.current_character is None


@pytest.mark.parametrize("current", ["jordan-valez", "dr-chen", "navarro"])
def test_other_types_auto_conclude(current):
    engine = ConversationEngine()
    engine.start_conversation(current, 0)
    decision = engine.request_transition("marvin-lott", 5)
    assert decision.outcome == TransitionOutcome.ALLOW
    assert decision.concluded == current
    assert engine.current_character is None


def test_transition_noop_and_free_when_idle():
    engine = ConversationEngine()
    assert engine.request_transition("marvin-lott", 0).outcome == TransitionOutcome.ALLOW
    engine.start_conversation("marvin-lott", 0)
    assert engine.request_transition("marvin-lott", 0).outcome == TransitionOutcome.NOOP


# =============================================================================
# Escalation
# =============================================================================

def test_rachel_warns_then_lawyers_up():
    engine = ConversationEngine(transition_delay=0)
    engine.start_conversation("rachel-kim", 0)

    first = engine.register_accusation("rachel-kim")
    assert first.level == EscalationLevel.WARNING
    assert first.line == CHARACTERS_BY_ID["rachel-kim"].warning_lines[0]
    assert engine.current_character == "rachel-kim"

    second = engine.register_accusation("rachel-kim")
    assert second.level == EscalationLevel.LAWYER
    assert engine.current_character is None
    assert engine.phase == ConversationPhase.NONE
    assert engine.is_lawyered("rachel-kim")
    assert [s.text for s in second.steps][1] == LAWYER_ARRIVAL


def test_jordan_needs_three_accusations():
    engine = ConversationEngine()
    engine.start_conversation("jordan-valez", 0)
    lines = CHARACTERS_BY_ID["jordan-valez"].warning_lines

    assert engine.register_accusation("jordan-valez").line == lines[0]
    assert engine.register_accusation("jordan-valez").line == lines[1]
    assert engine.register_accusation("jordan-valez").level == EscalationLevel.LAWYER
    assert engine.current_character is None


def test_witness_does_not_escalate():
    engine = ConversationEngine()
    engine.start_conversation("marvin-lott", 0)
    for _ in range(3):
        assert engine.register_accusation("marvin-lott").level == EscalationLevel.NONE
    assert engine.current_character == "marvin-lott"


def test_context_for():
    engine = ConversationEngine()
    engine.start_conversation("marvin-lott", 0)
    engine.record_turn("marvin-lott", "player", "Tell me about the scream", 1)
    context = engine.context_for("marvin-lott")
    assert context["active_character"] == "marvin-lott"
    assert context["character_type"] == "WITNESS"
    assert context["phase"] == "QUESTIONING"
    assert context["topics_discussed"] == ["scream"]
    assert context["recent_history"][-1]["text"] == "Tell me about the scream"
    assert engine.context_for(None) == {}
