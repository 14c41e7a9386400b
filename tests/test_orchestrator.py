import asyncio

import pytest

from config.settings import GameSettings
from game.case_data import (
    ANALYSIS_FINDINGS,
    CHARACTERS_BY_ID,
    LAWYER_ARRIVAL,
    LAWYERED_REFUSAL,
    PARTNER_TRANSITION_LINES,
    STAGE_DIRECTIONS,
)
from game.models import ActionType, ConversationPhase, Outcome, TrialPhase
from game.orchestrator import SERVICE_FALLBACK_LINES, Orchestrator
from game.persistence import MemoryStore, SaveStore
from game.state import GameState
from services.dialogue_service import DialogueEvent, DialogueServiceError, ErrorCategory


def say(orchestrator, *lines):
    """Send each line in turn. Returns the last TurnResult."""

    async def _run():
        result = None
        for line in lines:
            result = await orchestrator.handle_input(line)
        return result

    return asyncio.run(_run())


def skip(orchestrator, minutes):
    return asyncio.run(orchestrator.skip_time(minutes))


def contents(orchestrator):
    return [m.content for m in orchestrator.state.messages]


def last(orchestrator, role=None):
    messages = [m for m in orchestrator.state.messages if role is None or m.role == role]
    return messages[-1]


# =============================================================================
# Investigation turns
# =============================================================================

def test_search_the_apartment(orchestrator, stub_dialogue):
    result = say(orchestrator, "search the apartment")

    assert result.action == ActionType.INVESTIGATIVE
    state = orchestrator.state
    assert state.evidence == ["missing-phone", "bracelet-charm"]
    assert state.time_elapsed == 10
    assert "phone-records" in state.leads
    assert stub_dialogue.requests[-1].game_state.pending_action == "INVESTIGATE"

    reply = last(orchestrator, "npc")
    assert reply.speaker == "Navarro"
    assert reply.content == "Go on."


def test_general_chatter_goes_to_partner(orchestrator, stub_dialogue):
    result = say(orchestrator, "hmm")
    assert result.action == ActionType.GENERAL
    assert last(orchestrator, "npc").speaker == "Navarro"
    assert orchestrator.state.conversation.current_character is None


def test_dialogue_history_is_sent(orchestrator, stub_dialogue):
    say(orchestrator, "hmm")
    messages = stub_dialogue.requests[-1].messages
    assert messages[-1].role == "user"
    assert messages[-1].content == "hmm"


# =============================================================================
# Interviews and transitions
# =============================================================================

def test_too_early_to_interview(orchestrator):
    say(orchestrator, "talk to Marvin")

    assert orchestrator.state.conversation.current_character is None
    assert orchestrator.state.time_elapsed == 0
    assert last(orchestrator).content.startswith("Too early to interview (current time 07:50)")


def test_interview_opens_conversation_and_charges_time(orchestrator):
    skip(orchestrator, 30)
    say(orchestrator, "talk to Marvin")

    state = orchestrator.state
    assert state.time_elapsed == 50
    assert state.conversation.current_character == "marvin-lott"
    assert state.conversation.phase == ConversationPhase.QUESTIONING
    assert STAGE_DIRECTIONS["marvin-lott"] in contents(orchestrator)
    assert "interview-marvin" in state.leads
    assert state.interviews_completed == ["marvin-lott"]
    assert last(orchestrator, "npc").speaker == "Marvin Lott"


def test_witness_blocks_until_goodbye(orchestrator, stub_dialogue):
    skip(orchestrator, 30)
    say(orchestrator, "talk to Marvin", "I need to talk to Rachel")

    convo = orchestrator.state.conversation
    assert convo.current_character == "marvin-lott"
    reminder = last(orchestrator)
    assert reminder.role == "stage"
    assert "Marvin Lott" in reminder.content

    say(orchestrator, "Thanks for your time, goodbye")
    assert convo.current_character is None
    assert convo.phase == ConversationPhase.NONE
    assert stub_dialogue.requests[-1].game_state.pending_action == "END_CONVERSATION"
    closing = last(orchestrator)
    assert closing.speaker == "Navarro"
    assert closing.content == PARTNER_TRANSITION_LINES[0]

    say(orchestrator, "talk to Rachel")
    state = orchestrator.state
    assert state.conversation.current_character == "rachel-kim"
    assert state.location == "rachel-house"
    assert state.time_elapsed == 70


def test_suspect_hands_over_without_goodbye(orchestrator):
    skip(orchestrator, 30)
    say(orchestrator, "talk to Jordan", "I need to talk to Rachel")

    state = orchestrator.state
    assert state.conversation.current_character == "rachel-kim"
    # 30 skipped, 20 + 20 for the two interviews, 10 to move between them
    assert state.time_elapsed == 80
    assert "*You leave Jordan Valez and move on.*" in contents(orchestrator)


def test_side_question_to_partner_keeps_interview_open(orchestrator, stub_dialogue):
    skip(orchestrator, 60)
    say(orchestrator, "I want to talk to Rachel")
    state = orchestrator.state
    before = state.time_elapsed

    result = say(orchestrator, "Navarro, does her story hold up?")

    assert result.action == ActionType.ASK_PARTNER
    assert state.conversation.current_character == "rachel-kim"
    assert state.time_elapsed == before
    assert stub_dialogue.requests[-1].game_state.pending_action == "ASK_PARTNER"
    assert last(orchestrator, "npc").speaker == "Navarro"


def test_accusations_escalate_to_lawyer(orchestrator):
    skip(orchestrator, 30)
    say(orchestrator, "talk to Rachel", "You killed her, admit it")

    rachel = CHARACTERS_BY_ID["rachel-kim"]
    warning = last(orchestrator)
    assert warning.speaker == "Rachel Kim"
    assert warning.content == rachel.warning_lines[0]
    assert orchestrator.state.conversation.current_character == "rachel-kim"

    say(orchestrator, "You're lying, you did this")
    convo = orchestrator.state.conversation
    assert convo.current_character is None
    assert convo.is_lawyered("rachel-kim")
    tail = contents(orchestrator)[-3:]
    assert tail[0] == rachel.lawyer_lines[0]
    assert tail[1] == LAWYER_ARRIVAL

    say(orchestrator, "talk to Rachel")
    assert last(orchestrator).content == LAWYERED_REFUSAL.format(name="Rachel Kim")
    assert convo.current_character is None


def test_contradiction_is_caught(orchestrator, stub_dialogue):
    skip(orchestrator, 30)
    say(orchestrator, "pull the phone records")
    assert "phone-company-records" in orchestrator.state.evidence

    stub_dialogue.events = [
        DialogueEvent(type="dialogue", speaker="Rachel Kim", text="I didn't call her. I just came over."),
    ]
    say(orchestrator, "talk to Rachel")

    state = orchestrator.state
    assert "rachel-timeline" in state.leads
    memory = state.conversation.memory("rachel-kim")
    assert [c.id for c in memory.contradictions] == ["rachel-morning-call"]
    assert memory.suspicion_level == 2
    assert last(orchestrator).content.startswith("❗ Contradiction:")


# =============================================================================
# Forensic lab
# =============================================================================

def test_lab_submission_and_results(orchestrator):
    say(orchestrator, "examine the wall", "talk to Dr. Chen", "Can you analyze the blood sample?")

    state = orchestrator.state
    assert state.analysis.pending_evidence_ids == ["bloodstain"]
    assert "14:00" in last(orchestrator).content

    skip(orchestrator, 360)
    state = orchestrator.state
    assert state.analysis.has_results()
    assert "dna-match" in state.leads
    assert any(c.startswith("🧪 Lab results ready") for c in contents(orchestrator))

    say(orchestrator, "Dr. Chen, any results?")
    assert f"\"{ANALYSIS_FINDINGS['bloodstain']}\"" in contents(orchestrator)
    assert not orchestrator.state.analysis.has_results()


# =============================================================================
# Accusation and trial
# =============================================================================

def test_accusation_waits_until_nine_pm(orchestrator):
    asyncio.run(orchestrator.accuse("rachel-kim"))
    assert last(orchestrator).content.startswith("Not yet. Must wait until 9 PM on day 1")
    assert orchestrator.state.accusation.phase == TrialPhase.NONE


def test_correct_accusation_wins(orchestrator):
    skip(orchestrator, 790)
    asyncio.run(orchestrator.accuse("rachel-kim"))

    accusation = orchestrator.state.accusation
    assert accusation.phase == TrialPhase.ENDED
    assert accusation.outcome == Outcome.WIN

    say(orchestrator, "search the apartment")
    assert last(orchestrator).content == "The case is closed."
    assert orchestrator.state.evidence == []

    asyncio.run(orchestrator.accuse("jordan-valez"))
    assert last(orchestrator).content == "You've already made your accusation."


def test_unknown_suspect(orchestrator):
    skip(orchestrator, 790)
    asyncio.run(orchestrator.accuse("the-butler"))
    assert "nobody called 'the-butler'" in last(orchestrator).content


@pytest.mark.parametrize("character_id", ["navarro", "dr-chen", "marvin-lott"])
def test_only_suspects_can_be_accused(orchestrator, character_id):
    skip(orchestrator, 790)
    asyncio.run(orchestrator.accuse(character_id))

    assert not orchestrator.state.trial.started
    name = CHARACTERS_BY_ID[character_id].name
    assert last(orchestrator).content == f"{name} isn't a suspect on this case."


# =============================================================================
# Time, save and load
# =============================================================================

def test_skip_rejects_more_than_remaining(orchestrator):
    skip(orchestrator, 3000)
    assert orchestrator.state.time_elapsed == 0
    assert last(orchestrator).content.startswith("Not enough time left")


def test_out_of_time(orchestrator):
    skip(orchestrator, 2880)
    assert last(orchestrator).content.startswith("⏰ The 48 hours are up")

    say(orchestrator, "search the apartment")
    assert orchestrator.state.evidence == []
    assert last(orchestrator).content.startswith("⏰ The 48 hours are up")


def test_save_and_load(orchestrator):
    say(orchestrator, "search the apartment")
    asyncio.run(orchestrator.save_game())
    assert last(orchestrator).content == "💾 Game saved at 08:00."

    skip(orchestrator, 60)
    assert orchestrator.state.time_elapsed == 70

    asyncio.run(orchestrator.load_game())
    assert orchestrator.state.time_elapsed == 10
    assert orchestrator.state.evidence == ["missing-phone", "bracelet-charm"]
    assert last(orchestrator).content == "📂 Game loaded. It's 08:00."


def test_load_without_save(orchestrator):
    asyncio.run(orchestrator.load_game())
    assert last(orchestrator).content == "No saved game found."


def test_toggles(orchestrator):
    assert orchestrator.toggle_notepad() is True
    assert orchestrator.toggle_sound() is False
    assert orchestrator.state.notepad_open
    assert not orchestrator.state.sound_enabled


# =============================================================================
# Guards and failure handling
# =============================================================================

def test_input_ignored_while_processing(orchestrator, stub_dialogue):
    orchestrator.processing = True
    result = say(orchestrator, "search the apartment")

    assert result.ignored
    assert orchestrator.state.messages == []
    assert stub_dialogue.requests == []


def test_failure_clears_processing_flag(orchestrator, stub_dialogue):
    stub_dialogue.error = RuntimeError("boom")
    result = say(orchestrator, "hmm")

    assert result.error == "boom"
    assert not orchestrator.processing
    assert not orchestrator.loading
    assert last(orchestrator).content.startswith("⚠️ Something went wrong")

    stub_dialogue.error = None
    assert not say(orchestrator, "hmm").ignored


def test_state_lock_timeout(stub_dialogue):
    settings = GameSettings(transition_delay=0.0, trial_step_delay=0.0, lock_timeout_seconds=0.01)
    orchestrator = Orchestrator(
        GameState(settings=settings),
        stub_dialogue,
        save_store=SaveStore(MemoryStore()),
        settings=settings,
    )

    async def _run():
        await orchestrator.lock.__aenter__()
        try:
            return await orchestrator.handle_input("hmm")
        finally:
            await orchestrator.lock.__aexit__(None, None, None)

    result = asyncio.run(_run())
    assert result.error
    assert last(orchestrator).content.startswith("⏳ The case file is busy")


def test_overlapping_transition_is_discarded(stub_dialogue):
    settings = GameSettings(transition_delay=1.0, trial_step_delay=0.0)
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)
        await asyncio.sleep(0)

    orchestrator = Orchestrator(
        GameState(settings=settings),
        stub_dialogue,
        save_store=SaveStore(MemoryStore()),
        settings=settings,
        sleep=fake_sleep,
    )
    skip(orchestrator, 30)
    say(orchestrator, "talk to Jordan")

    async def _both():
        return await asyncio.gather(
            orchestrator._transition_to("rachel-kim", False),
            orchestrator._transition_to("marvin-lott", False),
        )

    moved, dropped = asyncio.run(_both())
    assert moved is True
    assert dropped is False
    assert orchestrator.state.conversation.current_character == "rachel-kim"
    assert "marvin-lott" not in orchestrator.state.conversation.state.characters
    assert not orchestrator.transition_in_progress
    assert delays == [1.0]
    assert not orchestrator.processing


@pytest.mark.parametrize("category", [ErrorCategory.NETWORK, ErrorCategory.TIMEOUT, ErrorCategory.HTTP])
def test_service_failures_fall_back_to_partner(orchestrator, stub_dialogue, category):
    stub_dialogue.error = DialogueServiceError(category)
    say(orchestrator, "hmm")

    reply = last(orchestrator)
    assert reply.speaker == "Navarro"
    assert reply.content == SERVICE_FALLBACK_LINES[category]


def test_empty_response_uses_character_fallback(orchestrator, stub_dialogue):
    stub_dialogue.error = DialogueServiceError(ErrorCategory.EMPTY)
    say(orchestrator, "hmm")
    assert last(orchestrator).content == CHARACTERS_BY_ID["navarro"].fallback_line


def test_stage_only_response_still_gets_a_line(orchestrator, stub_dialogue):
    stub_dialogue.events = [DialogueEvent(type="stage", description="*Navarro shrugs.*")]
    say(orchestrator, "hmm")

    assert "*Navarro shrugs.*" in contents(orchestrator)
    assert last(orchestrator).content == CHARACTERS_BY_ID["navarro"].fallback_line


def test_poll_announces_finished_analysis(orchestrator):
    state = orchestrator.state
    state.add_evidence("knife")
    state.analysis.submit(["knife"], now=0)
    state.clock.advance(240)

    asyncio.run(orchestrator.poll_analysis())

    assert (
        "🧪 Lab results ready: Kitchen knife left at the scene. Ask Dr. Chen for the findings."
        in contents(orchestrator)
    )
    assert state.analysis.has_results()
    assert "knife-analysis" in state.leads
