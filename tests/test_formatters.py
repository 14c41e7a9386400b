from game.models import ChatMessage, Outcome, TrialPhase
from game.state import GameState
from ui.formatters import (
    format_message_html,
    format_message_log_html,
    format_notepad_html,
    format_status_html,
    visible_leads,
)


def test_red_herrings_are_hidden():
    assert visible_leads(["phone-records", "restraining-order"]) == ["phone-records"]


def test_closed_notepad_renders_nothing(settings):
    state = GameState(settings=settings)
    assert format_notepad_html(state) == ""


def test_notepad_sections(settings):
    state = GameState(settings=settings)
    state.notepad_open = True
    state.add_evidence("bloodstain")
    state.add_lead("blood-analysis")
    state.add_lead("restraining-order")
    state.analysis.submit(["bloodstain"], now=0)

    html = format_notepad_html(state)
    assert "Unusual blood spatter pattern" in html
    assert "Send the blood sample to Dr. Chen" in html
    assert "restraining order" not in html
    assert "(pending)" in html
    assert "Contradictions" not in html


def test_status_bar_at_start(settings):
    html = format_status_html(GameState(settings=settings))
    assert "07:50" in html
    assert "48:00 left" in html
    assert "Mia&#x27;s Apartment" in html
    assert "🗣️" not in html


def test_status_bar_after_verdict(settings):
    state = GameState(settings=settings)
    state.accusation.phase = TrialPhase.ENDED
    state.accusation.outcome = Outcome.LOSE
    state.sound_enabled = False
    html = format_status_html(state)
    assert "Case closed: NOT GUILTY" in html
    assert "🔇" in html


def test_messages_are_escaped():
    html = format_message_html(ChatMessage(role="player", content="<script>alert(1)</script>"))
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_npc_and_stage_lines():
    npc = format_message_html(ChatMessage(role="npc", content="Hi.", speaker="Navarro"))
    assert "<b>Navarro:</b> Hi." in npc
    stage = format_message_html(ChatMessage(role="stage", content="*Rain.*"))
    assert "<em>Rain.</em>" in stage


def test_empty_log_has_prompt():
    assert "Type what you want to do" in format_message_log_html([])
