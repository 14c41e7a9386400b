"""UI formatting functions for displaying game information as HTML."""

import html
import logging
from typing import List

from game.case_data import (
    CASE_TITLE,
    LEADS_BY_ID,
    LOCATIONS,
    character_name,
    evidence_description,
)
from game.clock import fmt
from game.models import ChatMessage, Outcome, TrialPhase
from game.state import GameState

logger = logging.getLogger(__name__)


def _esc(text) -> str:
    return html.escape(str(text or ""))


def format_message_html(message: ChatMessage) -> str:
    """One log line. Stage directions are italic, system lines muted."""
    if message.role == "player":
        return f'<div class="msg msg-player"><b>You:</b> {_esc(message.content)}</div>'
    if message.role == "npc":
        speaker = _esc(message.speaker or "???")
        return f'<div class="msg msg-npc"><b>{speaker}:</b> {_esc(message.content)}</div>'
    if message.role == "stage":
        text = _esc(message.content.strip("*"))
        return f'<div class="msg msg-stage"><em>{text}</em></div>'
    return f'<div class="msg msg-system" style="opacity: 0.8;">{_esc(message.content)}</div>'


def format_message_log_html(messages: List[ChatMessage], limit: int = 200) -> str:
    if not messages:
        return f"<em>{_esc(CASE_TITLE)}. Type what you want to do to begin.</em>"
    return "\n".join(format_message_html(m) for m in messages[-limit:])


def visible_leads(lead_ids: List[str]) -> List[str]:
    """Leads the notepad shows. Red herrings stay hidden."""
    shown = []
    for lead_id in lead_ids:
        lead = LEADS_BY_ID.get(lead_id)
        if lead is not None and lead.is_red_herring:
            continue
        shown.append(lead_id)
    return shown


def format_notepad_html(state: GameState) -> str:
    """The detective's notepad: evidence, leads, lab work and contradictions."""
    if not state.notepad_open:
        return ""

    evidence_items = "".join(
        f"<li>{_esc(evidence_description(e))}</li>" for e in state.evidence
    ) or "<li><em>Nothing yet</em></li>"

    lead_items = "".join(
        f"<li>{_esc(LEADS_BY_ID[lead_id].description if lead_id in LEADS_BY_ID else lead_id)}</li>"
        for lead_id in visible_leads(state.leads)
    ) or "<li><em>No leads yet</em></li>"

    lab_items = "".join(
        f"<li>{_esc(evidence_description(e))} (pending)</li>"
        for e in state.analysis.pending_evidence_ids
    ) + "".join(
        f"<li>{_esc(evidence_description(e))} (ready)</li>"
        for record in state.analysis.completed
        for e in record.evidence_ids
    )

    contradiction_items = "".join(
        f"<li><b>{_esc(character_name(c.character_id))}:</b> {_esc(c.description)}</li>"
        for memory in state.conversation.state.characters.values()
        for c in memory.contradictions
    )

    sections = [
        f"<h4>Evidence</h4><ul>{evidence_items}</ul>",
        f"<h4>Leads</h4><ul>{lead_items}</ul>",
    ]
    if lab_items:
        sections.append(f"<h4>Lab</h4><ul>{lab_items}</ul>")
    if contradiction_items:
        sections.append(f"<h4>Contradictions</h4><ul>{contradiction_items}</ul>")
    return '<div class="notepad">' + "".join(sections) + "</div>"


def format_status_html(state: GameState) -> str:
    """Top bar: clock, time left, location and who you're talking to."""
    clock = state.clock
    location = LOCATIONS.get(state.location, state.location)
    talking_to = state.conversation.current_character
    parts = [
        f"🕒 {fmt(clock.now)}",
        f"⏳ {fmt(max(clock.remaining, 0))} left",
        f"📍 {_esc(location)}",
    ]
    if talking_to:
        parts.append(f"🗣️ {_esc(character_name(talking_to))}")

    trial = state.accusation
    if trial.phase == TrialPhase.ENDED and trial.outcome is not None:
        verdict = "Case closed: GUILTY" if trial.outcome == Outcome.WIN else "Case closed: NOT GUILTY"
        parts.append(f"⚖️ {verdict}")
    elif trial.phase != TrialPhase.NONE:
        parts.append(f"⚖️ {trial.phase.value.title()}")

    if not state.sound_enabled:
        parts.append("🔇")
    return '<div class="status-bar">' + " | ".join(parts) + "</div>"
