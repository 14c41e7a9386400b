"""Event handlers for the First 48 game."""

import logging
from typing import List

import gradio as gr

from game.orchestrator import Orchestrator
from game.state_manager import create_session, get_or_create_session
from ui.formatters import format_message_log_html, format_notepad_html, format_status_html

logger = logging.getLogger(__name__)

RESULTS_REQUEST = "Dr. Chen, any results back from the lab?"


def normalize_session_id(sess_id) -> str:
    """Ensure we always use a *stable* string session id.

    Do NOT call callables here (e.g. ``lambda: uuid4()``); that would mint a
    new id on every callback. The callable's ``repr`` is used as the key.
    """
    if callable(sess_id):
        return repr(sess_id)
    if not isinstance(sess_id, str):
        return str(sess_id)
    return sess_id


def _panels(orchestrator: Orchestrator) -> List:
    """[log, status, notepad] for the current state."""
    state = orchestrator.state
    return [
        format_message_log_html(state.messages),
        format_status_html(state),
        gr.update(value=format_notepad_html(state), visible=state.notepad_open),
    ]


def on_start_game(player_name: str, mode: str, sess_id):
    sess_id = normalize_session_id(sess_id)
    orchestrator = create_session(sess_id, player_name=(player_name or "Detective").strip(), mode=mode)
    orchestrator.state.add_message(
        "stage",
        "*07:50. Mia Rodriguez's apartment. Navarro is waiting by the door with two coffees.*",
    )
    return _panels(orchestrator) + [gr.update(visible=True)]


async def on_send(message: str, sess_id):
    """Free-text input from the player. Clears the textbox when accepted."""
    orchestrator = get_or_create_session(normalize_session_id(sess_id))
    result = await orchestrator.handle_input(message)
    if result.ignored:
        return _panels(orchestrator) + [gr.update()]
    return _panels(orchestrator) + [""]


async def on_results(sess_id):
    orchestrator = get_or_create_session(normalize_session_id(sess_id))
    await orchestrator.handle_input(RESULTS_REQUEST)
    return _panels(orchestrator)


async def on_skip_time(minutes, sess_id):
    orchestrator = get_or_create_session(normalize_session_id(sess_id))
    await orchestrator.skip_time(int(minutes))
    return _panels(orchestrator)


async def on_accuse(suspect_id: str, sess_id):
    orchestrator = get_or_create_session(normalize_session_id(sess_id))
    if not suspect_id:
        return _panels(orchestrator)
    await orchestrator.accuse(suspect_id)
    return _panels(orchestrator)


async def on_save(sess_id):
    orchestrator = get_or_create_session(normalize_session_id(sess_id))
    await orchestrator.save_game()
    return _panels(orchestrator)


async def on_load(sess_id):
    orchestrator = get_or_create_session(normalize_session_id(sess_id))
    await orchestrator.load_game()
    return _panels(orchestrator)


def on_toggle_notepad(sess_id):
    orchestrator = get_or_create_session(normalize_session_id(sess_id))
    orchestrator.toggle_notepad()
    return _panels(orchestrator)


def on_toggle_sound(sess_id):
    orchestrator = get_or_create_session(normalize_session_id(sess_id))
    orchestrator.toggle_sound()
    return _panels(orchestrator)


async def on_analysis_timer(sess_id):
    """Periodic lab check. Leaves the panels alone while a turn is running."""
    orchestrator = get_or_create_session(normalize_session_id(sess_id))
    result = await orchestrator.poll_analysis()
    if result.ignored or not result.messages:
        return [gr.update(), gr.update(), gr.update()]
    return _panels(orchestrator)
