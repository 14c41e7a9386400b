"""Gradio component layout for the First 48 app."""

import uuid

import gradio as gr

from config.settings import GameSettings
from game.case_data import CASE_TITLE, CHARACTERS_BY_ID, DIFFICULTY_MODES, SUSPECT_IDS

UI_CSS = """
.status-bar { font-family: monospace; padding: 6px 10px; border-bottom: 1px solid #444; }
.msg { margin: 4px 0; }
.msg-stage { color: #9aa5b1; }
.msg-system { font-size: 0.9em; }
.notepad { background: #fdf6e3; color: #333; padding: 8px 12px; border-radius: 4px; }
"""


def create_ui_components(settings: GameSettings = None) -> dict:
    """Create every component. Must be called inside a ``gr.Blocks`` context."""
    settings = settings or GameSettings()

    gr.HTML(f"<style>{UI_CSS}</style>")
    session_id = gr.State(str(uuid.uuid4()))

    gr.HTML(f"<h2>🔍 {CASE_TITLE}</h2>")

    with gr.Row():
        player_name_input = gr.Textbox(label="Detective name", value="Detective", scale=2)
        mode_radio = gr.Radio(
            choices=list(DIFFICULTY_MODES.keys()),
            value="Classic",
            label="Difficulty",
            scale=2,
        )
        start_btn = gr.Button("🚔 Start Investigation", variant="primary", scale=1)

    status_html = gr.HTML("<em>Start a game...</em>")

    with gr.Row():
        with gr.Column(scale=3):
            log_html = gr.HTML("<em>Start a game...</em>")
            with gr.Row(visible=False) as input_row:
                message_input = gr.Textbox(
                    label="What do you do?",
                    placeholder="e.g. search the apartment, talk to Marvin",
                    scale=5,
                )
                send_btn = gr.Button("Send", variant="primary", scale=1)
        with gr.Column(scale=2):
            notepad_html = gr.HTML("", visible=False)
            with gr.Row():
                notepad_btn = gr.Button("📓 Notepad")
                sound_btn = gr.Button("🔊 Sound")
                results_btn = gr.Button("🧪 Lab Results")
            with gr.Row():
                save_btn = gr.Button("💾 Save")
                load_btn = gr.Button("📂 Load")
            with gr.Row():
                skip_radio = gr.Radio(
                    choices=[str(m) for m in settings.time_skip_presets],
                    value=str(settings.time_skip_presets[0]),
                    label="Skip time (minutes)",
                )
                skip_btn = gr.Button("⏩ Skip")
            with gr.Row():
                accuse_dropdown = gr.Dropdown(
                    choices=[(CHARACTERS_BY_ID[s].name, s) for s in SUSPECT_IDS],
                    label="Accuse",
                )
                accuse_btn = gr.Button("⚖️ Accuse", variant="stop")

    with gr.Accordion("Debug logs", open=False):
        with gr.Row():
            log_tag_input = gr.Textbox(label="Tag filter", placeholder="ORCH, CONVO, ENGINE...", scale=3)
            refresh_logs_btn = gr.Button("Refresh logs", scale=1)
        debug_logs_textbox = gr.Textbox(lines=15, label="Logs", interactive=False)

    analysis_timer = gr.Timer(value=5.0, active=True)

    return {
        "session_id": session_id,
        "player_name_input": player_name_input,
        "mode_radio": mode_radio,
        "start_btn": start_btn,
        "status_html": status_html,
        "log_html": log_html,
        "input_row": input_row,
        "message_input": message_input,
        "send_btn": send_btn,
        "notepad_html": notepad_html,
        "notepad_btn": notepad_btn,
        "sound_btn": sound_btn,
        "results_btn": results_btn,
        "save_btn": save_btn,
        "load_btn": load_btn,
        "skip_radio": skip_radio,
        "skip_btn": skip_btn,
        "accuse_dropdown": accuse_dropdown,
        "accuse_btn": accuse_btn,
        "debug_logs_textbox": debug_logs_textbox,
        "log_tag_input": log_tag_input,
        "refresh_logs_btn": refresh_logs_btn,
        "analysis_timer": analysis_timer,
    }
