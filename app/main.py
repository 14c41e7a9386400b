"""First 48 - detective game about the homicide of Mia Rodriguez.

The player has 48 in-game hours to work the scene, talk to witnesses and
suspects, send evidence to the lab and make an accusation.
"""

# IMPORTANT: Load environment variables FIRST, before any other imports
# This ensures DIALOGUE_MODE and friends are set when modules load
from dotenv import load_dotenv
load_dotenv()

import os

import gradio as gr

from config.settings import get_env_settings, get_game_settings
from game.persistence import JsonFileStore, SaveStore
from game.state_manager import init_sessions
from services.dialogue_service import get_dialogue_service
from app.utils import setup_ui_logging, get_ui_logs
from app.ui_components import create_ui_components
from app.event_handlers import (
    on_accuse,
    on_analysis_timer,
    on_load,
    on_results,
    on_save,
    on_send,
    on_skip_time,
    on_start_game,
    on_toggle_notepad,
    on_toggle_sound,
)

# Logging - set up early
import logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)
setup_ui_logging()

# =============================================================================
# APP STARTUP
# =============================================================================

logger.info("🚀 Starting First 48...")

env_settings = get_env_settings()
game_settings = get_game_settings()

SAVE_FILE = os.getenv("SAVE_FILE", os.path.join("saves", "first48.json"))
save_backend = JsonFileStore(SAVE_FILE)

init_sessions(
    dialogue_factory=lambda: get_dialogue_service(env_settings),
    store_factory=lambda session_id: SaveStore(save_backend),
)


# ============================================================================
# GRADIO UI
# ============================================================================


def create_app():
    """Create the Gradio application."""

    with gr.Blocks(title="First 48") as app:
        components = create_ui_components(game_settings)

        session_id = components["session_id"]
        player_name_input = components["player_name_input"]
        mode_radio = components["mode_radio"]
        start_btn = components["start_btn"]
        status_html = components["status_html"]
        log_html = components["log_html"]
        input_row = components["input_row"]
        message_input = components["message_input"]
        send_btn = components["send_btn"]
        notepad_html = components["notepad_html"]
        notepad_btn = components["notepad_btn"]
        sound_btn = components["sound_btn"]
        results_btn = components["results_btn"]
        save_btn = components["save_btn"]
        load_btn = components["load_btn"]
        skip_radio = components["skip_radio"]
        skip_btn = components["skip_btn"]
        accuse_dropdown = components["accuse_dropdown"]
        accuse_btn = components["accuse_btn"]
        debug_logs_textbox = components["debug_logs_textbox"]
        log_tag_input = components["log_tag_input"]
        refresh_logs_btn = components["refresh_logs_btn"]
        analysis_timer = components["analysis_timer"]

        # ====== WIRE UP EVENTS ======

        # Common outputs for game actions
        panel_outputs = [log_html, status_html, notepad_html]

        getattr(start_btn, "click")(
            fn=on_start_game,
            inputs=[player_name_input, mode_radio, session_id],
            outputs=panel_outputs + [input_row],
        )

        # Enter key and Send button do the same thing
        getattr(message_input, "submit")(
            fn=on_send,
            inputs=[message_input, session_id],
            outputs=panel_outputs + [message_input],
        )
        getattr(send_btn, "click")(
            fn=on_send,
            inputs=[message_input, session_id],
            outputs=panel_outputs + [message_input],
        )

        getattr(results_btn, "click")(fn=on_results, inputs=[session_id], outputs=panel_outputs)
        getattr(save_btn, "click")(fn=on_save, inputs=[session_id], outputs=panel_outputs)
        getattr(load_btn, "click")(fn=on_load, inputs=[session_id], outputs=panel_outputs)
        getattr(notepad_btn, "click")(fn=on_toggle_notepad, inputs=[session_id], outputs=panel_outputs)
        getattr(sound_btn, "click")(fn=on_toggle_sound, inputs=[session_id], outputs=panel_outputs)

        getattr(skip_btn, "click")(
            fn=on_skip_time,
            inputs=[skip_radio, session_id],
            outputs=panel_outputs,
        )
        getattr(accuse_btn, "click")(
            fn=on_accuse,
            inputs=[accuse_dropdown, session_id],
            outputs=panel_outputs,
        )

        # Lab results can finish while the player is idle
        getattr(analysis_timer, "tick")(
            fn=on_analysis_timer,
            inputs=[session_id],
            outputs=panel_outputs,
        )

        # Debug panel
        getattr(refresh_logs_btn, "click")(
            fn=get_ui_logs,
            inputs=[log_tag_input],
            outputs=[debug_logs_textbox],
        )

    return app


# ============================================================================
# MAIN
# ============================================================================

if __name__ == "__main__":
    app = create_app()
    app.queue().launch(server_name="0.0.0.0", server_port=7860, share=False)
