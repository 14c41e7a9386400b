"""Gradio front end for First 48.

Importing ``create_app`` also configures the dialogue backend and the save
file, see ``app.main``.
"""

from .main import create_app
