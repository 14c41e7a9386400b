"""Entrypoint: ``python app.py`` serves First 48 on port 7860."""

from app import create_app  # type: ignore  # package shadows this module


if __name__ == "__main__":
    create_app().queue().launch(server_name="0.0.0.0", server_port=7860, share=False)
