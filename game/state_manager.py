"""Per-session game registry.

Each browser session gets its own GameState and Orchestrator. Sessions are
created on first use and dropped when the player starts over or leaves.
"""

import logging
from typing import Callable, Dict, Optional

from config.settings import GameSettings, get_game_settings
from game.orchestrator import Orchestrator
from game.persistence import SaveStore
from game.state import GameState

logger = logging.getLogger(__name__)

# session id -> orchestrator (which owns the session's GameState)
sessions: Dict[str, Orchestrator] = {}

_dialogue_factory: Optional[Callable] = None
_store_factory: Optional[Callable[[str], SaveStore]] = None


def init_sessions(dialogue_factory: Callable, store_factory: Optional[Callable[[str], SaveStore]] = None):
    """Wire in how sessions get a dialogue service and a save store.

    Called once by the app at startup.
    """
    global _dialogue_factory, _store_factory
    _dialogue_factory = dialogue_factory
    _store_factory = store_factory
    sessions.clear()


def create_session(
    session_id: str,
    player_name: str = "Detective",
    mode: str = "Classic",
    settings: Optional[GameSettings] = None,
) -> Orchestrator:
    """Start a fresh game for ``session_id``, replacing any existing one."""
    if _dialogue_factory is None:
        raise RuntimeError("init_sessions() must be called before creating sessions")
    settings = settings or get_game_settings()
    state = GameState(player_name=player_name, mode=mode, settings=settings)
    store = _store_factory(session_id) if _store_factory else SaveStore()
    sessions[session_id] = Orchestrator(
        state, _dialogue_factory(), save_store=store, settings=settings
    )
    logger.info("[SESSION] New game for %s (%s, %s)", session_id, player_name, state.mode)
    return sessions[session_id]


def get_session(session_id: str) -> Optional[Orchestrator]:
    return sessions.get(session_id)


def get_or_create_session(session_id: str) -> Orchestrator:
    """Get or create the orchestrator for a session."""
    if session_id not in sessions:
        return create_session(session_id)
    return sessions[session_id]


def end_session(session_id: str):
    if sessions.pop(session_id, None) is not None:
        logger.info("[SESSION] Ended %s", session_id)
