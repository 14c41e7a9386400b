import pytest

from config.settings import GameSettings
from game.orchestrator import Orchestrator
from game.persistence import MemoryStore, SaveStore
from game.state import GameState
from services.dialogue_service import DialogueEvent


class StubDialogue:
    """Stands in for the dialogue service. Records every request."""

    def __init__(self, events=None, error=None):
        self.requests = []
        self.events = events
        self.error = error

    async def generate(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.events is not None:
            return list(self.events)
        # Deliberately wrong speaker so attribution gets corrected
        return [DialogueEvent(type="dialogue", speaker="Someone Else", text="Go on.")]


@pytest.fixture()
def settings():
    return GameSettings.instant()


@pytest.fixture()
def stub_dialogue():
    return StubDialogue()


@pytest.fixture()
def orchestrator(settings, stub_dialogue):
    state = GameState(settings=settings)
    return Orchestrator(
        state,
        stub_dialogue,
        save_store=SaveStore(MemoryStore()),
        settings=settings,
    )
