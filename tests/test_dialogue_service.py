import asyncio

import pytest
import requests

from config.settings import EnvironmentSettings
from services.dialogue_service import (
    DialogueRequest,
    DialogueService,
    DialogueServiceError,
    ErrorCategory,
    GameSnapshot,
    RelayDialogueClient,
    build_system_prompt,
    get_dialogue_service,
    parse_ndjson,
)


def make_request():
    return DialogueRequest(
        game_state=GameSnapshot(
            current_time="07:50",
            time_remaining="48:00",
            location="crime-scene",
            mode="Classic",
        )
    )


# =============================================================================
# Parsing
# =============================================================================

def test_parse_stage_and_dialogue():
    raw = (
        '{"type": "stage", "description": "Marvin peers over the chain."}\n'
        '{"type": "dialogue", "speaker": "Marvin Lott", "text": "Who is it?"}\n'
    )
    events = parse_ndjson(raw)
    assert [e.type for e in events] == ["stage", "dialogue"]
    assert events[1].speaker == "Marvin Lott"
    assert events[1].text == "Who is it?"


def test_parse_skips_bad_lines_and_fences():
    raw = (
        "```json\n"
        "not json at all\n"
        '{"type": "dialogue", "speaker": "Navarro", "text": "Let\'s move."}\n'
        '{"type": "mystery"}\n'
        "```"
    )
    events = parse_ndjson(raw)
    assert len(events) == 1
    assert events[0].text == "Let's move."


def test_parse_unwraps_text_envelope():
    raw = '{"text": "{\\"type\\": \\"dialogue\\", \\"speaker\\": \\"Navarro\\", \\"text\\": \\"Hey.\\"}"}'
    events = parse_ndjson(raw)
    assert events[0].speaker == "Navarro"


@pytest.mark.parametrize("raw", [None, "", "   \n  "])
def test_parse_empty(raw):
    with pytest.raises(DialogueServiceError) as exc_info:
        parse_ndjson(raw)
    assert exc_info.value.category == ErrorCategory.EMPTY


def test_parse_nothing_usable():
    with pytest.raises(DialogueServiceError) as exc_info:
        parse_ndjson("hello there\nstill not json")
    assert exc_info.value.category == ErrorCategory.MALFORMED


# =============================================================================
# Relay client
# =============================================================================

class FakeResponse:
    def __init__(self, text="", status_error=None):
        self.text = text
        self._status_error = status_error

    def raise_for_status(self):
        if self._status_error is not None:
            raise self._status_error


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        if self.error is not None:
            raise self.error
        return self.response


def test_relay_posts_request_and_returns_body():
    session = FakeSession(FakeResponse('{"type": "stage", "description": "Rain."}'))
    client = RelayDialogueClient("http://relay/chat", timeout=5, session=session)

    body = client.complete(make_request())

    assert body.startswith('{"type": "stage"')
    url, payload, timeout = session.calls[0]
    assert url == "http://relay/chat"
    assert payload["game_state"]["current_time"] == "07:50"
    assert timeout == 5


@pytest.mark.parametrize(
    "session, category",
    [
        (FakeSession(error=requests.Timeout("slow")), ErrorCategory.TIMEOUT),
        (FakeSession(error=requests.ConnectionError("down")), ErrorCategory.NETWORK),
        (FakeSession(FakeResponse(status_error=requests.HTTPError("502"))), ErrorCategory.HTTP),
        (FakeSession(error=requests.RequestException("odd")), ErrorCategory.NETWORK),
    ],
)
def test_relay_error_categories(session, category):
    client = RelayDialogueClient("http://relay/chat", session=session)
    with pytest.raises(DialogueServiceError) as exc_info:
        client.complete(make_request())
    assert exc_info.value.category == category


# =============================================================================
# Service
# =============================================================================

class FakeClient:
    def __init__(self, body):
        self.body = body

    def complete(self, request):
        return self.body


def test_generate_parses_backend_output():
    service = DialogueService(FakeClient('{"type": "dialogue", "speaker": "Navarro", "text": "Yo."}'))
    events = asyncio.run(service.generate(make_request()))
    assert events[0].text == "Yo."


def test_generate_surfaces_empty_response():
    service = DialogueService(FakeClient(""))
    with pytest.raises(DialogueServiceError):
        asyncio.run(service.generate(make_request()))


def test_system_prompt_mentions_game_state():
    snapshot = GameSnapshot(
        current_time="10:00",
        time_remaining="45:50",
        location="crime-scene",
        mode="Easy",
        evidence=["bloodstain"],
        conversation_context={"character_name": "Marvin Lott"},
        character_type="WITNESS",
    )
    prompt = build_system_prompt(snapshot)
    assert "10:00" in prompt
    assert "bloodstain" in prompt
    assert "Marvin Lott (WITNESS)" in prompt
    assert "Open leads: none" in prompt


def test_default_service_is_relay():
    service = get_dialogue_service(EnvironmentSettings())
    assert service.mode == "relay"
    assert isinstance(service.client, RelayDialogueClient)
