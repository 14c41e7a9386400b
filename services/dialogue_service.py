"""Dialogue generation service.

Routes a dialogue request to one of two backends:
1. Relay mode - POSTs the request to an HTTP relay that fronts the model
2. Direct mode - Calls OpenAI through LangChain from this process

Toggle with DIALOGUE_MODE=relay|direct in .env

Both backends return newline-delimited JSON, one object per line:

    {"type": "stage", "description": "Marvin peers over the chain."}
    {"type": "dialogue", "speaker": "Marvin Lott", "text": "Who's there?"}

Usage:
    from services.dialogue_service import get_dialogue_service

    service = get_dialogue_service()
    events = await service.generate(request)
"""

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

import openai
import requests
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, Field

from config.settings import EnvironmentSettings, get_env_settings

logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================

class ErrorCategory(str, Enum):
    NETWORK = "NETWORK"
    TIMEOUT = "TIMEOUT"
    HTTP = "HTTP"
    MALFORMED = "MALFORMED"
    EMPTY = "EMPTY"


class DialogueServiceError(Exception):
    """A dialogue request failed. ``category`` says how."""

    def __init__(self, category: ErrorCategory, message: str = ""):
        super().__init__(message or category.value)
        self.category = category


# =============================================================================
# WIRE MODELS
# =============================================================================

class DialogueMessage(BaseModel):
    role: str = Field(description="'system', 'user' or 'assistant'")
    content: str


class GameSnapshot(BaseModel):
    """The game as the dialogue model needs to see it."""

    current_time: str
    time_remaining: str
    location: str
    mode: str
    evidence: List[str] = Field(default_factory=list)
    leads: List[str] = Field(default_factory=list)
    player_name: str = "Detective"
    conversation_context: Dict[str, Any] = Field(default_factory=dict)
    pending_action: Optional[str] = None
    character_type: Optional[str] = None
    completed_analysis: List[str] = Field(default_factory=list)


class DialogueRequest(BaseModel):
    messages: List[DialogueMessage] = Field(default_factory=list)
    game_state: GameSnapshot


class DialogueEvent(BaseModel):
    """One parsed line of the response."""

    type: str  # "stage" or "dialogue"
    description: Optional[str] = None
    speaker: Optional[str] = None
    text: Optional[str] = None


# =============================================================================
# RESPONSE PARSING
# =============================================================================

def _unwrap(raw: str) -> str:
    """The relay sometimes wraps the NDJSON body as {"text": "..."}."""
    stripped = raw.strip()
    if stripped.startswith("{") and "\n" not in stripped:
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError:
            return stripped
        if isinstance(data, dict) and "type" not in data and isinstance(data.get("text"), str):
            return data["text"].strip()
    return stripped


def _strip_fences(text: str) -> str:
    lines = [line for line in text.splitlines() if not line.strip().startswith("```")]
    return "\n".join(lines)


def parse_ndjson(raw: Optional[str]) -> List[DialogueEvent]:
    """Parse a dialogue response into events.

    Lines that are not JSON, or are JSON of an unknown shape, are skipped.
    Raises DialogueServiceError when the body is empty (EMPTY) or when not a
    single line could be used (MALFORMED).
    """
    if raw is None or not raw.strip():
        raise DialogueServiceError(ErrorCategory.EMPTY, "Empty dialogue response")

    body = _strip_fences(_unwrap(raw))
    if not body.strip():
        raise DialogueServiceError(ErrorCategory.EMPTY, "Empty dialogue response")

    events = []
    for line in body.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("[DIALOGUE] Skipping non-JSON line: %s", line[:80])
            continue
        if not isinstance(data, dict):
            continue
        kind = data.get("type")
        if kind == "stage" and data.get("description"):
            events.append(DialogueEvent(type="stage", description=str(data["description"])))
        elif kind == "dialogue" and data.get("text"):
            speaker = data.get("speaker")
            events.append(
                DialogueEvent(
                    type="dialogue",
                    speaker=str(speaker) if speaker else None,
                    text=str(data["text"]),
                )
            )

    if not events:
        raise DialogueServiceError(ErrorCategory.MALFORMED, "No usable lines in dialogue response")
    return events


# =============================================================================
# BACKENDS
# =============================================================================

class RelayDialogueClient:
    """Sends requests to the HTTP relay."""

    def __init__(self, url: str, timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def complete(self, request: DialogueRequest) -> str:
        try:
            response = self.session.post(
                self.url,
                json=request.model_dump(mode="json"),
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.Timeout as e:
            raise DialogueServiceError(ErrorCategory.TIMEOUT, str(e)) from e
        except requests.ConnectionError as e:
            raise DialogueServiceError(ErrorCategory.NETWORK, str(e)) from e
        except requests.HTTPError as e:
            raise DialogueServiceError(ErrorCategory.HTTP, str(e)) from e
        except requests.RequestException as e:
            raise DialogueServiceError(ErrorCategory.NETWORK, str(e)) from e
        return response.text


SYSTEM_PROMPT = """You are the narrator and every character of "First 48", a homicide investigation.
The detective is {player_name}. It is {current_time} and {time_remaining} of the 48 hours remain.
Location: {location}. Difficulty: {mode}.
Evidence collected: {evidence}
Open leads: {leads}
Completed lab analysis: {completed_analysis}
Character in focus: {character} ({character_type}), pending action: {pending_action}
Conversation so far: {context}

Reply ONLY with newline-delimited JSON, one object per line:
{{"type": "stage", "description": "..."}} for narration
{{"type": "dialogue", "speaker": "<name>", "text": "..."}} for speech
Only the character in focus speaks."""


def build_system_prompt(snapshot: GameSnapshot) -> str:
    context = snapshot.conversation_context or {}
    return SYSTEM_PROMPT.format(
        player_name=snapshot.player_name,
        current_time=snapshot.current_time,
        time_remaining=snapshot.time_remaining,
        location=snapshot.location,
        mode=snapshot.mode,
        evidence=", ".join(snapshot.evidence) or "none",
        leads=", ".join(snapshot.leads) or "none",
        completed_analysis=", ".join(snapshot.completed_analysis) or "none",
        character=context.get("character_name", "nobody"),
        character_type=snapshot.character_type or "none",
        pending_action=snapshot.pending_action or "none",
        context=json.dumps(context),
    )


class DirectDialogueClient:
    """Calls the model in-process through LangChain."""

    def __init__(self, model: str = "gpt-4o-mini", api_key: Optional[str] = None, timeout: float = 30.0):
        self.llm = ChatOpenAI(
            model=model,
            temperature=0.7,
            api_key=api_key,
            timeout=timeout,
        )

    def complete(self, request: DialogueRequest) -> str:
        messages = [SystemMessage(content=build_system_prompt(request.game_state))]
        for message in request.messages:
            if message.role == "user":
                messages.append(HumanMessage(content=message.content))
            elif message.role == "assistant":
                messages.append(AIMessage(content=message.content))
            else:
                messages.append(SystemMessage(content=message.content))

        try:
            response = self.llm.invoke(messages)
        except openai.APITimeoutError as e:
            raise DialogueServiceError(ErrorCategory.TIMEOUT, str(e)) from e
        except openai.APIConnectionError as e:
            raise DialogueServiceError(ErrorCategory.NETWORK, str(e)) from e
        except openai.APIStatusError as e:
            raise DialogueServiceError(ErrorCategory.HTTP, str(e)) from e
        return response.content if isinstance(response.content, str) else ""


# =============================================================================
# SERVICE
# =============================================================================

class DialogueService:
    """Async front for a blocking backend."""

    def __init__(self, client, mode: str = "relay"):
        self.client = client
        self.mode = mode
        logger.info("[DIALOGUE] Mode: %s", mode)

    async def generate(self, request: DialogueRequest) -> List[DialogueEvent]:
        loop = asyncio.get_running_loop()
        raw = await loop.run_in_executor(None, self.client.complete, request)
        events = parse_ndjson(raw)
        logger.info("[DIALOGUE] %d event(s) from %s backend", len(events), self.mode)
        return events


def get_dialogue_service(settings: Optional[EnvironmentSettings] = None) -> DialogueService:
    """Build the dialogue service for the configured mode."""
    settings = settings or get_env_settings()
    if settings.dialogue_mode == "direct":
        client = DirectDialogueClient(
            model=settings.dialogue_model,
            api_key=settings.openai_api_key,
            timeout=settings.dialogue_timeout,
        )
        return DialogueService(client, mode="direct")
    client = RelayDialogueClient(settings.dialogue_relay_url, timeout=settings.dialogue_timeout)
    return DialogueService(client, mode="relay")
