"""Game session state."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from config.settings import GameSettings
from game.analysis import AnalysisScheduler
from game.case_data import DEFAULT_LOCATION, DIFFICULTY_MODES
from game.clock import GameClock
from game.conversation import ConversationEngine
from game.engine import InvestigationState
from game.models import (
    AccusationState,
    AnalysisRecord,
    ChatMessage,
    ConversationState,
)
from game.trial import TrialSequencer


class SaveGame(BaseModel):
    """Everything needed to put a session back together.

    Every field has a default so older or partial saves still load.
    """

    player_name: str = "Detective"
    mode: str = "Classic"
    location: str = DEFAULT_LOCATION
    time_elapsed: int = 0
    evidence: List[str] = Field(default_factory=list)
    leads: List[str] = Field(default_factory=list)
    actions_performed: List[str] = Field(default_factory=list)
    interview_counts: Dict[str, int] = Field(default_factory=dict)
    interviews_completed: List[str] = Field(default_factory=list)
    messages: List[ChatMessage] = Field(default_factory=list)
    conversation: ConversationState = Field(default_factory=ConversationState)
    analysis_pending: List[AnalysisRecord] = Field(default_factory=list)
    analysis_completed: List[AnalysisRecord] = Field(default_factory=list)
    analysis_consumed: List[str] = Field(default_factory=list)
    accusation: AccusationState = Field(default_factory=AccusationState)
    sound_enabled: bool = True
    notepad_open: bool = False
    saved_at: Optional[str] = None


class GameState:
    """Manages the state of a game session."""

    def __init__(
        self,
        player_name: str = "Detective",
        mode: str = "Classic",
        settings: Optional[GameSettings] = None,
    ):
        self.settings: GameSettings = settings or GameSettings()
        self.player_name: str = player_name
        self.mode: str = mode if mode in DIFFICULTY_MODES else "Classic"
        self.location: str = DEFAULT_LOCATION
        self.clock: GameClock = GameClock()
        self.evidence: List[str] = []
        self.leads: List[str] = []
        self.actions_performed: List[str] = []
        self.interview_counts: Dict[str, int] = {}
        self.interviews_completed: List[str] = []
        self.messages: List[ChatMessage] = []
        self.conversation: ConversationEngine = ConversationEngine(
            history_limit=self.settings.history_limit,
            transition_delay=self.settings.transition_delay,
        )
        self.analysis: AnalysisScheduler = AnalysisScheduler()
        self.accusation: AccusationState = AccusationState()
        self.trial: TrialSequencer = TrialSequencer(
            self.accusation, step_delay=self.settings.trial_step_delay
        )
        self.sound_enabled: bool = True
        self.notepad_open: bool = False

    # =========================================================================
    # Clock
    # =========================================================================

    @property
    def time_elapsed(self) -> int:
        return self.clock.elapsed

    @property
    def time_remaining(self) -> int:
        return self.clock.remaining

    def advance_time(self, minutes: int) -> List[AnalysisRecord]:
        """Move the clock and let the lab catch up. Returns newly finished analyses."""
        if minutes:
            self.clock.advance(minutes)
        return self.analysis.tick(self.clock.elapsed)

    # =========================================================================
    # Investigation
    # =========================================================================

    def add_evidence(self, evidence_id: str):
        if evidence_id not in self.evidence:
            self.evidence.append(evidence_id)

    def add_lead(self, lead_id: str):
        if lead_id not in self.leads:
            self.leads.append(lead_id)

    def investigation_state(self) -> InvestigationState:
        """Snapshot for the pure investigation engine."""
        return InvestigationState(
            time_elapsed=self.clock.elapsed,
            time_remaining=self.clock.remaining,
            evidence=list(self.evidence),
            leads=list(self.leads),
            actions_performed=list(self.actions_performed),
            interview_counts=dict(self.interview_counts),
            interviews_completed=list(self.interviews_completed),
            analysis_completed=self.analysis.completed_evidence_ids,
        )

    def merge_investigation(self, new_state: InvestigationState) -> List[AnalysisRecord]:
        """Fold an engine result back into the session."""
        finished = self.advance_time(new_state.time_elapsed - self.clock.elapsed)
        for evidence_id in new_state.evidence:
            self.add_evidence(evidence_id)
        for lead_id in new_state.leads:
            self.add_lead(lead_id)
        self.actions_performed = list(new_state.actions_performed)
        self.interview_counts = dict(new_state.interview_counts)
        self.interviews_completed = list(new_state.interviews_completed)
        return finished

    # =========================================================================
    # Message log
    # =========================================================================

    def add_message(self, role: str, content: str, speaker: Optional[str] = None) -> ChatMessage:
        message = ChatMessage(role=role, content=content, speaker=speaker)
        self.messages.append(message)
        return message

    def dialogue_history(self, limit: int = 20) -> List[Dict[str, str]]:
        """Recent log as role/content pairs for the dialogue model."""
        history = []
        for message in self.messages[-limit:]:
            if message.role == "player":
                history.append({"role": "user", "content": message.content})
            elif message.role == "npc":
                prefix = f"{message.speaker}: " if message.speaker else ""
                history.append({"role": "assistant", "content": prefix + message.content})
        return history

    # =========================================================================
    # Save / restore
    # =========================================================================

    def to_save(self) -> SaveGame:
        return SaveGame(
            player_name=self.player_name,
            mode=self.mode,
            location=self.location,
            time_elapsed=self.clock.elapsed,
            evidence=list(self.evidence),
            leads=list(self.leads),
            actions_performed=list(self.actions_performed),
            interview_counts=dict(self.interview_counts),
            interviews_completed=list(self.interviews_completed),
            messages=list(self.messages),
            conversation=self.conversation.state.model_copy(deep=True),
            analysis_pending=list(self.analysis.pending),
            analysis_completed=list(self.analysis.completed),
            analysis_consumed=list(self.analysis.consumed),
            accusation=self.accusation.model_copy(),
            sound_enabled=self.sound_enabled,
            notepad_open=self.notepad_open,
            saved_at=datetime.now().isoformat(timespec="seconds"),
        )

    @classmethod
    def from_save(cls, save: SaveGame, settings: Optional[GameSettings] = None) -> "GameState":
        state = cls(player_name=save.player_name, mode=save.mode, settings=settings)
        state.location = save.location
        state.clock = GameClock(elapsed=max(0, save.time_elapsed))
        state.evidence = list(save.evidence)
        state.leads = list(save.leads)
        state.actions_performed = list(save.actions_performed)
        state.interview_counts = dict(save.interview_counts)
        state.interviews_completed = list(save.interviews_completed)
        state.messages = list(save.messages)
        state.conversation = ConversationEngine(
            state=save.conversation.model_copy(deep=True),
            history_limit=state.settings.history_limit,
            transition_delay=state.settings.transition_delay,
        )
        state.analysis = AnalysisScheduler(
            pending=save.analysis_pending,
            completed=save.analysis_completed,
            consumed=save.analysis_consumed,
        )
        state.accusation = save.accusation.model_copy()
        state.trial = TrialSequencer(state.accusation, step_delay=state.settings.trial_step_delay)
        state.trial.resolve_restored()
        state.sound_enabled = save.sound_enabled
        state.notepad_open = save.notepad_open
        return state

    @property
    def game_over(self) -> bool:
        return self.trial.finished
