"""Data models for the First 48 game."""

from enum import Enum
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, Field


# =============================================================================
# ENUMERATIONS
# =============================================================================

class ConversationPhase(str, Enum):
    """Where a dialogue with the character in focus currently stands."""
    NONE = "NONE"
    GREETING = "GREETING"
    QUESTIONING = "QUESTIONING"
    CONCLUDING = "CONCLUDING"


class PendingAction(str, Enum):
    """The transition currently in flight."""
    CONTINUE_CONVERSATION = "CONTINUE_CONVERSATION"
    END_CONVERSATION = "END_CONVERSATION"
    MOVE_TO_CHARACTER = "MOVE_TO_CHARACTER"
    ASK_PARTNER = "ASK_PARTNER"
    INVESTIGATE = "INVESTIGATE"


class MemoryState(str, Enum):
    INITIAL = "INITIAL"
    RETURNING = "RETURNING"


class CharacterType(str, Enum):
    """Closed set of character classes. Behaviour lives in CHARACTER_TYPE_RULES."""
    PARTNER = "PARTNER"
    FORENSIC = "FORENSIC"
    WITNESS = "WITNESS"
    SUSPECT = "SUSPECT"


class ClosurePolicy(str, Enum):
    AUTO = "AUTO"    # concludes on its own when the player addresses someone else
    BLOCK = "BLOCK"  # player must say goodbye before moving on


class ActionType(str, Enum):
    INVESTIGATIVE = "INVESTIGATIVE"
    CHARACTER_INTERACTION = "CHARACTER_INTERACTION"
    ASK_PARTNER = "ASK_PARTNER"
    GENERAL = "GENERAL"


class TrialPhase(str, Enum):
    NONE = "NONE"
    ACCUSATION = "ACCUSATION"
    TRIAL = "TRIAL"
    VERDICT = "VERDICT"
    ENDED = "ENDED"


class Outcome(str, Enum):
    WIN = "WIN"
    LOSE = "LOSE"


# =============================================================================
# STATIC CASE CONTENT
# =============================================================================

class AliasTiers(BaseModel):
    """Ways the player can refer to a character, strongest tier first."""

    direct: List[str] = Field(default_factory=list, description="Names and nicknames")
    location: List[str] = Field(default_factory=list, description="Where they can be found")
    role: List[str] = Field(default_factory=list, description="Their role in the case")
    descriptive: List[str] = Field(default_factory=list, description="Physical or behavioural descriptions")


class CharacterProfile(BaseModel):
    """A character the player can talk to."""

    id: str
    name: str
    character_type: CharacterType
    role: str
    aliases: AliasTiers
    home_location: Optional[str] = None
    critical_topics: List[str] = Field(
        default_factory=list,
        description="Topics that must be covered before the character tires of talking",
    )
    accusation_threshold: Optional[int] = Field(
        default=None,
        description="Accusation count that brings in the lawyer (interrogation class only)",
    )
    warning_lines: List[str] = Field(default_factory=list)
    lawyer_lines: List[str] = Field(default_factory=list)
    fallback_line: str = "..."


class CharacterTypeRules(BaseModel):
    """Behaviour table for one CharacterType."""

    first_visit_cost: int
    closure: ClosurePolicy
    escalates: bool = False
    interview_window: bool = False


class LeadTriggers(BaseModel):
    """Trigger categories for a lead. Every category that is present must hold."""

    evidence: Optional[List[str]] = None
    actions: Optional[List[str]] = None
    interviews: Optional[List[str]] = None
    analysis: Optional[List[str]] = None


class LeadDefinition(BaseModel):
    id: str
    description: str
    narrative: str
    triggers: LeadTriggers
    is_red_herring: bool = False


class EvidenceDefinition(BaseModel):
    id: str
    description: str
    discovered_by: List[str] = Field(default_factory=list, description="Action keywords that reveal it")
    analyzable: bool = False
    keywords: List[str] = Field(
        default_factory=list,
        description="Words the player uses to refer to it when submitting to the lab",
    )


# =============================================================================
# CONVERSATION MEMORY
# =============================================================================

class Contradiction(BaseModel):
    """An inconsistency caught in a character's story."""

    id: str
    character_id: str
    description: str
    detected_at: int = Field(description="Game clock (elapsed minutes) when caught")


class DialogueTurn(BaseModel):
    timestamp: int
    speaker: str
    text: str
    analysis: Dict[str, object] = Field(default_factory=dict)
    contradictions: List[str] = Field(default_factory=list)


class CharacterMemory(BaseModel):
    """Everything the engine remembers about one character.

    Created lazily on first interaction and never destroyed during a session.
    Only the ConversationEngine mutates it.
    """

    character_id: str
    state: MemoryState = MemoryState.INITIAL
    visit_count: int = 0
    topics_discussed: Set[str] = Field(default_factory=set)
    mood: str = "neutral"
    suspicion_level: int = Field(default=0, ge=0, le=10)
    relationship_level: int = Field(default=0, ge=-10, le=10)
    history: List[DialogueTurn] = Field(default_factory=list)
    contradictions: List[Contradiction] = Field(default_factory=list)
    last_interaction_time: Optional[int] = None
    current_conversation_start_time: Optional[int] = None
    accusation_count: int = 0
    lawyered: bool = False


class ConversationEndState(BaseModel):
    """Snapshot taken when a conversation starts concluding."""

    character_id: str
    ended_at: int
    turns: int
    topics: List[str] = Field(default_factory=list)
    mood: str = "neutral"


class ConversationState(BaseModel):
    """Process-wide conversation state, owned by the ConversationEngine."""

    current_character: Optional[str] = None
    conversation_phase: ConversationPhase = ConversationPhase.NONE
    pending_action: Optional[PendingAction] = None
    global_topics: Set[str] = Field(default_factory=set)
    characters: Dict[str, CharacterMemory] = Field(default_factory=dict)
    end_state: Optional[ConversationEndState] = None

    @property
    def in_conversation(self) -> bool:
        return self.current_character is not None


# =============================================================================
# INVESTIGATION / ANALYSIS / TRIAL
# =============================================================================

class RuleCheck(BaseModel):
    """Outcome of a game-rule gate (interview window, accusation time, ...)."""

    allowed: bool
    reason: Optional[str] = None


class AnalysisRecord(BaseModel):
    evidence_ids: List[str]
    submitted_at: int
    completes_at: int


class AccusationState(BaseModel):
    suspect: Optional[str] = None
    phase: TrialPhase = TrialPhase.NONE
    outcome: Optional[Outcome] = None


class ChatMessage(BaseModel):
    """One line in the player-facing log."""

    role: str = Field(description="'player', 'npc', 'stage' or 'system'")
    content: str
    speaker: Optional[str] = None
