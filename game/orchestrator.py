"""Turn orchestration.

The orchestrator is the only thing that sequences a player's turn:

    signals -> classify -> conversation engine / investigation engine
            -> dialogue model -> speaker enforcement -> memory

It also owns the fixed commands (save, load, accuse, time skip, notepad,
sound) and the guards around them: one input in flight at a time, an async
lock around every state change, and flags that are always cleared on the
way out.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from config.settings import GameSettings
from game.case_data import (
    ANALYSIS_FINDINGS,
    CHARACTERS_BY_ID,
    LAWYERED_REFUSAL,
    PARTNER_ID,
    SUSPECT_IDS,
    TRANSITION_COST,
    character_name,
    evidence_description,
    get_character,
    get_type_rules,
)
from game.classifier import classify_action
from game.clock import can_accuse, fmt
from game.contradiction_detector import detect_contradictions
from game.conversation import EscalationLevel, TransitionOutcome
from game.engine import apply_action, can_interview, get_new_leads
from game.errors import GameError, StateLockTimeout, TrialError
from game.models import (
    ActionType,
    AnalysisRecord,
    CharacterType,
    ChatMessage,
    ConversationPhase,
    PendingAction,
)
from game.narration import NarrationQueue, NarrationStep
from game.persistence import SaveStore
from game.signals import (
    detect_accusation,
    detect_character_mention,
    detect_evidence_submission,
    detect_results_request,
    is_ending_conversation,
)
from game.state import GameState
from services.dialogue_service import (
    DialogueMessage,
    DialogueRequest,
    DialogueServiceError,
    ErrorCategory,
    GameSnapshot,
)

logger = logging.getLogger(__name__)

__all__ = [
    "GameError",
    "Orchestrator",
    "StateLock",
    "StateLockTimeout",
    "TrialError",
    "TurnResult",
]

# What the partner says when the dialogue model can't be reached
SERVICE_FALLBACK_LINES = {
    ErrorCategory.NETWORK: "Navarro frowns at his phone. \"Lost the line for a second. Run that by me again?\"",
    ErrorCategory.TIMEOUT: "\"Hold that thought, the radio keeps cutting out. Try me again in a moment.\"",
    ErrorCategory.HTTP: "\"Dispatch is jammed up. Give it a minute and ask again.\"",
}


@dataclass
class TurnResult:
    """What one input produced."""

    ignored: bool = False
    action: Optional[ActionType] = None
    messages: List[ChatMessage] = field(default_factory=list)
    error: Optional[str] = None


class StateLock:
    """Mutual exclusion for session state, with a bounded wait."""

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        self._lock = asyncio.Lock()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    async def __aenter__(self):
        try:
            await asyncio.wait_for(self._lock.acquire(), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise StateLockTimeout(
                f"State lock not acquired within {self.timeout}s"
            ) from None
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self._lock.release()
        return False


class Orchestrator:
    """Runs turns and commands against one GameState."""

    def __init__(
        self,
        state: GameState,
        dialogue,
        save_store: Optional[SaveStore] = None,
        settings: Optional[GameSettings] = None,
        sleep: Callable = asyncio.sleep,
    ):
        self.state = state
        self.dialogue = dialogue
        self.save_store = save_store or SaveStore()
        self.settings = settings or state.settings
        self.lock = StateLock(self.settings.lock_timeout_seconds)
        self.narration = NarrationQueue(self._emit_step, sleep=sleep)

        # Transient flags, never saved
        self.processing = False
        self.loading = False
        self.transition_in_progress = False

        self._turn_messages: List[ChatMessage] = []

    # =========================================================================
    # Output helpers
    # =========================================================================

    def _say(self, role: str, content: str, speaker: Optional[str] = None) -> ChatMessage:
        message = self.state.add_message(role, content, speaker)
        self._turn_messages.append(message)
        return message

    def _partner_says(self, text: str):
        self._say("npc", text, character_name(PARTNER_ID))

    def _emit_step(self, step: NarrationStep):
        if step.kind == "stage":
            self._say("stage", step.text)
        elif step.kind == "system":
            self._say("system", step.text)
        else:
            self._say("npc", step.text, step.speaker)

    # =========================================================================
    # Guard
    # =========================================================================

    async def _guarded(self, handler, *args) -> TurnResult:
        """Run ``handler`` under the reentrancy guard and the state lock."""
        if self.processing:
            logger.info("[ORCH] Input ignored, another one is in flight")
            return TurnResult(ignored=True)

        self.processing = True
        self.loading = True
        self._turn_messages = []
        result = TurnResult()
        try:
            async with self.lock:
                result.action = await handler(*args)
        except StateLockTimeout as e:
            logger.warning("[ORCH] %s", e)
            result.error = str(e)
            self._say("system", "⏳ The case file is busy. Try that again in a moment.")
        except Exception as e:
            logger.exception("[ORCH] Turn failed")
            result.error = str(e)
            self._say("system", "⚠️ Something went wrong. Your case file is intact; try again.")
        finally:
            self.processing = False
            self.loading = False
        result.messages = list(self._turn_messages)
        return result

    # =========================================================================
    # Player input
    # =========================================================================

    async def handle_input(self, text: str) -> TurnResult:
        """Process one line of free text from the player."""
        return await self._guarded(self._process, text)

    async def _process(self, text: str) -> Optional[ActionType]:
        text = (text or "").strip()
        if not text:
            return None
        if self.state.game_over:
            self._say("system", "The case is closed.")
            return None
        if self.state.clock.is_expired:
            self._say("system", "⏰ The 48 hours are up. The case is out of your hands.")
            return None

        self._say("player", text)

        settings = self.settings
        convo = self.state.conversation
        now = self.state.clock.elapsed
        current = convo.current_character

        ending = is_ending_conversation(text, convo.state, now, settings.fatigue_minutes)
        # Witnesses only let go on an explicit wrap-up
        said_goodbye = ending and is_ending_conversation(
            text, convo.state, now, settings.fatigue_minutes, include_redirects=False
        )
        mentioned = detect_character_mention(
            text,
            convo.state,
            {"location": self.state.location},
            threshold=settings.mention_threshold,
            continuation_bonus=settings.continuation_bonus,
        )
        action = classify_action(text, mentioned, convo.state)
        logger.info(
            "[ORCH] '%s' -> %s (mentioned=%s, current=%s, ending=%s)",
            text, action.value, mentioned, current, ending,
        )

        # Accusing the character in front of you
        if current and mentioned in (None, current) and not ending:
            if detect_accusation(text).is_accusation and await self._handle_accusation(current, text):
                return action

        # Wrapping up the current conversation
        if current and ending and mentioned in (None, current):
            await self._conclude(current, text)
            if action == ActionType.INVESTIGATIVE:
                await self._investigate(text)
            return action

        if action == ActionType.INVESTIGATIVE:
            await self._investigate(text)
        elif action == ActionType.CHARACTER_INTERACTION:
            target = mentioned or current
            if target != current:
                if not await self._transition_to(target, said_goodbye):
                    return action
            await self._converse(target, text)
        elif action == ActionType.ASK_PARTNER:
            await self._ask_partner(text)
        elif current:
            await self._converse(current, text)
        else:
            await self._respond(PARTNER_ID, None)

        self._flag_expiry()
        return action

    # =========================================================================
    # Conversation
    # =========================================================================

    async def _transition_to(self, target: str, ending: bool) -> bool:
        """Move focus to ``target``. Returns False if the move didn't happen.

        Order: conclude the old conversation, narrate, open the new one,
        then charge the time.
        """
        if self.transition_in_progress:
            logger.info("[ORCH] Transition to %s dropped, one already running", target)
            return False

        state = self.state
        convo = state.conversation
        profile = get_character(target)
        rules = get_type_rules(target)
        now = state.clock.elapsed

        if convo.is_lawyered(target):
            self._say("stage", LAWYERED_REFUSAL.format(name=profile.name))
            return False

        memory = convo.state.characters.get(target)
        first_visit = memory is None or memory.visit_count == 0
        interview_text = f"interview {profile.name.lower()}"
        if rules.interview_window and first_visit:
            check = can_interview(state.investigation_state(), interview_text)
            if not check.allowed:
                self._partner_says(f"{check.reason}. We'll have to catch {profile.name} later.")
                return False

        self.transition_in_progress = True
        try:
            decision = convo.request_transition(target, now, ending)
            if decision.outcome == TransitionOutcome.BLOCK:
                self._say("stage", decision.reminder)
                return False
            if decision.outcome == TransitionOutcome.NOOP:
                return True

            if decision.concluded:
                await self.narration.play([
                    NarrationStep(
                        delay=self.settings.transition_delay,
                        text=f"*You leave {character_name(decision.concluded)} and move on.*",
                        kind="stage",
                    )
                ])

            start = convo.start_conversation(target, now)
            if start.stage_direction:
                self._say("stage", start.stage_direction)
            if profile.home_location and target != PARTNER_ID:
                state.location = profile.home_location

            cost = start.time_cost
            finished: List[AnalysisRecord] = []
            if rules.interview_window and start.first_visit:
                result = apply_action(state.investigation_state(), interview_text)
                if result.ok:
                    finished += state.merge_investigation(result.new_state)
                    self._announce_engine_result(result.messages)
                    cost = 0
            if decision.concluded:
                cost += TRANSITION_COST
            if cost:
                finished += state.advance_time(cost)
            self._announce_analysis(finished)
        finally:
            self.transition_in_progress = False
        return True

    async def _converse(self, character_id: str, text: str):
        """One exchange with the character in focus."""
        convo = self.state.conversation
        name = character_name(character_id)
        convo.record_turn(character_id, "player", text, self.state.clock.elapsed)

        profile = get_character(character_id)
        if profile and profile.character_type == CharacterType.FORENSIC:
            if self._handle_lab(character_id, text):
                return

        lines = await self._respond(character_id, convo.state.pending_action)

        # State may have moved while the dialogue call was out
        state = self.state
        now = state.clock.elapsed
        memory = state.conversation.memory(character_id)
        for line in lines:
            found = detect_contradictions(
                character_id,
                line,
                evidence=state.evidence,
                completed_analysis=state.analysis.completed_evidence_ids,
                already_found=[c.id for c in memory.contradictions],
                now=now,
            )
            state.conversation.record_turn(character_id, name, line, now, contradictions=found)
            for contradiction in found:
                self._say("system", f"❗ Contradiction: {contradiction.description}")

    def _handle_lab(self, character_id: str, text: str) -> bool:
        """Submissions and results with the forensic analyst. True if handled."""
        state = self.state
        name = character_name(character_id)
        now = state.clock.elapsed

        submitted = detect_evidence_submission(text, state.evidence)
        if submitted:
            ordered = [e for e in state.evidence if e in submitted]
            record = state.analysis.submit(ordered, now)
            if record is None:
                self._say("npc", "\"I've already got that on my bench, detective.\"", name)
            else:
                items = ", ".join(evidence_description(e).lower() for e in record.evidence_ids)
                self._say(
                    "npc",
                    f"\"Leave it with me. I'll have the {items} done by "
                    f"{fmt(state.clock.now + record.completes_at - now)}.\"",
                    name,
                )
            state.conversation.record_turn(character_id, name, "(took evidence for analysis)", now)
            return True

        if detect_results_request(text):
            if state.analysis.has_results():
                for record in state.analysis.consume():
                    for evidence_id in record.evidence_ids:
                        finding = ANALYSIS_FINDINGS.get(
                            evidence_id, f"Nothing unusual on the {evidence_description(evidence_id).lower()}."
                        )
                        self._say("npc", f"\"{finding}\"", name)
                        state.conversation.record_turn(character_id, name, finding, now)
                self._refresh_leads()
                return True
            if state.analysis.pending:
                ready = min(r.completes_at for r in state.analysis.pending)
                self._say(
                    "npc",
                    f"\"Not yet. Check back around {fmt(state.clock.now + ready - now)}.\"",
                    name,
                )
                return True
        return False

    async def _handle_accusation(self, character_id: str, text: str) -> bool:
        """Run the escalation ladder. True if the turn was consumed."""
        convo = self.state.conversation
        now = self.state.clock.elapsed
        escalation = convo.register_accusation(character_id)
        if escalation.level == EscalationLevel.NONE:
            return False

        convo.record_turn(character_id, "player", text, now)
        if escalation.level == EscalationLevel.WARNING:
            name = character_name(character_id)
            self._say("npc", escalation.line, name)
            convo.record_turn(character_id, name, escalation.line, now)
        else:
            await self.narration.play(escalation.steps)
        return True

    async def _conclude(self, character_id: str, text: str):
        """The player is wrapping up: one last exchange, then let them go."""
        convo = self.state.conversation
        convo.record_turn(character_id, "player", text, self.state.clock.elapsed)
        convo.begin_conclusion(self.state.clock.elapsed)

        await self._respond(character_id, PendingAction.END_CONVERSATION)

        # Deferred close
        closed = self.state.conversation.finish_conclusion()
        await self.narration.play(self.state.conversation.closing_steps(closed))

    async def _ask_partner(self, text: str):
        """Side question to the partner without leaving the current conversation."""
        self.state.conversation.memory(PARTNER_ID)
        await self._respond(PARTNER_ID, PendingAction.ASK_PARTNER)

    # =========================================================================
    # Investigation
    # =========================================================================

    async def _investigate(self, text: str):
        state = self.state
        convo = state.conversation
        current = convo.current_character
        if current:
            decision = convo.request_transition(None, state.clock.elapsed, ending=False)
            if decision.outcome == TransitionOutcome.BLOCK:
                self._say("stage", decision.reminder)
                return

        result = apply_action(state.investigation_state(), text)
        if not result.ok:
            self._partner_says(result.error)
            return

        finished = state.merge_investigation(result.new_state)
        self._announce_engine_result(result.messages)
        self._announce_analysis(finished)

        await self._respond(PARTNER_ID, PendingAction.INVESTIGATE)
        self._flag_expiry()

    def _announce_engine_result(self, messages: List[str]):
        for message in messages:
            self._say("system", message)

    def _announce_analysis(self, finished: List[AnalysisRecord]):
        for record in finished:
            items = ", ".join(evidence_description(e) for e in record.evidence_ids)
            self._say("system", f"🧪 Lab results ready: {items}. Ask Dr. Chen for the findings.")
        if finished:
            self._refresh_leads()

    def _refresh_leads(self):
        """Re-check leads that hang off lab results."""
        state = self.state
        new_leads = get_new_leads(
            evidence=state.evidence,
            actions_performed=state.actions_performed,
            interviews_completed=state.interviews_completed,
            active_leads=state.leads,
            analysis_completed=state.analysis.completed_evidence_ids,
        )
        for lead in new_leads:
            state.add_lead(lead.id)
            if not lead.is_red_herring:
                self._say("system", f"🕵️ New lead unlocked: {lead.description}")

    def _flag_expiry(self):
        if self.state.clock.is_expired:
            self._say("system", "⏰ The 48 hours are up. The case is out of your hands.")

    # =========================================================================
    # Dialogue model
    # =========================================================================

    def _build_request(self, speaker_id: str, pending: Optional[PendingAction]) -> DialogueRequest:
        state = self.state
        profile = get_character(speaker_id)
        snapshot = GameSnapshot(
            current_time=fmt(state.clock.now),
            time_remaining=fmt(max(state.clock.remaining, 0)),
            location=state.location,
            mode=state.mode,
            evidence=list(state.evidence),
            leads=list(state.leads),
            player_name=state.player_name,
            conversation_context=state.conversation.context_for(speaker_id),
            pending_action=pending.value if pending else None,
            character_type=profile.character_type.value if profile else None,
            completed_analysis=state.analysis.completed_evidence_ids,
        )
        messages = [DialogueMessage(**m) for m in state.dialogue_history()]
        return DialogueRequest(messages=messages, game_state=snapshot)

    async def _respond(self, speaker_id: str, pending: Optional[PendingAction]) -> List[str]:
        """Ask the dialogue model for ``speaker_id``'s reply and log it.

        Returns the dialogue lines spoken. Whatever speaker the model names,
        the line is attributed to ``speaker_id``.
        """
        name = character_name(speaker_id)
        request = self._build_request(speaker_id, pending)
        try:
            events = await self.dialogue.generate(request)
        except DialogueServiceError as e:
            logger.warning("[ORCH] Dialogue failed (%s): %s", e.category.value, e)
            fallback = SERVICE_FALLBACK_LINES.get(e.category)
            if fallback:
                self._partner_says(fallback)
                return []
            line = self._fallback_line(speaker_id)
            self._say("npc", line, name)
            return [line]

        lines = []
        for event in events:
            if event.type == "stage":
                self._say("stage", event.description)
                continue
            if event.speaker != name:
                logger.info("[ORCH] Speaker '%s' corrected to '%s'", event.speaker, name)
            self._say("npc", event.text, name)
            lines.append(event.text)

        if not lines:
            line = self._fallback_line(speaker_id)
            self._say("npc", line, name)
            lines.append(line)
        return lines

    def _fallback_line(self, speaker_id: Optional[str]) -> str:
        profile = CHARACTERS_BY_ID.get(speaker_id or "") or CHARACTERS_BY_ID[PARTNER_ID]
        return profile.fallback_line

    # =========================================================================
    # Fixed commands
    # =========================================================================

    async def skip_time(self, minutes: int) -> TurnResult:
        return await self._guarded(self._skip_time, minutes)

    async def _skip_time(self, minutes: int):
        state = self.state
        check = state.clock.can_skip(minutes)
        if not check.allowed:
            self._partner_says(check.reason)
            return None

        convo = state.conversation
        if convo.current_character:
            convo.begin_conclusion(state.clock.elapsed)
            convo.finish_conclusion()
        finished = state.advance_time(minutes)
        self._say("system", f"⏩ {fmt(minutes)} pass. It's now {fmt(state.clock.now)}.")
        self._announce_analysis(finished)
        self._flag_expiry()
        return None

    async def accuse(self, suspect_id: str) -> TurnResult:
        return await self._guarded(self._accuse, suspect_id)

    async def _accuse(self, suspect_id: str):
        state = self.state
        if state.trial.started:
            self._say("system", "You've already made your accusation.")
            return None
        if suspect_id not in SUSPECT_IDS:
            if suspect_id in CHARACTERS_BY_ID:
                self._say("system", f"{character_name(suspect_id)} isn't a suspect on this case.")
            else:
                self._say("system", f"There's nobody called '{suspect_id}' on this case.")
            return None
        check = can_accuse(state.clock.elapsed)
        if not check.allowed:
            self._partner_says(f"Not yet. {check.reason}.")
            return None

        if state.conversation.current_character:
            state.conversation.force_close("accusation")
        await self.narration.play(state.trial.begin(suspect_id))
        return None

    async def save_game(self) -> TurnResult:
        return await self._guarded(self._save)

    async def _save(self):
        self.save_store.save(self.state.to_save())
        self._say("system", f"💾 Game saved at {fmt(self.state.clock.now)}.")
        return None

    async def load_game(self) -> TurnResult:
        return await self._guarded(self._load)

    async def _load(self):
        save = self.save_store.load()
        if save is None:
            self._say("system", "No saved game found.")
            return None
        self.state = GameState.from_save(save, settings=self.settings)
        logger.info("[ORCH] Restored save from %s", save.saved_at)
        self._say("system", f"📂 Game loaded. It's {fmt(self.state.clock.now)}.")
        return None

    async def poll_analysis(self) -> TurnResult:
        """Periodic lab check from the UI timer."""
        return await self._guarded(self._poll)

    async def _poll(self):
        self._announce_analysis(self.state.analysis.tick(self.state.clock.elapsed))
        return None

    def toggle_notepad(self) -> bool:
        self.state.notepad_open = not self.state.notepad_open
        return self.state.notepad_open

    def toggle_sound(self) -> bool:
        self.state.sound_enabled = not self.state.sound_enabled
        return self.state.sound_enabled

    @property
    def in_conversation(self) -> bool:
        return self.state.conversation.phase != ConversationPhase.NONE
