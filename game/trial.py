"""Accusation, trial and verdict.

A one-way sequence: ACCUSATION happens the moment the player accuses,
then TRIAL, VERDICT and ENDED follow as timed narration. Exactly one
suspect is guilty; accusing anyone else loses the case.
"""

import logging
from typing import List

from game.case_data import CULPRIT_ID, EPILOGUES, character_name
from game.errors import TrialError
from game.models import AccusationState, Outcome, TrialPhase
from game.narration import NarrationStep

logger = logging.getLogger(__name__)

IN_PROGRESS = (TrialPhase.ACCUSATION, TrialPhase.TRIAL, TrialPhase.VERDICT)


def resolve_outcome(suspect_id: str) -> Outcome:
    return Outcome.WIN if suspect_id == CULPRIT_ID else Outcome.LOSE


class TrialSequencer:
    """Drives an ``AccusationState`` through the trial."""

    def __init__(self, state: AccusationState, step_delay: float = 2.0):
        self.state = state
        self.step_delay = step_delay

    @property
    def started(self) -> bool:
        return self.state.phase != TrialPhase.NONE

    @property
    def finished(self) -> bool:
        return self.state.phase == TrialPhase.ENDED

    def _set_phase(self, phase: TrialPhase) -> None:
        logger.info("[TRIAL] %s -> %s", self.state.phase.value, phase.value)
        self.state.phase = phase

    def begin(self, suspect_id: str) -> List[NarrationStep]:
        """Lodge the accusation and return the rest of the trial as narration."""
        if self.started:
            raise TrialError(f"Trial already underway (phase {self.state.phase.value})")

        self.state.suspect = suspect_id
        self._set_phase(TrialPhase.ACCUSATION)

        name = character_name(suspect_id)
        outcome = resolve_outcome(suspect_id)

        def to_verdict():
            self.state.outcome = outcome
            self._set_phase(TrialPhase.VERDICT)

        verdict_text = (
            f"The jury finds {name} guilty of the murder of Mia Rodriguez."
            if outcome == Outcome.WIN
            else f"The jury finds {name} not guilty."
        )

        return [
            NarrationStep(
                delay=0,
                kind="system",
                text=f"⚖️ You formally accuse {name} of the murder of Mia Rodriguez.",
            ),
            NarrationStep(
                delay=self.step_delay,
                kind="stage",
                text="*The courtroom falls silent as the prosecution lays out your case.*",
                on_emit=lambda: self._set_phase(TrialPhase.TRIAL),
            ),
            NarrationStep(
                delay=self.step_delay,
                kind="stage",
                text=f"*{verdict_text}*",
                on_emit=to_verdict,
            ),
            NarrationStep(
                delay=self.step_delay,
                kind="system",
                text=EPILOGUES["win" if outcome == Outcome.WIN else "lose"],
                on_emit=lambda: self._set_phase(TrialPhase.ENDED),
            ),
        ]

    def resolve_restored(self) -> None:
        """A save taken mid-trial does not resume; it jumps to the end."""
        if self.state.phase not in IN_PROGRESS:
            return
        if self.state.outcome is None:
            self.state.outcome = resolve_outcome(self.state.suspect)
        self._set_phase(TrialPhase.ENDED)
