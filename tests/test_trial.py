import asyncio

import pytest

from game.errors import TrialError
from game.models import AccusationState, Outcome, TrialPhase
from game.narration import NarrationQueue
from game.trial import TrialSequencer, resolve_outcome


async def no_sleep(delay):
    return None


def play(steps):
    emitted = []
    queue = NarrationQueue(emitted.append, sleep=no_sleep)
    asyncio.run(queue.play(steps))
    return emitted


def test_only_the_culprit_wins():
    assert resolve_outcome("rachel-kim") == Outcome.WIN
    assert resolve_outcome("jordan-valez") == Outcome.LOSE


def test_trial_runs_through_every_phase():
    state = AccusationState()
    trial = TrialSequencer(state, step_delay=0)

    steps = trial.begin("rachel-kim")
    assert state.phase == TrialPhase.ACCUSATION
    assert state.outcome is None

    seen = []
    for step in steps:
        if step.on_emit:
            step.on_emit()
        seen.append(state.phase)

    assert seen == [
        TrialPhase.ACCUSATION,
        TrialPhase.TRIAL,
        TrialPhase.VERDICT,
        TrialPhase.ENDED,
    ]
    assert state.outcome == Outcome.WIN
    assert trial.finished


def test_wrong_suspect_loses():
    state = AccusationState()
    emitted = play(TrialSequencer(state, step_delay=0).begin("jordan-valez"))
    assert state.outcome == Outcome.LOSE
    assert state.phase == TrialPhase.ENDED
    assert "not guilty" in emitted[2].text


def test_trial_cannot_start_twice():
    trial = TrialSequencer(AccusationState(), step_delay=0)
    trial.begin("rachel-kim")
    with pytest.raises(TrialError):
        trial.begin("jordan-valez")


def test_restored_mid_trial_jumps_to_end():
    state = AccusationState(suspect="rachel-kim", phase=TrialPhase.TRIAL)
    TrialSequencer(state).resolve_restored()
    assert state.phase == TrialPhase.ENDED
    assert state.outcome == Outcome.WIN


def test_restore_leaves_idle_state_alone():
    state = AccusationState()
    TrialSequencer(state).resolve_restored()
    assert state.phase == TrialPhase.NONE
