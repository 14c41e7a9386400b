"""Investigation and lead engine.

``apply_action`` is a pure reducer: given the investigation state and the
text of an action it returns the evidence that action turns up, the leads
that unlock as a result and the new state, without mutating its input or
reading anything but its arguments. Same input, same output.
"""

import logging
import re
from typing import Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, Field

from game import lexicon
from game.case_data import (
    EVIDENCE,
    LEADS,
    PHOTO_EVIDENCE,
    SEARCH_EVIDENCE,
    evidence_description,
    resolve_character_name,
)
from game.clock import START_OF_DAY, TIME_BUDGET, can_accuse, clock_hour, fmt, wall_clock
from game.models import LeadDefinition, RuleCheck
from game.signals import is_photography_action, is_search_action

logger = logging.getLogger(__name__)

# Action time costs (minutes)
ACTION_COSTS = {
    "interview": 20,
    "forensics": 360,
    "record_pull": 15,
    "default": 10,
}
REPEAT_INTERVIEW_LIMIT = 5
REPEAT_INTERVIEW_PENALTY = 10

# Interviews allowed from 08:00 up to (not including) 21:00
INTERVIEW_WINDOW = (8, 21)

__all__ = [
    "ACTION_COSTS",
    "INTERVIEW_WINDOW",
    "ActionResult",
    "InvestigationState",
    "START_OF_DAY",
    "apply_action",
    "can_accuse",
    "can_interview",
    "compute_cost",
    "discover_evidence",
    "fmt",
    "get_new_leads",
]


class InvestigationState(BaseModel):
    """The slice of game state the engine reads and produces."""

    time_elapsed: int = 0
    time_remaining: int = TIME_BUDGET
    evidence: List[str] = Field(default_factory=list)
    leads: List[str] = Field(default_factory=list)
    actions_performed: List[str] = Field(default_factory=list)
    interview_counts: Dict[str, int] = Field(default_factory=dict)
    interviews_completed: List[str] = Field(default_factory=list)
    analysis_completed: List[str] = Field(default_factory=list)


class ActionResult(BaseModel):
    """Either ``error`` is set and nothing else matters, or the action applied."""

    error: Optional[str] = None
    new_state: Optional[InvestigationState] = None
    cost: int = 0
    new_leads: List[LeadDefinition] = Field(default_factory=list)
    discovered_evidence: List[str] = Field(default_factory=list)
    messages: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


StateLike = Union[InvestigationState, Mapping]


def _coerce(state: StateLike) -> InvestigationState:
    if isinstance(state, InvestigationState):
        return state
    return InvestigationState.model_validate(dict(state or {}))


def _interview_target(lowered: str) -> Optional[str]:
    """Return the NPC named after a leading interview verb, if any."""
    for verb in lexicon.INTERVIEW_VERBS:
        match = re.match(r"\s*" + re.escape(verb) + r"(?!\w)\s*(.*)$", lowered)
        if match:
            return match.group(1).strip()
    return None


def _npc_key(name: str) -> str:
    return resolve_character_name(name) or name


def can_interview(state: StateLike, action_text: str) -> RuleCheck:
    """Interviews only happen between 08:00 and 21:00."""
    state = _coerce(state)
    lowered = (action_text or "").lower()
    if _interview_target(lowered) is None:
        return RuleCheck(allowed=True)

    hour = clock_hour(state.time_elapsed)
    now = wall_clock(state.time_elapsed)
    start, end = INTERVIEW_WINDOW
    if hour < start:
        return RuleCheck(allowed=False, reason=f"Too early to interview (current time {fmt(now)})")
    if hour >= end:
        return RuleCheck(allowed=False, reason=f"Too late to interview (current time {fmt(now)})")
    return RuleCheck(allowed=True)


def compute_cost(state: StateLike, action_text: str) -> int:
    """Flat cost by keyword category, plus a penalty for over-interviewing."""
    state = _coerce(state)
    lowered = (action_text or "").lower()

    if any(verb in lowered for verb in lexicon.INTERVIEW_VERBS):
        cost = ACTION_COSTS["interview"]
    elif "forensic" in lowered or "dna" in lowered:
        cost = ACTION_COSTS["forensics"]
    elif "pull" in lowered or "record" in lowered:
        cost = ACTION_COSTS["record_pull"]
    else:
        cost = ACTION_COSTS["default"]

    target = _interview_target(lowered)
    if target:
        count = state.interview_counts.get(_npc_key(target), 0) + 1
        if count > REPEAT_INTERVIEW_LIMIT:
            cost += REPEAT_INTERVIEW_PENALTY
    return cost


def discover_evidence(action_text: str, collected: Iterable[str]) -> List[str]:
    """Evidence ids revealed by ``action_text`` that were not yet collected."""
    lowered = (action_text or "").lower()
    if not lowered:
        return []
    collected = set(collected or ())

    composite = set()
    if is_search_action(lowered):
        composite.update(SEARCH_EVIDENCE)
    if is_photography_action(lowered):
        composite.update(PHOTO_EVIDENCE)

    found = []
    for definition in EVIDENCE:
        if definition.id in collected:
            continue
        if definition.id in composite or any(k in lowered for k in definition.discovered_by):
            found.append(definition.id)
    return found


def _lead_is_triggered(
    lead: LeadDefinition,
    evidence: set,
    actions_text: str,
    interviews: set,
    analysis: set,
) -> bool:
    triggers = lead.triggers
    categories = [
        (triggers.evidence, lambda ids: set(ids) <= evidence),
        (triggers.actions, lambda kws: all(k.lower() in actions_text for k in kws)),
        (triggers.interviews, lambda ids: set(ids) <= interviews),
        (triggers.analysis, lambda ids: set(ids) <= analysis),
    ]
    present = [(value, check) for value, check in categories if value]
    if not present:
        return False
    return all(check(value) for value, check in present)


def get_new_leads(
    evidence: Iterable[str] = (),
    actions_performed: Iterable[str] = (),
    interviews_completed: Iterable[str] = (),
    active_leads: Iterable[str] = (),
    analysis_completed: Iterable[str] = (),
) -> List[LeadDefinition]:
    """Leads whose triggers now hold and which are not active yet.

    Trigger categories on a lead combine with AND; each present category
    must be fully satisfied.
    """
    active = set(active_leads or ())
    evidence_set = set(evidence or ())
    interviews = set(interviews_completed or ())
    analysis = set(analysis_completed or ())
    actions_text = " ".join(a.lower() for a in (actions_performed or ()))

    return [
        lead
        for lead in LEADS
        if lead.id not in active
        and _lead_is_triggered(lead, evidence_set, actions_text, interviews, analysis)
    ]


def apply_action(state: StateLike, action_text: str) -> ActionResult:
    """Apply one investigative action to ``state``."""
    current = _coerce(state)
    text = (action_text or "").strip()
    lowered = text.lower()

    if not lowered:
        return ActionResult(error="Nothing to do.")
    if current.time_remaining <= 0:
        return ActionResult(error="The 48 hours are up. The case is out of your hands.")

    interview_check = can_interview(current, text)
    if not interview_check.allowed:
        logger.info("[ENGINE] Rejected '%s': %s", text, interview_check.reason)
        return ActionResult(error=interview_check.reason)

    cost = compute_cost(current, text)

    actions_performed = current.actions_performed + [lowered]
    interview_counts = dict(current.interview_counts)
    interviews_completed = list(current.interviews_completed)
    target = _interview_target(lowered)
    if target:
        npc = _npc_key(target)
        interview_counts[npc] = interview_counts.get(npc, 0) + 1
        if npc not in interviews_completed:
            interviews_completed.append(npc)

    discovered = discover_evidence(lowered, current.evidence)
    evidence = current.evidence + discovered

    new_leads = get_new_leads(
        evidence=evidence,
        actions_performed=actions_performed,
        interviews_completed=interviews_completed,
        active_leads=current.leads,
        analysis_completed=current.analysis_completed,
    )
    leads = current.leads + [lead.id for lead in new_leads]

    new_state = current.model_copy(
        update={
            "time_elapsed": current.time_elapsed + cost,
            "time_remaining": current.time_remaining - cost,
            "evidence": evidence,
            "leads": leads,
            "actions_performed": actions_performed,
            "interview_counts": interview_counts,
            "interviews_completed": interviews_completed,
        }
    )

    messages = [f"⏱️ That took {cost} minutes."]
    messages += [f"🔍 Evidence found: {evidence_description(e)}" for e in discovered]
    messages += [
        f"🕵️ New lead unlocked: {lead.description}"
        for lead in new_leads
        if not lead.is_red_herring
    ]

    logger.info(
        "[ENGINE] '%s' cost=%d evidence=%s leads=%s",
        text, cost, discovered, [lead.id for lead in new_leads],
    )
    return ActionResult(
        new_state=new_state,
        cost=cost,
        new_leads=new_leads,
        discovered_evidence=discovered,
        messages=messages,
    )
