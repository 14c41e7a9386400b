"""Static case content for "First 48: Homicide of Mia Rodriguez".

Everything here is data: character profiles and alias tiers, the behaviour
table per character type, evidence and lead definitions, lab turnaround
times and the scripted lines the engine speaks without the dialogue model.
"""

from typing import Dict, List, Optional

from game.models import (
    AliasTiers,
    CharacterProfile,
    CharacterType,
    CharacterTypeRules,
    ClosurePolicy,
    EvidenceDefinition,
    LeadDefinition,
    LeadTriggers,
)

CASE_TITLE = "First 48: Homicide of Mia Rodriguez"
VICTIM_NAME = "Mia Rodriguez"
DEFAULT_LOCATION = "crime-scene"

DIFFICULTY_MODES = {
    "Easy": "Navarro will proactively hint and nudge you along.",
    "Classic": "Navarro only reminds or reframes what's known when asked.",
    "Hard": "Navarro defers to you - minimal guidance unless explicitly requested.",
}

PARTNER_ID = "navarro"
CULPRIT_ID = "rachel-kim"

# Minutes spent moving from one conversation partner to another
TRANSITION_COST = 10


# =============================================================================
# CHARACTERS
# =============================================================================

# Iteration order matters: it is the tie-break for character detection.
CHARACTERS: List[CharacterProfile] = [
    CharacterProfile(
        id="navarro",
        name="Navarro",
        character_type=CharacterType.PARTNER,
        role="Detective Partner",
        aliases=AliasTiers(
            direct=["navarro", "nav"],
            location=[],
            role=["partner"],
            descriptive=[],
        ),
        home_location="crime-scene",
        fallback_line="Navarro rubs his eyes. \"Give me a second, I'm thinking.\"",
    ),
    CharacterProfile(
        id="marvin-lott",
        name="Marvin Lott",
        character_type=CharacterType.WITNESS,
        role="Neighbor",
        aliases=AliasTiers(
            direct=["marvin lott", "marvin", "mr. lott", "mr lott", "lott"],
            location=["next door", "across the hall", "apartment 4b"],
            role=["neighbor", "neighbour", "witness", "the caller", "who called it in"],
            descriptive=["old man", "elderly man", "old guy", "insomniac"],
        ),
        home_location="crime-scene",
        critical_topics=["scream", "timeline", "visitors"],
        fallback_line="Marvin fidgets with his cardigan. \"I... I'm not sure what to say.\"",
    ),
    CharacterProfile(
        id="rachel-kim",
        name="Rachel Kim",
        character_type=CharacterType.SUSPECT,
        role="Best Friend",
        aliases=AliasTiers(
            direct=["rachel kim", "rachel", "ms. kim", "ms kim", "miss kim"],
            location=["rachel's house", "rachel's place", "rachel's apartment"],
            role=["best friend", "her friend", "mia's friend"],
            descriptive=["dark hair", "dark-haired woman", "woman with dark hair"],
        ),
        home_location="rachel-house",
        critical_topics=["timeline", "alibi", "relationship"],
        accusation_threshold=2,
        warning_lines=[
            "How dare you. I found her. I'm the one who has to live with that image. "
            "Say that again and we're done talking.",
        ],
        lawyer_lines=[
            "I want my lawyer. I'm not saying another word without him.",
        ],
        fallback_line="Rachel dabs at her eyes and says nothing.",
    ),
    CharacterProfile(
        id="jordan-valez",
        name="Jordan Valez",
        character_type=CharacterType.SUSPECT,
        role="Ex-Boyfriend",
        aliases=AliasTiers(
            direct=["jordan valez", "jordan", "valez", "mr. valez", "mr valez"],
            location=["jordan's apartment", "jordan's place", "lockwood bar", "the lockwood"],
            role=["ex-boyfriend", "ex boyfriend", "boyfriend", "her ex", "the ex"],
            descriptive=["jealous guy", "tall guy"],
        ),
        home_location="jordan-apartment",
        critical_topics=["alibi", "relationship"],
        accusation_threshold=3,
        warning_lines=[
            "You think I did this? I loved her. Watch yourself, detective.",
            "Last warning. Keep pointing that finger and I call a lawyer.",
        ],
        lawyer_lines=[
            "That's it. I'm calling my lawyer. This conversation is over.",
        ],
        fallback_line="Jordan stares at the floor, jaw clenched.",
    ),
    CharacterProfile(
        id="dr-chen",
        name="Dr. Sarah Chen",
        character_type=CharacterType.FORENSIC,
        role="Forensic Analyst",
        aliases=AliasTiers(
            direct=["dr. sarah chen", "sarah chen", "dr. chen", "dr chen", "doctor chen", "chen"],
            location=["crime lab", "forensics lab", "the lab"],
            role=["forensic analyst", "forensics", "analyst", "lab tech", "examiner"],
            descriptive=["woman in the lab coat"],
        ),
        home_location="detective-hq",
        fallback_line="Dr. Chen glances up from her microscope. \"One moment, detective.\"",
    ),
]

CHARACTERS_BY_ID: Dict[str, CharacterProfile] = {c.id: c for c in CHARACTERS}

CHARACTER_TYPE_RULES: Dict[CharacterType, CharacterTypeRules] = {
    CharacterType.PARTNER: CharacterTypeRules(
        first_visit_cost=0, closure=ClosurePolicy.AUTO,
    ),
    CharacterType.FORENSIC: CharacterTypeRules(
        first_visit_cost=0, closure=ClosurePolicy.AUTO,
    ),
    CharacterType.WITNESS: CharacterTypeRules(
        first_visit_cost=20, closure=ClosurePolicy.BLOCK, interview_window=True,
    ),
    CharacterType.SUSPECT: CharacterTypeRules(
        first_visit_cost=20, closure=ClosurePolicy.AUTO,
        escalates=True, interview_window=True,
    ),
}

SUSPECT_IDS = [c.id for c in CHARACTERS if c.character_type == CharacterType.SUSPECT]

LOCATIONS = {
    "crime-scene": "Mia's Apartment",
    "rachel-house": "Rachel's House",
    "jordan-apartment": "Jordan's Apartment",
    "detective-hq": "Detective HQ",
}


def get_character(character_id: Optional[str]) -> Optional[CharacterProfile]:
    """Look up a character profile by id."""
    if not character_id:
        return None
    return CHARACTERS_BY_ID.get(character_id)


def get_type_rules(character_id: Optional[str]) -> Optional[CharacterTypeRules]:
    """Behaviour rules for a character's type."""
    profile = get_character(character_id)
    if profile is None:
        return None
    return CHARACTER_TYPE_RULES[profile.character_type]


def character_name(character_id: Optional[str]) -> str:
    profile = get_character(character_id)
    return profile.name if profile else (character_id or "")


def resolve_character_name(name: str) -> Optional[str]:
    """Map a spoken name ("marvin lott", "Rachel") to a character id."""
    lowered = (name or "").strip().lower()
    if not lowered:
        return None
    for profile in CHARACTERS:
        if lowered == profile.id or lowered == profile.name.lower():
            return profile.id
    for profile in CHARACTERS:
        if lowered in profile.aliases.direct:
            return profile.id
    return None


# =============================================================================
# EVIDENCE
# =============================================================================

EVIDENCE: List[EvidenceDefinition] = [
    EvidenceDefinition(
        id="stab-wound",
        description="Single precise thrust wound",
        discovered_by=["examine body", "examine the body", "inspect body", "look at the body",
                       "check the body", "examine wound", "examine the wound"],
    ),
    EvidenceDefinition(
        id="no-forced-entry",
        description="No signs of breaking and entering",
        discovered_by=["examine door", "examine the door", "check door", "check the door",
                       "inspect door", "check the lock", "forced entry"],
    ),
    EvidenceDefinition(
        id="locked-door",
        description="Door locked from inside",
        discovered_by=["examine door", "examine the door", "check door", "check the door",
                       "inspect door", "check the lock"],
    ),
    EvidenceDefinition(
        id="window-ajar",
        description="Bedroom window left slightly open",
        discovered_by=["examine window", "examine the window", "check window",
                       "check the window", "inspect window", "look at the window"],
    ),
    EvidenceDefinition(
        id="partial-cleaning",
        description="Someone cleaned up after themselves",
        discovered_by=["examine kitchen", "search kitchen", "search the kitchen",
                       "check the sink", "examine sink", "bleach"],
    ),
    EvidenceDefinition(
        id="bloodstain",
        description="Unusual blood spatter pattern",
        discovered_by=["examine wall", "examine the wall", "bloodstain", "blood stain",
                       "blood spatter", "bag the blood", "examine blood"],
        analyzable=True,
        keywords=["blood", "bloodstain", "sample", "spatter"],
    ),
    EvidenceDefinition(
        id="knife",
        description="Kitchen knife left at the scene",
        discovered_by=["examine knife", "examine the knife", "bag the knife",
                       "collect the knife", "murder weapon"],
        analyzable=True,
        keywords=["knife", "weapon", "blade"],
    ),
    EvidenceDefinition(
        id="missing-phone",
        description="Victim's phone is missing",
        discovered_by=["look for her phone", "look for the phone", "find her phone",
                       "where is her phone"],
    ),
    EvidenceDefinition(
        id="bracelet-charm",
        description="Small charm from a bracelet",
        discovered_by=["examine floor", "examine the floor", "under the couch",
                       "check under the couch"],
        analyzable=True,
        keywords=["charm", "bracelet"],
    ),
    EvidenceDefinition(
        id="crime-scene-photos",
        description="Photographs of the scene",
        discovered_by=[],
        analyzable=True,
        keywords=["photos", "photographs", "pictures"],
    ),
    EvidenceDefinition(
        id="phone-company-records",
        description="Mia's call log from the phone company",
        discovered_by=["pull phone records", "pull the phone records", "phone records",
                       "call logs", "subpoena phone"],
    ),
    EvidenceDefinition(
        id="security-footage",
        description="Building lobby security footage",
        discovered_by=["security footage", "security camera", "cctv", "pull footage",
                       "pull the footage"],
    ),
    EvidenceDefinition(
        id="uber-receipt",
        description="Jordan's timestamped Uber receipt",
        discovered_by=["uber receipt", "uber records", "rideshare", "pull uber"],
    ),
]

EVIDENCE_BY_ID: Dict[str, EvidenceDefinition] = {e.id: e for e in EVIDENCE}

# Composite triggers: a broad search or a photograph turns up several items
SEARCH_EVIDENCE = ["missing-phone", "bracelet-charm"]
PHOTO_EVIDENCE = ["crime-scene-photos"]


def evidence_description(evidence_id: str) -> str:
    definition = EVIDENCE_BY_ID.get(evidence_id)
    return definition.description if definition else evidence_id


# =============================================================================
# LEADS
# =============================================================================

LEADS: List[LeadDefinition] = [
    LeadDefinition(
        id="blood-analysis",
        description="Send the blood sample to Dr. Chen for analysis",
        narrative="That spatter doesn't look like it's all Mia's. The lab should take a look.",
        triggers=LeadTriggers(evidence=["bloodstain"]),
    ),
    LeadDefinition(
        id="scene-photos",
        description="Review the crime scene photos for trace evidence",
        narrative="The photos might show something we missed the first time through.",
        triggers=LeadTriggers(evidence=["crime-scene-photos"]),
    ),
    LeadDefinition(
        id="phone-records",
        description="Pull Mia's phone records",
        narrative="Her phone is gone. Whoever took it didn't want us seeing who she talked to.",
        triggers=LeadTriggers(evidence=["missing-phone"]),
    ),
    LeadDefinition(
        id="interview-marvin",
        description="Follow up on the neighbor's timeline",
        narrative="Marvin heard the scream at 3:30 but waited to call. Worth pinning down.",
        triggers=LeadTriggers(interviews=["marvin-lott"]),
    ),
    LeadDefinition(
        id="knife-analysis",
        description="Have the murder weapon analyzed",
        narrative="Prints, residue, anything. The knife was left behind for a reason.",
        triggers=LeadTriggers(evidence=["knife"]),
    ),
    LeadDefinition(
        id="victim-background",
        description="Research the victim's background",
        narrative="Two years in that apartment, quiet, kept to herself. Who did she trust?",
        triggers=LeadTriggers(actions=["background"]),
    ),
    LeadDefinition(
        id="jordan-alibi",
        description="Verify Jordan's alibi at The Lockwood Bar",
        narrative="He says he was at The Lockwood until midnight. Bartenders remember faces.",
        triggers=LeadTriggers(interviews=["jordan-valez"]),
    ),
    LeadDefinition(
        id="rachel-timeline",
        description="Confront Rachel about the 7:25 AM call",
        narrative="Rachel called Mia at 7:25 - half an hour before she 'found' the body.",
        triggers=LeadTriggers(evidence=["phone-company-records"], interviews=["rachel-kim"]),
    ),
    LeadDefinition(
        id="dna-match",
        description="Identify the second DNA profile in the blood sample",
        narrative="Two profiles in that blood. One is Mia's. We need the other.",
        triggers=LeadTriggers(analysis=["bloodstain"]),
    ),
    LeadDefinition(
        id="charm-owner",
        description="Find out who owns the bracelet charm",
        narrative="The charm isn't Mia's style. Somebody lost it in a hurry.",
        triggers=LeadTriggers(evidence=["bracelet-charm"], analysis=["bracelet-charm"]),
    ),
    LeadDefinition(
        id="restraining-order",
        description="Look into the old restraining order against Jordan",
        narrative="Rachel keeps steering us toward Jordan and that restraining order.",
        triggers=LeadTriggers(interviews=["rachel-kim"]),
        is_red_herring=True,
    ),
]

LEADS_BY_ID: Dict[str, LeadDefinition] = {lead.id: lead for lead in LEADS}


def lead_description(lead_id: str) -> str:
    definition = LEADS_BY_ID.get(lead_id)
    return definition.description if definition else lead_id


# =============================================================================
# LAB TURNAROUND & VERDICT
# =============================================================================

ANALYSIS_COSTS: Dict[str, int] = {
    "bloodstain": 360,
    "knife": 240,
    "bracelet-charm": 180,
    "crime-scene-photos": 120,
}
DEFAULT_ANALYSIS_COST = 240

ANALYSIS_FINDINGS: Dict[str, str] = {
    "bloodstain": "The blood sample contains DNA from two people: the victim and an unknown female.",
    "knife": "The knife was wiped, but there's a partial print near the bolster.",
    "bracelet-charm": "The charm is from a custom bracelet sold at a boutique on 5th. One buyer this year: Rachel Kim.",
    "crime-scene-photos": "Enhancing the photos shows a second coffee mug drying in the rack.",
}

EPILOGUES = {
    "win": (
        "Rachel Kim breaks down on the stand. The 7:25 call, the charm, the timeline - "
        "it all holds. Justice for Mia."
    ),
    "lose": (
        "The jury doesn't buy it. Your suspect walks, and somewhere in the city "
        "Mia's real killer breathes a little easier."
    ),
}


# =============================================================================
# SCRIPTED LINES
# =============================================================================

WITNESS_REMINDER = (
    "*{name} is still waiting for you to finish. Wrap things up with them before moving on.*"
)
LAWYERED_REFUSAL = "*{name}'s lawyer stands between you. \"My client has nothing more to say.\"*"
LAWYER_ARRIVAL = "*A lawyer in a charcoal suit pushes through the door.*"
LAWYER_CLOSING = "\"This interview is over, detective. Any further questions go through me.\""
PARTNER_TRANSITION_LINES = [
    "Alright. Where to next?",
    "Got what we needed there. What's the next move?",
]
STAGE_DIRECTIONS = {
    "marvin-lott": "*You knock on the door across the hall. An elderly man peers out over the chain.*",
    "rachel-kim": "*Rachel Kim opens the door, eyes red, clutching a crumpled tissue.*",
    "jordan-valez": "*Jordan Valez leans against the doorframe, arms crossed.*",
    "dr-chen": "*The crime lab hums under fluorescent light. Dr. Chen waves you over.*",
}
