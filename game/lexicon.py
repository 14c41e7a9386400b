"""Keyword tables used by the lexical signal extractors.

These are plain data. The matching logic in ``game.signals`` never
hard-codes a phrase; tune the game's ear by editing the lists below.
"""

from typing import Dict, List

# =============================================================================
# TOPICS
# =============================================================================

TOPIC_KEYWORDS: Dict[str, List[str]] = {
    "timeline": ["what time", "when did", "3:30", "7:25", "8:00", "last night",
                 "that night", "timeline", "o'clock", "this morning"],
    "scream": ["scream", "yell", "noise", "heard something", "hear anything"],
    "visitors": ["visitor", "visited", "anyone come", "someone leave", "saw anyone",
                 "see anyone", "who came", "leaving the building", "come and go"],
    "victim": ["mia", "victim"],
    "relationship": ["relationship", "dating", "dated", "broke up", "breakup",
                     "best friend", "boyfriend", "close were you"],
    "alibi": ["alibi", "where were you", "were you home", "can anyone confirm",
              "anyone vouch", "what were you doing"],
    "phone": ["phone", "call log", "called her", "text message", "texted"],
    "weapon": ["knife", "weapon", "stab", "blade"],
    "evidence": ["evidence", "fingerprint", "dna", "blood", "charm", "bracelet"],
    "forensics": ["lab", "analysis", "results", "sample"],
    "motive": ["motive", "why would", "jealous", "money", "angry at her"],
    "lawyer": ["lawyer", "attorney"],
}

# =============================================================================
# CHARACTER DETECTION
# =============================================================================

TIER_WEIGHTS: Dict[str, int] = {
    "direct": 10,
    "location": 6,
    "role": 5,
    "descriptive": 3,
}
ACTION_ALIAS_BONUS = 4
LOCATION_CONTEXT_BONUS = 2

# Verbs that address a person when they sit right before an alias
ADDRESSING_VERBS: List[str] = [
    "talk to", "talk with", "speak to", "speak with", "ask", "question",
    "interview", "interrogate", "go see", "visit", "find", "call",
    "approach", "knock on", "bring in", "get",
]

# "asking the current character ABOUT someone"
ABOUT_PATTERNS: List[str] = [
    r"\btell me about\b",
    r"\bwhat about\b",
    r"\bwhat do you (?:think|know) (?:of|about)\b",
    r"\bhow well do you know\b",
    r"\bdo you know\b",
    r"\bwhen did you last see\b",
    r"\b(?:have|did) you (?:see|seen|talk to|speak to|hear from)\b",
    r"\babout\b",
]

# =============================================================================
# ENDING DETECTION
# =============================================================================

GOODBYE_PHRASES: List[str] = [
    "goodbye", "good bye", "bye", "see you", "see ya", "thanks for your time",
    "thank you for your time", "i should go", "i should get going", "i'll be going",
    "we'll be in touch", "we will be in touch", "take care", "i'll let you go",
    "gotta go", "i have to go", "have a good day", "have a good night",
]

MOVEMENT_PHRASES: List[str] = [
    "go to", "go back to", "head to", "head over to", "head back to", "drive to",
    "walk to", "return to", "leave for", "let's go", "move on to", "get to",
]

LOCATION_WORDS: List[str] = [
    "apartment", "house", "place", "lab", "station", "hq", "headquarters",
    "precinct", "scene", "bar", "lockwood", "office", "home", "downtown",
]

INVESTIGATION_TRANSITION_PHRASES: List[str] = [
    "let's search", "let's examine", "let's look around", "time to investigate",
    "back to the investigation", "let's check the scene", "let's process the scene",
    "i want to search", "i'll search", "let's get back to work",
]

PARTNER_REDIRECT_PATTERNS: List[str] = [
    r"^\s*(?:hey,?\s+)?{partner}\b",
    r"\b(?:ask|talk to|turn to|back to|over to)\s+{partner}\b",
    r"\bwhat do you think,?\s+{partner}\b",
]

CONTEXTUAL_ENDINGS: List[str] = [
    "that's all", "that is all", "nothing else", "no more questions",
    "that'll be all", "that will be all", "i think we're done", "we're done here",
    "that's everything", "i've heard enough",
]

# =============================================================================
# ACCUSATIONS
# =============================================================================

DIRECT_ACCUSATIONS: List[str] = [
    "you killed", "you murdered", "you did it", "you stabbed", "you're the killer",
    "you are the killer", "you're a murderer", "you are a murderer", "you did this",
    "you killed her", "confess", "admit it",
]

TIMELINE_ACCUSATIONS: List[str] = [
    "your story doesn't add up", "doesn't add up", "you called her at",
    "you were there", "you weren't home", "you were not home", "you lied about",
    "your timeline", "you're lying", "you are lying", "you lied",
]

# =============================================================================
# INVESTIGATIVE ACTIONS
# =============================================================================

PHOTOGRAPHY_KEYWORDS: List[str] = [
    "photograph", "photo", "take pictures", "take a picture", "snap a picture",
    "snap some", "take some pictures",
    # common misspellings
    "photgraph", "fotograph", "photagraph", "phtograph", "pohtograph", "photograh",
]

INVESTIGATION_VERBS: List[str] = [
    "search", "examine", "inspect", "investigate", "dust for", "bag the",
    "collect", "canvass", "look around", "process the scene", "pull phone",
    "pull the", "subpoena",
]

INVESTIGATION_NOUNS: List[str] = [
    "evidence", "records", "footage", "scene", "room", "apartment", "body",
    "wall", "window", "door", "kitchen", "floor", "knife", "blood",
    "fingerprints", "prints", "background", "couch", "sink", "receipt",
]

ACTION_VERBS: List[str] = [
    "check", "look at", "look for", "look into", "pull", "get", "grab",
    "review", "study", "swab", "go through", "research", "dig into",
]

SEARCH_VERBS: List[str] = ["search", "look around", "go through", "toss"]
SEARCH_PLACES: List[str] = ["apartment", "room", "scene", "place", "bedroom", "living room"]

# =============================================================================
# LAB SUBMISSIONS
# =============================================================================

SUBMISSION_VERBS: List[str] = [
    "submit", "send", "analyze", "analyse", "run", "test", "process",
    "drop off", "hand over", "give you", "take a look at",
]

RESULTS_PHRASES: List[str] = [
    "results", "findings", "what did you find", "is it ready", "any news",
    "anything back", "what came back", "report",
]

# =============================================================================
# MOOD
# =============================================================================

AGGRESSIVE_WORDS: List[str] = [
    "liar", "lying", "murderer", "shut up", "don't lie", "confess", "killed",
    "stop lying", "i know you did",
]

EMPATHETIC_WORDS: List[str] = [
    "sorry", "condolences", "i understand", "must be hard", "take your time",
    "thank you", "thanks", "appreciate",
]

INTERVIEW_VERBS: List[str] = ["interview", "question", "interrogate"]
