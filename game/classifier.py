"""Action classification for player input.

Combines the lexical signals with the current conversation state to decide
what kind of turn this is. The precedence order below is load-bearing: an
active lab conversation must never be hijacked by investigative phrasing
("run the blood sample"), and the partner is only consulted explicitly when
nobody else is being addressed.
"""

import logging
from typing import Optional

from game.case_data import PARTNER_ID, get_character
from game.models import ActionType, CharacterType, ConversationState
from game.signals import is_general_investigative_action, mentions_partner

logger = logging.getLogger(__name__)


def classify_action(
    text: str,
    mentioned_character: Optional[str],
    conversation_state: ConversationState,
) -> ActionType:
    """Pick exactly one ActionType for ``text``.

    1. Talking to a forensic (service) character -> CHARACTER_INTERACTION
    2. Investigative phrasing -> INVESTIGATIVE
    3. Talking to the partner -> CHARACTER_INTERACTION
    4. Someone was mentioned -> CHARACTER_INTERACTION
    5. Partner named -> ASK_PARTNER
    6. Anything else -> GENERAL

    While someone else is in focus the partner does not count as a mention
    in step 4: naming him is a side question, not a change of focus.
    """
    current = get_character(conversation_state.current_character)

    if current is not None and current.character_type == CharacterType.FORENSIC:
        action = ActionType.CHARACTER_INTERACTION
    elif is_general_investigative_action(text):
        action = ActionType.INVESTIGATIVE
    elif current is not None and current.id == PARTNER_ID:
        action = ActionType.CHARACTER_INTERACTION
    elif mentioned_character and not (current is not None and mentioned_character == PARTNER_ID):
        action = ActionType.CHARACTER_INTERACTION
    elif mentions_partner(text):
        action = ActionType.ASK_PARTNER
    else:
        action = ActionType.GENERAL

    logger.info(
        "[CLASSIFY] %s (current=%s, mentioned=%s)",
        action.value,
        conversation_state.current_character,
        mentioned_character,
    )
    return action
