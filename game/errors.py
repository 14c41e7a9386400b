"""Exceptions raised by the game core.

Rule violations are never raised; they come back as values
(``RuleCheck`` / ``ActionResult.error``). These are for misuse of the core.
"""


class GameError(Exception):
    """Base class for game core errors."""


class TrialError(GameError):
    """The trial was started twice or driven out of order."""


class StateLockTimeout(GameError):
    """The session state lock could not be acquired in time."""
