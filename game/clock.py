"""In-game clock.

Time is kept as whole minutes elapsed since the start of the investigation
(07:50 on day one). The wall clock is derived, never stored.
"""

from pydantic import BaseModel, Field

from game.models import RuleCheck

START_OF_DAY = 7 * 60 + 50  # 07:50
TIME_BUDGET = 48 * 60
ACCUSATION_OPENS_AT = 21 * 60  # 9 PM on day one


def fmt(total_minutes: int) -> str:
    """Format minutes as HH:MM. Hours are not wrapped at 24."""
    total_minutes = max(0, int(total_minutes))
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def wall_clock(elapsed: int) -> int:
    """Absolute minutes since midnight of day one."""
    return START_OF_DAY + elapsed


def clock_hour(elapsed: int) -> int:
    """Hour of the day (0-23) for an elapsed value."""
    return (wall_clock(elapsed) // 60) % 24


def can_accuse(elapsed: int) -> RuleCheck:
    """Accusations open at 21:00 on day one, regardless of anything else."""
    now = wall_clock(elapsed)
    if now < ACCUSATION_OPENS_AT:
        return RuleCheck(
            allowed=False,
            reason=f"Must wait until 9 PM on day 1 (current time {fmt(now)})",
        )
    return RuleCheck(allowed=True)


class GameClock(BaseModel):
    """Elapsed minutes against the fixed 48 hour budget."""

    elapsed: int = Field(default=0, ge=0)
    budget: int = TIME_BUDGET

    @property
    def remaining(self) -> int:
        return self.budget - self.elapsed

    @property
    def is_expired(self) -> bool:
        return self.remaining <= 0

    @property
    def now(self) -> int:
        """Wall-clock minutes since midnight of day one."""
        return wall_clock(self.elapsed)

    def advance(self, minutes: int) -> int:
        """Move the clock forward. Returns the new elapsed value."""
        if minutes < 0:
            raise ValueError(f"Clock cannot run backwards ({minutes} minutes)")
        self.elapsed += minutes
        return self.elapsed

    def can_skip(self, minutes: int) -> RuleCheck:
        if minutes <= 0:
            return RuleCheck(allowed=False, reason="Pick a positive amount of time to skip.")
        if minutes > self.remaining:
            return RuleCheck(
                allowed=False,
                reason=(
                    f"Not enough time left to skip {fmt(minutes)} "
                    f"(remaining {fmt(max(self.remaining, 0))})"
                ),
            )
        return RuleCheck(allowed=True)

    def display(self) -> str:
        return f"{fmt(self.now)} | Remaining {fmt(max(self.remaining, 0))}"
