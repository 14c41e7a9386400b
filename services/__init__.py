"""External services used by the game (dialogue generation)."""
