"""HTML formatting for the player-facing panels."""
