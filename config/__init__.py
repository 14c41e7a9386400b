"""Environment and game configuration."""
