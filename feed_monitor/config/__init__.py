"""Process settings and the persisted feed options."""
