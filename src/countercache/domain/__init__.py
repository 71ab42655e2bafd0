"""Domain layer for counter cache maintenance."""
