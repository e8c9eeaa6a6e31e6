"""Identity store domain."""
