"""Asset store domain."""
