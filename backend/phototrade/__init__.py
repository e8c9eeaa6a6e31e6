"""PhotoTrade backend package."""
