"""Trade ledger domain."""
