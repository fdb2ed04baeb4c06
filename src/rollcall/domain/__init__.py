"""Domain layer for the check-in reconciliation engine."""
