"""Domain model, ports and reconciliation logic."""
