"""Operator commands (``python -m appointment_engine.commands.<name>``)."""
