"""Core infrastructure: settings, database probe, errors and scheduling."""
