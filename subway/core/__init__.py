"""Core infrastructure: configuration, logging, database, telemetry and auth."""
