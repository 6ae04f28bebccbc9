"""Core infrastructure: configuration, logging, database, and background execution."""
