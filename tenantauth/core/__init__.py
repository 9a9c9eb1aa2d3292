"""Core configuration, database, security and error primitives."""
