"""Domain services: credentials, permissions, authentication."""
