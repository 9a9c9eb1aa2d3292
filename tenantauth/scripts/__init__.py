"""Operator CLI scripts (run with python -m)."""
