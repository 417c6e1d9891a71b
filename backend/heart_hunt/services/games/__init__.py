"""Game domain services: score records, sessions, ranking and the game loop.

This package contains pure(ish) domain logic that should be imported by
HTTP routes, CLI commands and socket handlers, keeping transport concerns
separated from core game mechanics.
"""
