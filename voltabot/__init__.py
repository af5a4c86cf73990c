"""Configuration, git, event-routing, forum-topic and record helpers for an agent-driving chat bot."""

__version__ = "0.1.0"

__all__ = [
    "agents",
    "config",
    "events",
    "forum",
    "git",
    "models",
    "sessions",
]