"""taskpulse: tasks and reminders with optimistic, offline-tolerant sync."""

__version__ = "0.1.0"
