"""
Reminder subsystem.

- scheduler.py: due polling, trigger events, per-reminder state transitions
- presenter.py: sound / toast / desktop notification for a fired reminder
"""
