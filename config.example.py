# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
See src/taskpulse/config.py for parsing and defaults.
"""

ENV_VARS = {
    # App / logging
    "TASKPULSE_APP_NAME": "App display name (default: taskpulse).",
    "TASKPULSE_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Paths (gitignored)
    "TASKPULSE_DATA_DIR": "Local data directory for the database and taskpulse.log (default: .local/taskpulse).",
    "TASKPULSE_DB_PATH": "SQLite database path (default: <data_dir>/tasks.sqlite3).",
    # Sync
    "TASKPULSE_SYNC_INTERVAL_SECONDS": "Background refresh period in seconds (default: 30, minimum 1).",
    "TASKPULSE_START_OFFLINE": "Start with every store offline, queueing changes (true/false).",
    # Reminders
    "TASKPULSE_REMINDER_POLL_SECONDS": "Due-reminder polling period in seconds (default: 30, minimum 1).",
    "TASKPULSE_TOAST_DURATION_SECONDS": "How long a reminder toast is shown (default: 10).",
    "TASKPULSE_SOUND_ENABLED": "Play a chime when a reminder fires (needs the 'audio' extra).",
    "TASKPULSE_SOUND_PATH": "Optional 16-bit PCM WAV to play instead of the built-in chime.",
    "TASKPULSE_SOUND_VOLUME": "Chime volume in [0, 1] (default: 0.5).",
    "TASKPULSE_DESKTOP_NOTIFICATIONS": "Send native notifications via notify-send / osascript (true/false).",
}
