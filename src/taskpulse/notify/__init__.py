"""
Notification adapters used by the reminder presenter.

- console.py: toast messages printed to the terminal
- sound.py: audible cue (optional sounddevice + numpy)
- desktop.py: native notifications via notify-send / osascript
"""
