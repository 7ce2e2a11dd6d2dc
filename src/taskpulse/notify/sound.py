# src/taskpulse/notify/sound.py

from __future__ import annotations

import logging
import wave
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CHIME_HZ = 880.0
CHIME_SECONDS = 0.4
CHIME_SAMPLE_RATE = 44100


class ChimePlayer:
    """
    Best-effort audible cue.

    - Optional dependencies: numpy + sounddevice (the `audio` extra). If they are
      missing the player disables itself and play() is a no-op.
    - Plays `sound_path` (16-bit PCM WAV) when it exists, else a short synthesized tone.
    - Playback is non-blocking.
    """

    def __init__(self, enabled: bool, *, sound_path: str | Path | None = None, volume: float = 0.5) -> None:
        self.enabled = bool(enabled)
        self._volume = max(0.0, min(1.0, float(volume)))
        self._sd: Any = None
        self._samples: Any = None
        self._sample_rate = CHIME_SAMPLE_RATE

        if not self.enabled:
            logger.info("Reminder sound disabled.")
            return

        try:
            import numpy as np  # type: ignore
            import sounddevice as sd  # type: ignore
        except Exception as e:
            self.enabled = False
            logger.warning(
                "Reminder sound is enabled, but numpy/sounddevice failed to import. "
                "Install the 'audio' extra to enable it. Error: %s",
                repr(e),
            )
            return

        self._sd = sd
        path = Path(sound_path) if sound_path else None
        if path is not None and path.is_file():
            try:
                self._samples, self._sample_rate = self._load_wav(np, path)
            except Exception as e:
                logger.warning("Failed to load %s (%s); using built-in chime.", path, repr(e))

        if self._samples is None:
            t = np.linspace(0.0, CHIME_SECONDS, int(CHIME_SAMPLE_RATE * CHIME_SECONDS), endpoint=False)
            fade = np.linspace(1.0, 0.0, t.size)
            self._samples = (np.sin(2 * np.pi * CHIME_HZ * t) * fade).astype(np.float32)

        self._samples = self._samples * self._volume
        logger.info("Reminder sound ready (sample_rate=%s).", self._sample_rate)

    @staticmethod
    def _load_wav(np: Any, path: Path) -> tuple[Any, int]:
        with wave.open(str(path), "rb") as wf:
            if wf.getsampwidth() != 2:
                raise ValueError("only 16-bit PCM WAV is supported")
            channels = wf.getnchannels()
            rate = wf.getframerate()
            frames = wf.readframes(wf.getnframes())
        data = np.frombuffer(frames, dtype=np.int16).astype(np.float32) / 32768.0
        if channels > 1:
            data = data.reshape(-1, channels)
        return data, rate

    def play(self) -> None:
        if not self.enabled or self._sd is None:
            return
        self._sd.stop()
        self._sd.play(self._samples, self._sample_rate)
