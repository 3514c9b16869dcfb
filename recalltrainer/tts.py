# recalltrainer/tts.py
import logging
import platform
import queue
import subprocess
import threading
from typing import Any, Dict, List, Optional

import pyttsx3

logger = logging.getLogger(__name__)


def _xml_escape(s: str) -> str:
    """Minimal XML escaping for SSML."""
    return (
        (s or "")
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def _ps_run(script: str) -> subprocess.CompletedProcess:
    """
    Run PowerShell script (Windows). NoProfile = stable.
    CREATE_NO_WINDOW avoids popping a console window.
    """
    creationflags = getattr(subprocess, "CREATE_NO_WINDOW", 0)
    return subprocess.run(
        ["powershell", "-NoProfile", "-ExecutionPolicy", "Bypass", "-Command", script],
        capture_output=True,
        text=True,
        creationflags=creationflags,
    )


def _speak_powershell(text: str, voice: Optional[str], rate: int, volume: int) -> None:
    """System.Speech fallback when pyttsx3 has no working driver (Windows only)."""
    if platform.system().lower() != "windows":
        return

    text = (text or "").strip()
    if not text:
        return

    ssml = f"<speak version='1.0' xml:lang='en-US'>{_xml_escape(text)}</speak>"
    safe = ssml.replace("\\", "\\\\").replace('"', '`"')

    voice_line = ""
    if voice:
        safe_voice = str(voice).replace("\\", "\\\\").replace('"', '`"')
        voice_line = f'$s.SelectVoice("{safe_voice}");'

    ps = (
        "Add-Type -AssemblyName System.Speech;"
        "$s = New-Object System.Speech.Synthesis.SpeechSynthesizer;"
        f"{voice_line}"
        f"$s.Rate = {int(max(-10, min(10, rate)))};"
        f"$s.Volume = {int(max(0, min(100, volume)))};"
        f'$s.SpeakSsml("{safe}");'
    )

    r = _ps_run(ps)
    if r.returncode != 0:
        logger.error("TTS speak error: %s", r.stderr)


class Narrator:
    """
    Fire-and-forget narration.
    - One worker thread speaks queued utterances in order.
    - `say` drops utterances still waiting, so narration never lags behind the display.
    - pyttsx3 first, PowerShell System.Speech on Windows if pyttsx3 cannot start.
    """

    def __init__(self):
        self.rate = 165       # words per minute (pyttsx3)
        self.voice: Optional[str] = None
        self.volume = 100     # 0..100

        self._engine = None
        self._engine_failed = False
        self._is_windows = platform.system().lower() == "windows"

        self._queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self._worker = threading.Thread(target=self._loop, daemon=True)
        self._worker.start()

    # ---------- basic settings ----------
    def set_rate(self, rate: int):
        self.rate = int(rate)

    def set_voice(self, voice: Optional[str]):
        self.voice = voice or None

    def set_volume(self, volume_0_100: int):
        self.volume = int(max(0, min(100, volume_0_100)))

    def apply_settings(self, settings: Dict[str, Any]):
        """
        Accept settings dict from SettingsManager.
        - tts_voice:   voice id (empty = system default)
        - tts_rate:    float (0.5..1.5)
        - tts_volume:  float (0.0..1.0)
        """
        if not settings:
            return
        if "tts_voice" in settings:
            self.set_voice(settings.get("tts_voice") or None)
        if "tts_volume" in settings:
            self.set_volume(int(float(settings["tts_volume"]) * 100))
        if "tts_rate" in settings:
            factor = float(settings["tts_rate"])
            self.set_rate(int(165 + (factor - 1.0) * 60))

    # ---------- queue ----------
    def say(self, text: str):
        text = (text or "").strip()
        if not text:
            return
        self._drain()
        self._queue.put(text)

    def cancel(self):
        self._drain()

    def shutdown(self):
        self._drain()
        self._queue.put(None)

    def _drain(self):
        try:
            while True:
                self._queue.get_nowait()
        except queue.Empty:
            pass

    def _loop(self):
        while True:
            text = self._queue.get()
            if text is None:
                return
            try:
                self.speak(text)
            except Exception:
                logger.exception("TTS speak failed")

    # ---------- speech (worker thread only) ----------
    def speak(self, text: str):
        eng = self._ensure_engine()
        if eng is not None:
            eng.setProperty("rate", self.rate)
            eng.setProperty("volume", max(0.0, min(1.0, self.volume / 100.0)))
            if self.voice:
                eng.setProperty("voice", self.voice)
            eng.say(text)
            eng.runAndWait()
            return
        if self._is_windows:
            r = max(-10, min(10, int((self.rate - 165) / 15)))
            _speak_powershell(text, self.voice, r, self.volume)

    def _ensure_engine(self):
        if self._engine is not None or self._engine_failed:
            return self._engine
        try:
            self._engine = pyttsx3.init()
        except Exception:
            logger.warning("pyttsx3 unavailable, narration falls back to the system voice", exc_info=True)
            self._engine_failed = True
            self._engine = None
        return self._engine


def list_voices() -> List[str]:
    """Voice ids known to pyttsx3 (empty list if the driver cannot start)."""
    try:
        eng = pyttsx3.init()
        return sorted({v.id for v in eng.getProperty("voices") or []})
    except Exception:
        logger.exception("list_voices failed")
        return []
