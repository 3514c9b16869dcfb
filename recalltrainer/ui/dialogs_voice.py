import logging
import tkinter as tk
from tkinter import ttk, messagebox

from recalltrainer.tts import list_voices

logger = logging.getLogger(__name__)


class VoiceSettingsDialog(tk.Toplevel):
    def __init__(self, parent, settings_mgr, narrator=None):
        super().__init__(parent)
        self.settings_mgr = settings_mgr
        self.narrator = narrator
        self.title("Narration voice")
        self.resizable(False, False)
        self.bind("<Escape>", lambda e: self.destroy())

        self.settings = self.settings_mgr.load()
        voices = list_voices()

        ttk.Label(self, text="Voice").grid(row=0, column=0, sticky="w", padx=5, pady=5)
        self.voice = tk.StringVar(value=self.settings.get("tts_voice", ""))
        self.voice_cb = ttk.Combobox(self, textvariable=self.voice, values=[""] + voices, width=40, state="readonly")
        self.voice_cb.grid(row=0, column=1, padx=5, pady=5)
        ttk.Label(self, text=f"{len(voices)} voice(s) found; empty = system default").grid(
            row=1, column=0, columnspan=2, sticky="w", padx=5, pady=(0, 8)
        )

        ttk.Label(self, text="Speed").grid(row=2, column=0, sticky="w", padx=5)
        self.rate = tk.DoubleVar(value=float(self.settings.get("tts_rate", 1.0)))
        ttk.Scale(self, from_=0.5, to=1.5, variable=self.rate).grid(row=2, column=1, sticky="ew", padx=5)

        ttk.Label(self, text="Volume").grid(row=3, column=0, sticky="w", padx=5)
        self.volume = tk.DoubleVar(value=float(self.settings.get("tts_volume", 1.0)))
        ttk.Scale(self, from_=0.0, to=1.0, variable=self.volume).grid(row=3, column=1, sticky="ew", padx=5)

        btn = ttk.Frame(self)
        btn.grid(row=4, column=0, columnspan=2, pady=10)
        ttk.Button(btn, text="Test", command=self.test).pack(side="left", padx=5)
        ttk.Button(btn, text="Save", command=self.save).pack(side="left", padx=5)
        ttk.Button(btn, text="Close", command=self.destroy).pack(side="left", padx=5)

    def current(self):
        return {
            "tts_voice": self.voice.get(),
            "tts_rate": round(self.rate.get(), 2),
            "tts_volume": round(self.volume.get(), 2),
        }

    def save(self):
        cur = self.current()
        self.settings_mgr.save(cur)
        self.settings.update(cur)
        if self.narrator is not None:
            self.narrator.apply_settings(cur)
        messagebox.showinfo("Narration voice", "Settings saved.", parent=self)

    def test(self):
        if self.narrator is None:
            messagebox.showwarning("Test", "Narration is not available.", parent=self)
            return
        self.narrator.apply_settings(self.current())
        self.narrator.say("This is a test of the narration voice.")
