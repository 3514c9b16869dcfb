import logging
import tkinter as tk
from dataclasses import replace
from tkinter import ttk, messagebox

from recalltrainer.config import (
    APP_NAME, APP_VERSION,
    DATA_DIR, DIFFICULTIES,
    DEFAULT_DB_PATH, DEFAULT_STORIES_PATH, FALLBACK_STORIES_PATH,
    MIN_WORD_DELAY_MS, MAX_WORD_DELAY_MS,
)
from recalltrainer.db import DataLayer
from recalltrainer.deps import check_dependencies, format_dependency_report
from recalltrainer.errors import InvalidConfigurationError
from recalltrainer.models import DisplayMode, PauseMode, RevealedWord, RevealEvent
from recalltrainer.player import PlayerState
from recalltrainer.scheduler import TkScheduler
from recalltrainer.session import TrainerContext
from recalltrainer.settings import SettingsManager
from recalltrainer.stories import StoryCatalog
from recalltrainer.tts import Narrator
from recalltrainer.utils_text import clean_word_for_key
from recalltrainer.utils_paths import ensure_dir, pick_existing

from .dialogs_history import HistoryDialog
from .dialogs_notes import NotesDialog, WordNoteEditor
from .dialogs_voice import VoiceSettingsDialog

logger = logging.getLogger(__name__)


class RecallTrainerApp(tk.Tk):
    def __init__(self):
        super().__init__()
        logger.info("Dependencies:\n%s", format_dependency_report(check_dependencies()))

        self.title(f"{APP_NAME} - {APP_VERSION}")
        self.geometry("980x720")

        ensure_dir(DATA_DIR)
        db_path = DEFAULT_DB_PATH
        stories_path = pick_existing(DEFAULT_STORIES_PATH, FALLBACK_STORIES_PATH)

        self.dl = DataLayer(db_path)
        self.settings_mgr = SettingsManager(db_path)
        self._settings = self.settings_mgr.load()

        catalog = StoryCatalog(stories_path)
        try:
            n = catalog.load()
        except ValueError as e:
            logger.exception("Could not read %s", stories_path)
            messagebox.showerror("Stories", f"Could not read {stories_path}:\n{e}")
            n = 0

        self.ctx = TrainerContext(
            catalog, self.dl, TkScheduler(self), narrator=Narrator(), settings=self._settings,
        )
        self.player = self.ctx.player
        self.player.on_reveal = self.on_reveal
        self.player.on_complete = self.on_complete
        self.player.on_state = self.on_state

        self._last_event = None

        self._build_menu()
        self._build_ui()
        self.set_status(f"Ready. Stories={n} | JSON={stories_path} | DB={db_path}")

        self.protocol("WM_DELETE_WINDOW", self.on_close)

    def on_close(self):
        try:
            self._save_settings()
        except Exception:
            logger.exception("Could not save settings")
        self.ctx.close()
        self.destroy()

    # ==========================================================
    # LAYOUT
    # ==========================================================

    def _build_menu(self):
        menubar = tk.Menu(self)

        m_notes = tk.Menu(menubar, tearoff=0)
        m_notes.add_command(label="Memory notes...", command=self.open_notes)
        menubar.add_cascade(label="Notes", menu=m_notes)

        m_hist = tk.Menu(menubar, tearoff=0)
        m_hist.add_command(label="Recall history...", command=self.open_history)
        m_hist.add_separator()
        m_hist.add_command(label="Reset read stories", command=self.reset_stories)
        menubar.add_cascade(label="History", menu=m_hist)

        m_speech = tk.Menu(menubar, tearoff=0)
        m_speech.add_command(label="Voice...", command=self.open_voice_settings)
        menubar.add_cascade(label="Speech", menu=m_speech)

        m_help = tk.Menu(menubar, tearoff=0)
        m_help.add_command(label="About", command=lambda: messagebox.showinfo("About", f"{APP_NAME}\n{APP_VERSION}"))
        m_help.add_command(
            label="Dependencies",
            command=lambda: messagebox.showinfo("Dependencies", format_dependency_report(check_dependencies())),
        )
        menubar.add_cascade(label="Help", menu=m_help)
        self.config(menu=menubar)

    def _build_ui(self):
        s = self._settings
        root = ttk.Frame(self)
        root.pack(fill="both", expand=True, padx=12, pady=10)

        # ---- controls
        top = ttk.Frame(root)
        top.pack(fill="x")
        ttk.Label(top, text="Difficulty:").pack(side="left")
        self.var_difficulty = tk.StringVar(value=s.get("difficulty") if s.get("difficulty") in DIFFICULTIES else DIFFICULTIES[0])
        ttk.Combobox(top, textvariable=self.var_difficulty, values=DIFFICULTIES, state="readonly", width=10).pack(side="left", padx=6)
        ttk.Button(top, text="Start story", command=self.start_story).pack(side="left", padx=6)
        ttk.Button(top, text="Next sentence", command=self.next_sentence).pack(side="left", padx=6)
        self.btn_continue = ttk.Button(top, text="Continue", command=self.continue_story, state="disabled")
        self.btn_continue.pack(side="left", padx=6)

        opts = ttk.Frame(root)
        opts.pack(fill="x", pady=8)
        ttk.Label(opts, text="Word timer (ms):").pack(side="left")
        self.var_delay = tk.IntVar(value=int(s.get("word_delay_ms")))
        self.scale_delay = ttk.Scale(
            opts, from_=MIN_WORD_DELAY_MS, to=MAX_WORD_DELAY_MS, orient="horizontal", length=220,
        )
        self.scale_delay.pack(side="left", padx=6)
        self.lbl_delay = ttk.Label(opts, text=str(self.var_delay.get()), width=6)
        self.lbl_delay.pack(side="left")
        self.scale_delay.set(self.var_delay.get())
        self.scale_delay.config(command=self.on_delay_changed)

        self.var_show_full = tk.BooleanVar(value=bool(s.get("show_full")))
        self.var_speech = tk.BooleanVar(value=bool(s.get("speech_enabled")))
        self.var_pause = tk.BooleanVar(value=bool(s.get("pause_after_sentence")))
        self.var_show_notes = tk.BooleanVar(value=bool(s.get("show_notes")))
        for text, var in (
            ("Full sentence", self.var_show_full),
            ("Speech", self.var_speech),
            ("Pause after sentence", self.var_pause),
            ("Show notes", self.var_show_notes),
        ):
            ttk.Checkbutton(opts, text=text, variable=var, command=self.on_toggle).pack(side="left", padx=6)

        # ---- flash area
        self.flash = tk.Frame(root, height=140, bg="#fafafa", highlightthickness=1, highlightbackground="#ccc")
        self.flash.pack(fill="x", pady=8)
        self.flash.pack_propagate(False)
        self.flash_inner = tk.Frame(self.flash, bg="#fafafa")
        self.flash_inner.place(relx=0.5, rely=0.5, anchor="center")

        # ---- recall
        rec = ttk.LabelFrame(root, text="Full recall")
        rec.pack(fill="x", pady=6)
        self.txt_recall = tk.Text(rec, height=4, wrap="word")
        self.txt_recall.pack(fill="x", padx=6, pady=4)
        ttk.Button(rec, text="Check recall", command=self.check_recall_full).pack(anchor="w", padx=6)
        self.lbl_recall = ttk.Label(rec, text="")
        self.lbl_recall.pack(anchor="w", padx=6)
        self.lbl_recall_detail = ttk.Label(rec, text="", wraplength=900, foreground="#444")
        self.lbl_recall_detail.pack(anchor="w", padx=6, pady=(0, 6))

        part = ttk.LabelFrame(root, text="Partial recall")
        part.pack(fill="x", pady=6)
        row = ttk.Frame(part)
        row.pack(fill="x", padx=6, pady=4)
        ttk.Label(row, text="Last N sentences:").pack(side="left")
        self.var_last_n = tk.StringVar(value="1")
        ttk.Spinbox(row, from_=1, to=99, textvariable=self.var_last_n, width=5).pack(side="left", padx=6)
        ttk.Button(row, text="Check partial", command=self.check_recall_partial).pack(side="left", padx=6)
        self.txt_partial = tk.Text(part, height=3, wrap="word")
        self.txt_partial.pack(fill="x", padx=6, pady=4)
        self.lbl_partial = ttk.Label(part, text="")
        self.lbl_partial.pack(anchor="w", padx=6)
        self.lbl_partial_detail = ttk.Label(part, text="", wraplength=900, foreground="#444")
        self.lbl_partial_detail.pack(anchor="w", padx=6, pady=(0, 6))

        self.lbl_status = ttk.Label(root, text="", foreground="#333")
        self.lbl_status.pack(fill="x", side="bottom")

    # ==========================================================
    # PLAYBACK
    # ==========================================================

    def start_story(self):
        self._save_settings()
        story = self.ctx.new_story(self.var_difficulty.get())
        if story is None:
            messagebox.showwarning("Stories", "No unread stories left in this category.")
            return
        for w in (self.txt_recall, self.txt_partial):
            w.delete("1.0", "end")
        for lbl in (self.lbl_recall, self.lbl_recall_detail, self.lbl_partial, self.lbl_partial_detail):
            lbl.config(text="")
        self.set_status(f"Story: {story.title} ({len(story.sentences)} sentences)")

    def next_sentence(self):
        self.player.skip_to_next_sentence()

    def continue_story(self):
        self.player.continue_()

    def reset_stories(self):
        self.ctx.reset_stories()
        messagebox.showinfo("Stories", "All stories reset!")

    def on_delay_changed(self, value):
        ms = int(float(value))
        try:
            self.player.set_word_delay(ms)
        except InvalidConfigurationError as e:
            self.set_status(str(e))
            return
        self.var_delay.set(ms)
        self.lbl_delay.config(text=str(ms))

    def on_toggle(self):
        self.player.set_display_mode(
            DisplayMode.FULL_SENTENCE if self.var_show_full.get() else DisplayMode.WORD_BY_WORD
        )
        self.player.set_pause_mode(
            PauseMode.AFTER_SENTENCE if self.var_pause.get() else PauseMode.AUTO_ADVANCE
        )
        self.player.set_speech_enabled(self.var_speech.get())
        if not self.var_speech.get() and self.ctx.narrator is not None:
            self.ctx.narrator.cancel()
        if self._last_event is not None:
            self.render(self._last_event)

    def on_reveal(self, event: RevealEvent):
        self._last_event = event
        self.render(event)

    def on_complete(self, story):
        self._last_event = None
        self._clear_flash()
        tk.Label(self.flash_inner, text="Story complete!", font=("Helvetica", 22), bg="#fafafa").pack()
        self.set_status(f"Story complete: {story.title}")

    def on_state(self, state: PlayerState):
        self.btn_continue.config(state="normal" if state == PlayerState.PAUSED else "disabled")

    def _clear_flash(self):
        for w in self.flash_inner.winfo_children():
            w.destroy()

    def render(self, event: RevealEvent):
        self._clear_flash()
        show_notes = self.var_show_notes.get()
        for rw in event.words:
            noted = bool(show_notes and rw.note)
            lbl = tk.Label(
                self.flash_inner,
                text=rw.display(show_notes),
                font=("Helvetica", 22),
                bg="#fff3c4" if noted else "#fafafa",
                cursor="hand2",
            )
            lbl.pack(side="left", padx=4)
            lbl.bind("<Button-1>", lambda _e, word=rw.text: self.edit_word_note(word))

    def edit_word_note(self, word: str):
        key = clean_word_for_key(word)
        if not key:
            return

        def _saved():
            if self._last_event is not None:
                self.render(self._refresh_notes(self._last_event))

        WordNoteEditor(self, self.ctx.notes, key, on_saved=_saved)

    def _refresh_notes(self, event: RevealEvent) -> RevealEvent:
        lookup = self.ctx.notes.lookup
        words = tuple(RevealedWord(w.text, lookup(clean_word_for_key(w.text))) for w in event.words)
        self._last_event = replace(event, words=words)
        return self._last_event

    # ==========================================================
    # RECALL
    # ==========================================================

    def check_recall_full(self):
        result = self.ctx.check_recall_full(self.txt_recall.get("1.0", "end"))
        self._show_result(result, self.lbl_recall, self.lbl_recall_detail)

    def check_recall_partial(self):
        result = self.ctx.check_recall_partial(self.txt_partial.get("1.0", "end"), self.var_last_n.get())
        self._show_result(result, self.lbl_partial, self.lbl_partial_detail)

    def _show_result(self, result, lbl, lbl_detail):
        if result is None:
            self.set_status("Start a story first.")
            return
        lbl.config(text=f"{result.summary()} ({result.accuracy:.0%})")
        mistakes = "; ".join(d.describe() for d in result.discrepancies[:12])
        if len(result.discrepancies) > 12:
            mistakes += f"; ... (+{len(result.discrepancies) - 12})"
        lbl_detail.config(text=f"Correct answer: {result.reference_text}\n{mistakes}")

    # ==========================================================
    # DIALOGS / UTILS
    # ==========================================================

    def open_notes(self):
        NotesDialog(self, self.ctx.notes)

    def open_history(self):
        HistoryDialog(self, self.dl)

    def open_voice_settings(self):
        VoiceSettingsDialog(self, self.settings_mgr, narrator=self.ctx.narrator)

    def _save_settings(self):
        self.settings_mgr.save({
            "difficulty": self.var_difficulty.get(),
            "word_delay_ms": int(self.var_delay.get()),
            "show_full": int(self.var_show_full.get()),
            "pause_after_sentence": int(self.var_pause.get()),
            "speech_enabled": int(self.var_speech.get()),
            "show_notes": int(self.var_show_notes.get()),
        })

    def set_status(self, text: str):
        self.lbl_status.config(text=text)
