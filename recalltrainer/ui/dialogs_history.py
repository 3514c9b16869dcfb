import csv
import tkinter as tk
from tkinter import ttk, messagebox, filedialog

from recalltrainer.config import EXPORT_DIR
from recalltrainer.reports_pdf import build_recall_history_pdf
from recalltrainer.utils_paths import ensure_dir


class HistoryDialog(tk.Toplevel):
    def __init__(self, master, dl):
        super().__init__(master)
        self.title("Recall history")
        self.geometry("980x520")
        self.resizable(True, True)

        # UX: ESC to close
        self.bind('<Escape>', lambda e: self.destroy())
        self.dl = dl

        top = ttk.Frame(self); top.pack(fill="x", padx=10, pady=8)
        ttk.Button(top, text="Delete selected", command=self.delete_selected).pack(side="left")
        ttk.Button(top, text="Export PDF...", command=self.export_pdf).pack(side="right")
        ttk.Button(top, text="Export CSV...", command=self.export_csv).pack(side="right", padx=6)

        frm = ttk.Frame(self); frm.pack(fill="both", expand=True, padx=10, pady=10)
        cols = ("id", "date", "story", "scope", "score", "wer", "attempt")
        self.tree = ttk.Treeview(frm, columns=cols, show="headings")
        for c, w in [("id", 50), ("date", 140), ("story", 180), ("scope", 70), ("score", 70), ("wer", 60), ("attempt", 380)]:
            self.tree.heading(c, text=c); self.tree.column(c, width=w, anchor="w")
        y = ttk.Scrollbar(frm, orient="vertical", command=self.tree.yview)
        self.tree.configure(yscrollcommand=y.set)
        y.pack(side="right", fill="y")
        self.tree.pack(side="left", fill="both", expand=True)

        self.refresh()

    def refresh(self):
        for i in self.tree.get_children():
            self.tree.delete(i)
        for r in self.dl.fetch_attempts(limit=500):
            scope = r["scope"] if r["scope"] != "partial" else f"last {r['last_n']}"
            wer = f"{r['wer']:.2f}" if r["wer"] is not None else ""
            self.tree.insert("", "end", values=(
                r["id"], r["created_at"], r["story_title"], scope,
                f"{r['matched']}/{r['total']}", wer, r["attempt_text"],
            ))

    def delete_selected(self):
        ids = [int(self.tree.item(i, "values")[0]) for i in self.tree.selection()]
        if not ids:
            messagebox.showwarning("History", "Select attempts to delete.", parent=self)
            return
        if not messagebox.askyesno("History", f"Delete {len(ids)} attempt(s)?", parent=self):
            return
        self.dl.delete_attempts_by_ids(ids)
        self.refresh()

    def export_csv(self):
        path = filedialog.asksaveasfilename(defaultextension=".csv", filetypes=[("CSV", "*.csv")], title="Export CSV",
                                            initialdir=ensure_dir(EXPORT_DIR), parent=self)
        if not path:
            return
        rows = self.dl.fetch_attempts(limit=100000)
        with open(path, "w", encoding="utf-8", newline="") as f:
            w = csv.writer(f, delimiter=";")
            w.writerow(["id", "created_at", "story_title", "difficulty", "scope", "last_n", "matched", "total", "wer", "attempt_text", "reference_text"])
            for r in rows:
                w.writerow([r["id"], r["created_at"], r["story_title"], r["difficulty"], r["scope"], r["last_n"],
                            r["matched"], r["total"], r["wer"], r["attempt_text"], r["reference_text"]])
        messagebox.showinfo("Export", "CSV exported.", parent=self)

    def export_pdf(self):
        path = filedialog.asksaveasfilename(defaultextension=".pdf", filetypes=[("PDF", "*.pdf")], title="Export PDF",
                                            initialdir=ensure_dir(EXPORT_DIR), parent=self)
        if not path:
            return
        n = build_recall_history_pdf(path, self.dl.fetch_attempts(limit=100000))
        messagebox.showinfo("Export", f"PDF exported ({n} attempts).", parent=self)
