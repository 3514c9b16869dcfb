import tkinter as tk
from tkinter import ttk, messagebox, filedialog, simpledialog
from typing import Callable, Optional

from recalltrainer.config import EXPORT_DIR
from recalltrainer.utils_paths import ensure_dir


class WordNoteEditor(tk.Toplevel):
    """Small editor opened by clicking a flashed word."""

    def __init__(self, master, notes, word_key: str, on_saved: Optional[Callable[[], None]] = None):
        super().__init__(master)
        self.title(f"Note: {word_key}")
        self.resizable(False, False)
        self.bind("<Escape>", lambda e: self.destroy())
        self.notes = notes
        self.word_key = word_key
        self.on_saved = on_saved

        frm = ttk.Frame(self)
        frm.pack(fill="both", expand=True, padx=10, pady=10)

        ttk.Label(frm, text="Category:").grid(row=0, column=0, sticky="w")
        cats = notes.categories()
        self.var_cat = tk.StringVar(value=notes.category_of(word_key) or (cats[0] if cats else ""))
        ttk.Combobox(frm, textvariable=self.var_cat, values=cats, state="readonly", width=24).grid(row=0, column=1, sticky="w", pady=2)

        ttk.Label(frm, text="Description:").grid(row=1, column=0, sticky="w")
        self.var_desc = tk.StringVar(value=notes.lookup(word_key) or "")
        ent = ttk.Entry(frm, textvariable=self.var_desc, width=36)
        ent.grid(row=1, column=1, sticky="w", pady=2)
        ent.focus_set()
        ent.bind("<Return>", lambda e: self.save())

        ttk.Button(frm, text="Save", command=self.save).grid(row=2, column=1, sticky="e", pady=(8, 0))

    def save(self):
        try:
            self.notes.upsert(self.var_cat.get(), self.word_key, self.var_desc.get())
        except ValueError as e:
            messagebox.showwarning("Notes", str(e), parent=self)
            return
        self.destroy()
        if self.on_saved:
            self.on_saved()


class NotesDialog(tk.Toplevel):
    def __init__(self, master, notes):
        super().__init__(master)
        self.title("Memory notes")
        self.geometry("720x520")
        self.bind("<Escape>", lambda e: self.destroy())
        self.notes = notes

        top = ttk.Frame(self)
        top.pack(fill="x", padx=10, pady=8)
        ttk.Button(top, text="New category...", command=self.add_category).pack(side="left")
        ttk.Button(top, text="Delete selected", command=self.delete_selected).pack(side="left", padx=6)
        ttk.Button(top, text="Export...", command=self.export_notes).pack(side="right")
        ttk.Button(top, text="Import...", command=self.import_notes).pack(side="right", padx=6)

        entry = ttk.LabelFrame(self, text="Add / update a word")
        entry.pack(fill="x", padx=10, pady=4)
        self.var_cat = tk.StringVar()
        self.cmb_cat = ttk.Combobox(entry, textvariable=self.var_cat, state="readonly", width=18)
        self.cmb_cat.pack(side="left", padx=6, pady=6)
        self.var_word = tk.StringVar()
        self.var_desc = tk.StringVar()
        ttk.Label(entry, text="Word:").pack(side="left")
        ttk.Entry(entry, textvariable=self.var_word, width=16).pack(side="left", padx=4)
        ttk.Label(entry, text="Description:").pack(side="left")
        ttk.Entry(entry, textvariable=self.var_desc, width=28).pack(side="left", padx=4)
        ttk.Button(entry, text="Add", command=self.add_entry).pack(side="left", padx=6)

        search = ttk.Frame(self)
        search.pack(fill="x", padx=10, pady=4)
        ttk.Label(search, text="Search:").pack(side="left")
        self.var_search = tk.StringVar()
        self.var_search.trace_add("write", lambda *_: self.refresh())
        ttk.Entry(search, textvariable=self.var_search, width=30).pack(side="left", padx=6)

        self.tree = ttk.Treeview(self, columns=("word", "desc"), show="tree headings")
        self.tree.heading("#0", text="Category")
        self.tree.heading("word", text="Word")
        self.tree.heading("desc", text="Description")
        self.tree.column("#0", width=160)
        self.tree.column("word", width=160)
        self.tree.column("desc", width=360)
        self.tree.pack(fill="both", expand=True, padx=10, pady=(4, 10))

        self.refresh()

    def refresh(self):
        for i in self.tree.get_children():
            self.tree.delete(i)

        cats = self.notes.categories()
        self.cmb_cat.config(values=cats)
        if self.var_cat.get() not in cats:
            self.var_cat.set(cats[0] if cats else "")

        query = self.var_search.get().strip()
        if query:
            for cat, n in self.notes.search(query):
                self.tree.insert("", "end", text=cat, values=(n.word, n.desc or "(no description)"))
            return

        for cat in cats:
            parent = self.tree.insert("", "end", iid=f"cat:{cat}", text=cat, open=False)
            for idx, n in enumerate(self.notes.notes(cat)):
                self.tree.insert(parent, "end", iid=f"note:{cat}:{idx}", values=(n.word, n.desc))

    def add_category(self):
        name = simpledialog.askstring("New category", "Category name:", parent=self)
        if name is None:
            return
        try:
            self.var_cat.set(self.notes.add_category(name))
        except ValueError as e:
            messagebox.showwarning("Notes", str(e), parent=self)
        self.refresh()

    def add_entry(self):
        word = self.var_word.get().strip()
        try:
            previous = self.notes.upsert(self.var_cat.get(), word, self.var_desc.get())
        except ValueError as e:
            messagebox.showwarning("Notes", str(e), parent=self)
            return
        if previous is not None:
            messagebox.showinfo(
                "Notes", f'Word "{word}" already existed with description: {previous or "(none)"}', parent=self
            )
        self.var_word.set("")
        self.var_desc.set("")
        self.refresh()

    def delete_selected(self):
        sel = self.tree.selection()
        if not sel or not sel[0].startswith("note:"):
            messagebox.showwarning("Notes", "Select a word to delete.", parent=self)
            return
        cat, idx = sel[0][len("note:"):].rsplit(":", 1)
        self.notes.delete(cat, int(idx))
        self.refresh()

    def export_notes(self):
        path = filedialog.asksaveasfilename(
            defaultextension=".json", initialfile="memory_notes.json",
            filetypes=[("JSON", "*.json")], title="Export notes",
            initialdir=ensure_dir(EXPORT_DIR), parent=self,
        )
        if not path:
            return
        self.notes.export_json(path)
        messagebox.showinfo("Export", "Notes exported.", parent=self)

    def import_notes(self):
        path = filedialog.askopenfilename(filetypes=[("JSON", "*.json")], title="Import notes", parent=self)
        if not path:
            return
        try:
            self.notes.import_json(path)
        except (OSError, ValueError):
            messagebox.showerror("Import", "Invalid file format.", parent=self)
            return
        self.refresh()
        messagebox.showinfo("Import", "Notes imported successfully!", parent=self)
