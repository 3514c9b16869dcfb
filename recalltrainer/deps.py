from __future__ import annotations

import importlib
from typing import Dict, Tuple

# module -> what stops working without it
RUNTIME_MODULES: Dict[str, str] = {
    "rapidfuzz": "recall scoring (typo tolerance)",
    "jiwer": "word error rate in the recall history",
    "pyttsx3": "narration (Windows falls back to System.Speech)",
    "reportlab": "PDF export of the recall history",
}


def _probe(mod: str) -> Tuple[bool, str]:
    try:
        importlib.import_module(mod)
    except Exception as e:
        return False, f"{type(e).__name__}: {e}"
    return True, ""


def check_dependencies(modules: Dict[str, str] = RUNTIME_MODULES) -> Dict[str, Tuple[bool, str]]:
    """Import each runtime module; values are (ok, error detail)."""
    return {m: _probe(m) for m in modules}


def format_dependency_report(status: Dict[str, Tuple[bool, str]]) -> str:
    lines = []
    for mod, (ok, detail) in status.items():
        if ok:
            lines.append(f"[OK] {mod}")
            continue
        feature = RUNTIME_MODULES.get(mod)
        suffix = f" ({feature} unavailable)" if feature else ""
        lines.append(f"[MISSING] {mod}{suffix}: {detail}")
    return "\n".join(lines)
