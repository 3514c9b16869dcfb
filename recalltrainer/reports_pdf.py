from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import cm
from reportlab.pdfgen import canvas


def _safe(v, default=""):
    return v if v is not None else default


def _row_to_dict(row: Any) -> Dict[str, Any]:
    """Normalize a recall_attempts row (sqlite3.Row or dict) into a dict."""
    if isinstance(row, dict):
        return row
    try:
        return {k: row[k] for k in row.keys()}
    except (AttributeError, TypeError):
        return {}


def _accuracy(r: Dict[str, Any]) -> Optional[float]:
    try:
        total = int(r.get("total") or 0)
        if total <= 0:
            return None
        return int(r.get("matched") or 0) / float(total)
    except (TypeError, ValueError):
        return None


def _sparkline(c: canvas.Canvas, x: float, y: float, w: float, h: float, values: List[float]):
    """Draw a tiny line chart (0..1) inside the box whose bottom-left is (x,y)."""
    if not values:
        c.setFont("Helvetica", 9)
        c.drawString(x, y + h / 2, "-")
        return

    vals = [max(0.0, min(1.0, float(v))) for v in values]
    n = len(vals)
    if n == 1:
        pts = [(x + w / 2, y + vals[0] * h)]
    else:
        dx = w / (n - 1)
        pts = [(x + i * dx, y + vals[i] * h) for i in range(n)]

    c.rect(x, y, w, h, stroke=1, fill=0)
    c.setLineWidth(1)
    for i in range(1, len(pts)):
        c.line(pts[i - 1][0], pts[i - 1][1], pts[i][0], pts[i][1])


def _clip(text: str, max_chars: int) -> str:
    text = " ".join(str(text or "").split())
    return text if len(text) <= max_chars else text[: max_chars - 3] + "..."


def build_recall_history_pdf(filepath: str, rows: List[Any], created_at: Optional[str] = None) -> int:
    """One PDF listing recall attempts (newest first) with an accuracy trend.

    Returns the number of attempts written.
    """
    items = [_row_to_dict(r) for r in rows or []]
    c = canvas.Canvas(filepath, pagesize=A4)
    W, H = A4
    margin = 2 * cm
    created_at = created_at or datetime.now().strftime("%Y-%m-%d %H:%M")

    c.setFont("Helvetica-Bold", 16)
    c.drawString(margin, H - margin, "Recall history")
    c.setFont("Helvetica", 9)
    c.drawString(margin, H - margin - 14, f"Generated {created_at} - {len(items)} attempt(s)")

    accs = [a for a in (_accuracy(r) for r in reversed(items)) if a is not None]
    if accs:
        avg = sum(accs) / len(accs)
        c.drawString(margin, H - margin - 28, f"Average accuracy: {avg:.0%}")
    _sparkline(c, W - margin - 6 * cm, H - margin - 1.2 * cm, 6 * cm, 1.2 * cm, accs[-30:])

    y = H - margin - 2.4 * cm
    c.setFont("Helvetica-Bold", 9)
    for x, label in ((0, "Date"), (3.6, "Story"), (8.6, "Scope"), (10.4, "Score"), (12.2, "WER"), (13.6, "Attempt")):
        c.drawString(margin + x * cm, y, label)
    y -= 14

    c.setFont("Helvetica", 8)
    for r in items:
        if y < margin:
            c.showPage()
            c.setFont("Helvetica", 8)
            y = H - margin
        scope = _safe(r.get("scope"))
        if scope == "partial" and r.get("last_n"):
            scope = f"last {r.get('last_n')}"
        wer = r.get("wer")
        c.drawString(margin, y, _clip(_safe(r.get("created_at")), 19))
        c.drawString(margin + 3.6 * cm, y, _clip(_safe(r.get("story_title")), 28))
        c.drawString(margin + 8.6 * cm, y, _clip(scope, 10))
        c.drawString(margin + 10.4 * cm, y, f"{_safe(r.get('matched'), 0)}/{_safe(r.get('total'), 0)}")
        c.drawString(margin + 12.2 * cm, y, f"{float(wer):.2f}" if wer is not None else "-")
        c.drawString(margin + 13.6 * cm, y, _clip(_safe(r.get("attempt_text")), 34))
        y -= 12

    c.save()
    return len(items)
