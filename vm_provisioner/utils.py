import sys
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Return current UTC time as ISO format string with timezone info."""
    return utc_now().isoformat()


def seconds_since(moment: Optional[datetime], now: Optional[datetime] = None) -> float:
    """
    Seconds elapsed between ``moment`` and ``now`` (defaults to wall-clock UTC).

    Naive datetimes are treated as UTC. A missing moment counts as "just now".
    """
    if moment is None:
        return 0.0
    now = now or utc_now()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (now - moment).total_seconds()


UNICODE_FALLBACKS = {
    "\u2713": "[OK]",   # ✓
    "\u2717": "[X]",    # ✗
    "\u2026": "...",    # …
    "\u2013": "-",      # –
    "\u2014": "-",      # —
    "\u2192": "->",     # →
}


def _normalize_unicode(text: str) -> str:
    """Replace problematic Unicode characters with ASCII equivalents."""
    for bad, repl in UNICODE_FALLBACKS.items():
        text = text.replace(bad, repl)
    return text


def _safe_to_stdout(text: str) -> str:
    """Ensure text can be encoded to stdout without exceptions."""
    enc = getattr(sys.stdout, "encoding", None) or "utf-8"
    try:
        return text.encode(enc, errors="replace").decode(enc, errors="replace")
    except Exception:
        return text.encode("ascii", errors="replace").decode("ascii", errors="replace")
