from __future__ import annotations

from urllib.parse import urlencode

from .model import Session


def build_check_in_url(base_url: str, session: Session) -> str:
    """URL encoded into the QR code; the student page reads ``session`` from it."""
    query = urlencode({"session": session.session_id, "subject": session.subject, "room": session.room})
    return f"{base_url.rstrip('/')}/checkin.html?{query}"
