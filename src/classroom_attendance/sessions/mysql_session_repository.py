from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..common.clock import as_utc
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, naive_utc
from .model import GeoFence, Session
from .repository import SessionRepository

_COLUMNS = """
    session_id, faculty_id, subject, room, created_at, expires_at,
    geo_required, latitude, longitude, radius_meters, ended_at
"""


def _to_session(r: dict[str, Any]) -> Session:
    location = None
    if r.get("latitude") is not None and r.get("longitude") is not None:
        location = GeoFence(
            latitude=float(r["latitude"]),
            longitude=float(r["longitude"]),
            radius_meters=float(r.get("radius_meters") or 0),
        )
    return Session(
        session_id=r["session_id"],
        faculty_id=r["faculty_id"],
        subject=r["subject"],
        room=r["room"],
        created_at=as_utc(r["created_at"]),
        expires_at=as_utc(r["expires_at"]),
        geo_required=bool(r.get("geo_required")),
        location=location,
        ended_at=as_utc(r["ended_at"]) if r.get("ended_at") else None,
    )


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, session: Session) -> None:
        loc = session.location
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO sessions(
                    session_id, faculty_id, subject, room, created_at, expires_at,
                    geo_required, latitude, longitude, radius_meters
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    session.session_id,
                    session.faculty_id,
                    session.subject,
                    session.room,
                    naive_utc(session.created_at),
                    naive_utc(session.expires_at),
                    1 if session.geo_required else 0,
                    loc.latitude if loc else None,
                    loc.longitude if loc else None,
                    loc.radius_meters if loc else None,
                ),
            )

    def get_by_id(self, session_id: str) -> Optional[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM sessions WHERE session_id=%s", (session_id,))
            r = fetchone(cur)
            return _to_session(r) if r else None

    def update_expiry(self, *, session_id: str, expires_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE sessions SET expires_at=%s WHERE session_id=%s AND ended_at IS NULL",
                (naive_utc(expires_at), session_id),
            )
            return cur.rowcount > 0

    def mark_ended(self, *, session_id: str, ended_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE sessions SET ended_at=%s WHERE session_id=%s AND ended_at IS NULL",
                (naive_utc(ended_at), session_id),
            )
            return cur.rowcount > 0

    def list_for_faculty(self, faculty_id: str, limit: int) -> Sequence[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM sessions
                WHERE faculty_id=%s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (faculty_id, int(limit)),
            )
            return [_to_session(r) for r in fetchall(cur)]
