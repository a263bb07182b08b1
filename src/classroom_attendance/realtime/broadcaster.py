"""Scoped fan-out of session and admission events.

Subscribers join one room per identity (``faculty_<id>`` or ``student_<id>``)
after proving that identity with a bearer token. Delivery is best-effort: there
is no queue and no replay, a subscriber that is not connected misses the event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from ..attendance.model import AttendanceRecord
from ..auth.tokens import TokenService
from ..common.clock import Clock, to_iso
from ..core.enums import EventType, Role
from ..core.exceptions import AuthorizationFailed
from ..sessions.model import Session, SessionDescriptor
from .transport import Transport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Scope:
    role: Role
    identity: str

    @property
    def room(self) -> str:
        # Raw id after a fixed prefix: distinct identities never share a room.
        return f"{self.role.value}_{self.identity}"

    def __str__(self) -> str:
        return f"{self.role.value}:{self.identity}"


def faculty_scope(faculty_id: str) -> Scope:
    return Scope(Role.FACULTY, str(faculty_id))


def student_scope(student_id: str) -> Scope:
    return Scope(Role.STUDENT, str(student_id))


class EventBroadcaster:
    def __init__(self, transport: Transport, tokens: TokenService, clock: Clock):
        self._transport = transport
        self._tokens = tokens
        self._clock = clock

    # -- subscriptions -----------------------------------------------------

    def register(self, sid: str, role: Role, claimed_id: Optional[str], token: Optional[str]) -> Scope:
        """Join ``sid`` to the room of the identity proven by ``token``.

        Raises ``AuthenticationError`` for a bad token and ``AuthorizationFailed``
        when the token belongs to someone other than the claimed identity.
        """
        identity = self._tokens.verify(token)
        effective_id = claimed_id if isinstance(claimed_id, str) and claimed_id else identity.user_id

        if identity.role != role or identity.user_id != effective_id:
            logger.warning(
                "Subscription rejected: token for %s:%s claimed %s:%s",
                identity.role.value,
                identity.user_id,
                role.value,
                effective_id,
            )
            raise AuthorizationFailed("Authorization failed")

        scope = Scope(role, effective_id)
        self._transport.join(sid, scope.room)
        logger.info("Subscriber %s joined %s", sid, scope.room)
        return scope

    def unregister(self, sid: str, role: Role, claimed_id: str) -> None:
        if not claimed_id:
            return
        scope = Scope(role, str(claimed_id))
        self._transport.leave(sid, scope.room)
        logger.info("Subscriber %s left %s", sid, scope.room)

    # -- delivery ------------------------------------------------------------

    def publish(self, event: EventType, payload: dict[str, Any], scopes: Iterable[Scope]) -> int:
        delivered = 0
        for scope in scopes:
            try:
                self._transport.emit(event.value, payload, scope.room)
                delivered += 1
            except Exception:
                # Fire-and-forget: a broken subscriber channel must not fail the caller.
                logger.warning("Dropped %s for %s", event.value, scope, exc_info=True)
        return delivered

    def session_created(self, descriptor: SessionDescriptor, enrolled_student_ids: Iterable[str]) -> None:
        payload = descriptor.to_dict()
        self.publish(EventType.SESSION_CREATED, payload, [faculty_scope(descriptor.faculty_id)])

        students = list(enrolled_student_ids)
        if not students:
            return
        notification = dict(payload)
        notification["message"] = f"New QR code available for {descriptor.subject}"
        notification["timestamp"] = to_iso(self._clock.now())
        sent = self.publish(EventType.QR_AVAILABLE, notification, [student_scope(s) for s in students])
        logger.info("Notified %d/%d enrolled students about %s", sent, len(students), descriptor.subject)

    def session_regenerated(self, descriptor: SessionDescriptor) -> None:
        self.publish(EventType.SESSION_REGENERATED, descriptor.to_dict(), [faculty_scope(descriptor.faculty_id)])

    def session_ended(self, session: Session) -> None:
        payload = {
            "sessionId": session.session_id,
            "facultyId": session.faculty_id,
            "subject": session.subject,
            "room": session.room,
            "endedAt": to_iso(session.ended_at) if session.ended_at else None,
        }
        self.publish(EventType.SESSION_ENDED, payload, [faculty_scope(session.faculty_id)])

    def attendance_marked(self, session: Session, record: AttendanceRecord) -> None:
        payload = record.to_dict()
        payload["subject"] = session.subject
        payload["room"] = session.room
        self.publish(
            EventType.ATTENDANCE_MARKED,
            payload,
            [faculty_scope(session.faculty_id), student_scope(record.student_id)],
        )
