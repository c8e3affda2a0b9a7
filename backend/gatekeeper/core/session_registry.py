"""Session Registry — at most one active VerificationSession per (member, scope).

Invariants:
    - create() is check-and-insert with no await in between: atomic under asyncio
    - A rejected create() leaves the existing session untouched
    - remove(..., expected=s) never evicts a newer session that took over the key
    - Terminal sessions are removed by the shell; the registry never holds them long
    - expired(now) lists sessions whose wait-state deadline has passed

Design Decisions:
    - Plain dict owned by an injected instance, not module-level global state
      (ADR: single-process uvicorn, sessions are not durable)
"""

from datetime import datetime

from gatekeeper.core.domain_types import MemberId, ScopeId, SessionKey
from gatekeeper.core.errors import ErrorContext, SessionConflictError
from gatekeeper.core.verification_state import VerificationSession


class SessionRegistry:
    def __init__(self) -> None:
        self._sessions: dict[SessionKey, VerificationSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, key: SessionKey) -> bool:
        return key in self._sessions

    def create(self, session: VerificationSession) -> VerificationSession:
        """Insert session, or raise SessionConflictError if the key is occupied."""
        key = session.key
        if key in self._sessions:
            raise SessionConflictError(
                session.member_id, session.scope_id,
                ErrorContext(member_id=session.member_id, scope_id=session.scope_id),
            )
        self._sessions[key] = session
        return session

    def get(self, member_id: MemberId, scope_id: ScopeId) -> VerificationSession | None:
        return self._sessions.get((member_id, scope_id))

    def remove(
        self, member_id: MemberId, scope_id: ScopeId,
        expected: VerificationSession | None = None,
    ) -> VerificationSession | None:
        """Pop the key. With expected, only if that exact session still holds it."""
        key = (member_id, scope_id)
        if expected is not None and self._sessions.get(key) is not expected:
            return None
        return self._sessions.pop(key, None)

    def remove_member(self, member_id: MemberId) -> list[VerificationSession]:
        keys = [key for key in self._sessions if key[0] == member_id]
        return [self._sessions.pop(key) for key in keys]

    def remove_scope(self, scope_id: ScopeId) -> list[VerificationSession]:
        keys = [key for key in self._sessions if key[1] == scope_id]
        return [self._sessions.pop(key) for key in keys]

    def active(self) -> list[VerificationSession]:
        return list(self._sessions.values())

    def expired(self, now: datetime) -> list[VerificationSession]:
        return [s for s in self._sessions.values() if s.is_expired(now)]
