"""Verification Session — per-(member, scope) finite state machine.

Invariants:
    - One deadline per wait-state, fixed at state entry (wall clock, UTC)
    - expires_at (proof window) is set once on first AWAIT_PROOF entry and never extended
    - MANUAL_PROMPT deadline = min(entry + consent timeout, expires_at)
    - Canceled is accepted in every wait-state and wins over an elapsed deadline
    - CHECKING accepts no user events; it covers one check request or one escalation
      handoff. Its deadline is entry + check_stall, so a handoff that never resolves
      still times out and frees the key
    - TERMINAL accepts nothing; outcome is set exactly once

Design Decisions:
    - Explicit dispatch table (ACCEPTED_EVENTS) over nested callbacks: every
      "prompt, then wait for one of several answers or a timeout" is one state
    - Dataclass with transition methods: pure state mutation, no IO. The shell
      (services/verification_runner.py) performs fetches and side effects
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from gatekeeper.core.domain_types import (
    Disposition, MemberId, ScopeId, TerminalOutcome, VerificationState,
)
from gatekeeper.core.errors import ErrorContext, InvalidTransitionError
from gatekeeper.core.evaluate_requirements import EvaluationResult
from gatekeeper.core.requirement_rules import Issue


# ─── Events ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class NameSelected:
    name: str


@dataclass(frozen=True)
class ProofCheckRequested:
    pass


@dataclass(frozen=True)
class ManualConsent:
    accepted: bool


@dataclass(frozen=True)
class Canceled:
    pass


@dataclass(frozen=True)
class TimedOut:
    pass


@dataclass(frozen=True)
class ModeratorDisposed:
    """Consumed by the manual review coordinator, never by a live session."""
    entry_id: UUID
    moderator_id: str
    disposition: Disposition


SessionEvent = NameSelected | ProofCheckRequested | ManualConsent | Canceled | TimedOut

WAIT_STATES = frozenset({
    VerificationState.AWAIT_NAME_SELECTION,
    VerificationState.AWAIT_PROOF,
    VerificationState.MANUAL_PROMPT,
})

DEADLINE_STATES = WAIT_STATES | {VerificationState.CHECKING}

ACCEPTED_EVENTS: dict[VerificationState, tuple[type, ...]] = {
    VerificationState.AWAIT_NAME_SELECTION: (NameSelected, Canceled, TimedOut),
    VerificationState.AWAIT_PROOF: (ProofCheckRequested, Canceled, TimedOut),
    VerificationState.CHECKING: (),
    VerificationState.MANUAL_PROMPT: (ManualConsent, Canceled, TimedOut),
    VerificationState.TERMINAL: (),
}


@dataclass(frozen=True)
class SessionTimeouts:
    name_selection: timedelta = timedelta(minutes=2)
    proof_window: timedelta = timedelta(minutes=20)
    manual_consent: timedelta = timedelta(minutes=2)
    check_stall: timedelta = timedelta(minutes=5)


# ─── Session ─────────────────────────────────────────────────────

@dataclass
class VerificationSession:
    """In-memory session. Lost on restart; a member simply starts again."""

    member_id: MemberId
    scope_id: ScopeId
    is_main_scope: bool
    state: VerificationState
    created_at: datetime
    deadline: datetime
    expires_at: datetime | None = None

    # Name negotiation
    name_options: list[str] = field(default_factory=list)
    candidate_name: str | None = None

    # Proof step
    proof_code: str | None = None
    requirements: list[str] = field(default_factory=list)
    issues: list[Issue] = field(default_factory=list)
    last_result: EvaluationResult | None = None

    # Terminal
    outcome: TerminalOutcome | None = None
    moderation_id: str | None = None

    @property
    def key(self) -> tuple[MemberId, ScopeId]:
        return (self.member_id, self.scope_id)

    @property
    def is_terminal(self) -> bool:
        return self.state == VerificationState.TERMINAL

    def is_expired(self, now: datetime) -> bool:
        return self.state in DEADLINE_STATES and now >= self.deadline

    def accepts(self, event: object) -> bool:
        return isinstance(event, ACCEPTED_EVENTS[self.state])

    def require(self, event: object) -> None:
        """Raise InvalidTransitionError unless the current state accepts event."""
        if not self.accepts(event):
            raise InvalidTransitionError(
                self.state.value, type(event).__name__,
                ErrorContext(member_id=self.member_id, scope_id=self.scope_id),
            )

    def effective_event(self, event: object, now: datetime) -> object:
        """Resolve a user event against the deadline: cancel wins, otherwise TimedOut."""
        if isinstance(event, Canceled) and self.state in WAIT_STATES:
            return event
        if self.is_expired(now):
            return TimedOut()
        return event

    # ─── Transitions ─────────────────────────────────────────────

    def enter_proof(
        self, name: str, proof_code: str, requirements: list[str],
        now: datetime, timeouts: SessionTimeouts,
    ) -> None:
        self.candidate_name = name
        self.proof_code = proof_code
        self.requirements = list(requirements)
        if self.expires_at is None:
            self.expires_at = now + timeouts.proof_window
        self.deadline = self.expires_at
        self.state = VerificationState.AWAIT_PROOF

    def begin_check(self, now: datetime, timeouts: SessionTimeouts) -> None:
        self.require(ProofCheckRequested())
        self.deadline = now + timeouts.check_stall
        self.state = VerificationState.CHECKING

    def begin_escalation(self, accepted: bool, now: datetime, timeouts: SessionTimeouts) -> None:
        self.require(ManualConsent(accepted))
        self.deadline = now + timeouts.check_stall
        self.state = VerificationState.CHECKING

    def return_to_proof(self, issues: list[Issue], result: EvaluationResult | None = None) -> None:
        """Back to AWAIT_PROOF with issues; the proof window is unchanged."""
        self.issues = list(issues)
        self.last_result = result
        self.deadline = self.expires_at or self.deadline
        self.state = VerificationState.AWAIT_PROOF

    def enter_manual_prompt(
        self, result: EvaluationResult, now: datetime, timeouts: SessionTimeouts,
    ) -> None:
        self.last_result = result
        self.issues = list(result.manual_issues)
        consent_deadline = now + timeouts.manual_consent
        if self.expires_at is not None:
            consent_deadline = min(consent_deadline, self.expires_at)
        self.deadline = consent_deadline
        self.state = VerificationState.MANUAL_PROMPT

    def finish(self, outcome: TerminalOutcome, issues: list[Issue] | None = None) -> None:
        if self.is_terminal:
            raise InvalidTransitionError(self.state.value, outcome.value)
        if issues is not None:
            self.issues = list(issues)
        self.outcome = outcome
        self.state = VerificationState.TERMINAL


def new_session(
    member_id: MemberId,
    scope_id: ScopeId,
    is_main_scope: bool,
    now: datetime,
    timeouts: SessionTimeouts,
    name_options: list[str] | None = None,
) -> VerificationSession:
    """Create a session in AWAIT_NAME_SELECTION (main) or a placeholder for sub-scopes.

    Sub-scope sessions must be moved to AWAIT_PROOF with enter_proof before
    being registered.
    """
    return VerificationSession(
        member_id=member_id,
        scope_id=scope_id,
        is_main_scope=is_main_scope,
        state=VerificationState.AWAIT_NAME_SELECTION,
        created_at=now,
        deadline=now + timeouts.name_selection,
        name_options=list(name_options or []),
    )
