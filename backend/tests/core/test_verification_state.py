"""Verification Session — tests for the pure per-(member, scope) state machine.

Tests cover:
    - Initial state and deadlines per wait-state
    - Proof window fixed at first AWAIT_PROOF entry (never extended by retries)
    - Manual prompt deadline capped by the proof window
    - Event acceptance table (CHECKING and TERMINAL accept nothing)
    - CHECKING stall deadline backstops a check or handoff that never returns
    - Cancel wins over an elapsed deadline; otherwise TimedOut
"""

from datetime import datetime, timedelta, timezone

import pytest

from gatekeeper.core.domain_types import (
    MemberId, ScopeId, TerminalOutcome, Verdict, VerificationState,
)
from gatekeeper.core.errors import InvalidTransitionError
from gatekeeper.core.evaluate_requirements import EvaluationResult
from gatekeeper.core.verification_state import (
    Canceled, ManualConsent, NameSelected, ProofCheckRequested, SessionTimeouts,
    TimedOut, new_session,
)

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
TIMEOUTS = SessionTimeouts()


def _session(is_main: bool = True):
    return new_session(MemberId("42"), ScopeId("MAIN"), is_main, T0, TIMEOUTS)


def _in_proof(now=T0):
    session = _session()
    session.enter_proof("Alice", "CODE", ["No Requirements."], now, TIMEOUTS)
    return session


def _manual_result() -> EvaluationResult:
    return EvaluationResult(name="Alice", verdict=Verdict.MANUAL)


# ─── Entry ───────────────────────────────────────────────────────

def test_new_session_waits_for_name_with_two_minute_deadline():
    session = _session()
    assert session.state == VerificationState.AWAIT_NAME_SELECTION
    assert session.deadline == T0 + timedelta(minutes=2)
    assert session.expires_at is None
    assert session.key == ("42", "MAIN")


def test_enter_proof_sets_twenty_minute_window():
    session = _in_proof()
    assert session.state == VerificationState.AWAIT_PROOF
    assert session.expires_at == T0 + timedelta(minutes=20)
    assert session.deadline == session.expires_at
    assert session.proof_code == "CODE"


def test_proof_window_is_not_extended_by_retries():
    session = _in_proof()
    session.begin_check(T0, TIMEOUTS)
    session.return_to_proof([])
    session.enter_proof("Alice", "CODE2", [], T0 + timedelta(minutes=10), TIMEOUTS)
    assert session.expires_at == T0 + timedelta(minutes=20)
    assert session.deadline == T0 + timedelta(minutes=20)


# ─── Transitions ─────────────────────────────────────────────────

def test_checking_accepts_no_user_events():
    session = _in_proof()
    session.begin_check(T0, TIMEOUTS)
    assert session.state == VerificationState.CHECKING
    for event in (ProofCheckRequested(), Canceled(), NameSelected("Bob"), ManualConsent(True)):
        assert not session.accepts(event)
    with pytest.raises(InvalidTransitionError):
        session.require(Canceled())


def test_check_requires_await_proof():
    with pytest.raises(InvalidTransitionError):
        _session().begin_check(T0, TIMEOUTS)


def test_manual_prompt_deadline_is_consent_timeout():
    session = _in_proof()
    session.begin_check(T0, TIMEOUTS)
    session.enter_manual_prompt(_manual_result(), T0 + timedelta(minutes=1), TIMEOUTS)
    assert session.state == VerificationState.MANUAL_PROMPT
    assert session.deadline == T0 + timedelta(minutes=3)


def test_manual_prompt_deadline_capped_by_proof_window():
    session = _in_proof()
    session.begin_check(T0, TIMEOUTS)
    session.enter_manual_prompt(_manual_result(), T0 + timedelta(minutes=19), TIMEOUTS)
    assert session.deadline == T0 + timedelta(minutes=20)


def test_escalation_requires_manual_prompt():
    session = _in_proof()
    with pytest.raises(InvalidTransitionError):
        session.begin_escalation(True, T0, TIMEOUTS)


def test_escalation_enters_checking():
    session = _in_proof()
    session.begin_check(T0, TIMEOUTS)
    session.enter_manual_prompt(_manual_result(), T0, TIMEOUTS)
    session.begin_escalation(True, T0, TIMEOUTS)
    assert session.state == VerificationState.CHECKING


def test_finish_sets_outcome_once():
    session = _in_proof()
    session.finish(TerminalOutcome.CANCELED)
    assert session.is_terminal
    assert session.outcome == TerminalOutcome.CANCELED
    with pytest.raises(InvalidTransitionError):
        session.finish(TerminalOutcome.TIMED_OUT)
    assert session.outcome == TerminalOutcome.CANCELED


def test_terminal_accepts_nothing():
    session = _in_proof()
    session.finish(TerminalOutcome.SUCCESS)
    assert not session.accepts(Canceled())
    assert not session.accepts(TimedOut())


# ─── Deadlines ───────────────────────────────────────────────────

def test_expiry_applies_to_wait_states():
    session = _in_proof()
    assert not session.is_expired(T0 + timedelta(minutes=19))
    assert session.is_expired(T0 + timedelta(minutes=21))


def test_checking_expires_after_stall_timeout():
    session = _in_proof()
    session.begin_check(T0, TIMEOUTS)
    assert session.deadline == T0 + timedelta(minutes=5)
    assert not session.is_expired(T0 + timedelta(minutes=4))
    assert session.is_expired(T0 + timedelta(minutes=5))
    assert isinstance(session.effective_event(Canceled(), T0 + timedelta(minutes=6)), TimedOut)


def test_terminal_session_never_expires():
    session = _in_proof()
    session.finish(TerminalOutcome.CANCELED)
    assert not session.is_expired(T0 + timedelta(hours=1))


def test_cancel_wins_over_elapsed_deadline():
    session = _session()
    late = T0 + timedelta(minutes=5)
    assert isinstance(session.effective_event(Canceled(), late), Canceled)


def test_other_events_after_deadline_become_timed_out():
    session = _session()
    late = T0 + timedelta(minutes=5)
    assert isinstance(session.effective_event(NameSelected("Alice"), late), TimedOut)


def test_events_before_deadline_pass_through():
    session = _session()
    event = NameSelected("Alice")
    assert session.effective_event(event, T0 + timedelta(seconds=30)) is event
