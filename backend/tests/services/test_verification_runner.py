"""Verification Runner — session flows against fakes and an in-memory database.

Tests cover:
    - Entry guards: conflict, already verified, pending review, offline service, config
    - Main-scope flow: name selection → proof → check → SUCCESS with grant and name record
    - TRY_AGAIN paths keep the session in AWAIT_PROOF with an unchanged window
    - Blacklist hits end in FAIL with the moderation id
    - MANUAL prompt: accept escalates durably, decline fails, no destination fails
    - Cancel, timeouts and the deadline sweep (stalled checks included)
    - Overlapping requests: a session replaced or advanced mid-await is left alone
    - A crashing manual handoff fails the session instead of stranding it
    - Sub-scope flows (display-name candidate, no requirements)
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from gatekeeper.core.domain_types import (
    MemberId, ScopeId, TerminalOutcome, VerificationState,
)
from gatekeeper.core.errors import (
    AlreadyVerifiedError, ConfigError, ExternalUnavailableError, InvalidNameError,
    InvalidTransitionError, ManualReviewPendingError, NoCandidateNameError,
    ResourceNotFoundError, SessionConflictError,
)
from gatekeeper.models import BlacklistEntry
from gatekeeper.services.identity_store import IdentityStore
from gatekeeper.services.verification_runner import VerificationRunner
from tests.services.fakes import MAIN_ROLE, RAID_ROLE, REVIEW_CHANNEL, player


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return Clock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def runner(test_db, registry, profiles, gateway, timeouts, clock):
    return VerificationRunner(test_db, registry, profiles, gateway, timeouts, clock=clock)


async def _to_proof(runner, main_scope, name="Alice"):
    await runner.start("42", "MAIN")
    return await runner.select_name("42", "MAIN", name)


async def _set_policy(test_db, scope, policy: dict) -> None:
    await IdentityStore(test_db).set_policy(scope, policy)
    await test_db.commit()


# ─── Entry guards ────────────────────────────────────────────────

async def test_start_main_scope_waits_for_name(runner, main_scope, registry, gateway):
    session = await runner.start("42", "MAIN")
    assert session.state == VerificationState.AWAIT_NAME_SELECTION
    assert registry.get(MemberId("42"), ScopeId("MAIN")) is session
    assert gateway.messages_in("chan-started") == [
        "[Main] <@42> has started the verification process.",
    ]


async def test_start_offers_known_names(runner, main_scope, test_db):
    await IdentityStore(test_db).remember_name("42", "OldName")
    await test_db.commit()
    session = await runner.start("42", "MAIN")
    assert session.name_options == ["OldName"]


async def test_duplicate_start_is_rejected(runner, main_scope, registry):
    first = await runner.start("42", "MAIN")
    with pytest.raises(SessionConflictError):
        await runner.start("42", "MAIN")
    assert registry.get(MemberId("42"), ScopeId("MAIN")) is first
    assert first.state == VerificationState.AWAIT_NAME_SELECTION


async def test_start_when_already_verified(runner, main_scope, gateway, registry):
    gateway.roles.add(("42", MAIN_ROLE))
    with pytest.raises(AlreadyVerifiedError):
        await runner.start("42", "MAIN")
    assert len(registry) == 0


async def test_start_with_pending_review(runner, main_scope, test_db):
    await IdentityStore(test_db).add_manual_entry("42", "MAIN", "Alice", REVIEW_CHANNEL, "1")
    with pytest.raises(ManualReviewPendingError):
        await runner.start("42", "MAIN")


async def test_start_when_profile_service_offline(runner, main_scope, profiles, registry):
    profiles.online = False
    with pytest.raises(ExternalUnavailableError):
        await runner.start("42", "MAIN")
    assert len(registry) == 0


async def test_start_unknown_scope(runner):
    with pytest.raises(ResourceNotFoundError):
        await runner.start("42", "nope")


async def test_start_without_membership_role(runner, main_scope, test_db):
    main_scope.verified_role_id = None
    await test_db.commit()
    with pytest.raises(ConfigError):
        await runner.start("42", "MAIN")


# ─── Name selection ──────────────────────────────────────────────

async def test_invalid_name_keeps_waiting(runner, main_scope):
    await runner.start("42", "MAIN")
    with pytest.raises(InvalidNameError):
        await runner.select_name("42", "MAIN", "Alice123")
    assert runner.get_session("42", "MAIN").state == VerificationState.AWAIT_NAME_SELECTION


async def test_selected_name_issues_proof_code(runner, main_scope, gateway, clock):
    session = await _to_proof(runner, main_scope)
    assert session.state == VerificationState.AWAIT_PROOF
    assert session.candidate_name == "Alice"
    assert len(session.proof_code) == 15
    assert session.requirements == ["No Requirements."]
    assert session.expires_at == clock.now + timedelta(minutes=20)
    assert session.proof_code in gateway.messages_in("chan-step")[0]


async def test_name_registered_to_someone_else_fails(runner, main_scope, test_db, registry):
    await IdentityStore(test_db).remember_name("99", "Alice")
    await test_db.commit()
    session = await _to_proof(runner, main_scope)
    assert session.outcome == TerminalOutcome.FAIL
    assert len(registry) == 0


async def test_overlapping_name_selections_issue_one_proof_code(
    runner, main_scope, gateway, monkeypatch,
):
    await runner.start("42", "MAIN")
    owners = runner.store.name_owners

    async def selected_meanwhile(name):
        if name == "Alice":
            await runner.select_name("42", "MAIN", "Bob")
        return await owners(name)

    monkeypatch.setattr(runner.store, "name_owners", selected_meanwhile)
    with pytest.raises(InvalidTransitionError):
        await runner.select_name("42", "MAIN", "Alice")

    session = runner.get_session("42", "MAIN")
    assert session.state == VerificationState.AWAIT_PROOF
    assert session.candidate_name == "Bob"
    assert len(gateway.messages_in("chan-step")) == 1
    assert session.proof_code in gateway.messages_in("chan-step")[0]


# ─── Checks ──────────────────────────────────────────────────────

async def test_passing_check_grants_membership(runner, main_scope, profiles, gateway, test_db, registry):
    session = await _to_proof(runner, main_scope)
    profiles.add_player(player("Alice", session.proof_code))

    session = await runner.request_check("42", "MAIN")

    assert session.outcome == TerminalOutcome.SUCCESS
    assert ("42", MAIN_ROLE) in gateway.roles
    assert gateway.nicknames["42"] == "Alice"
    assert await IdentityStore(test_db).known_names("42") == ["Alice"]
    assert gateway.direct_messages and gateway.direct_messages[0][0] == "42"
    assert gateway.messages_in("chan-success")
    assert len(registry) == 0


async def test_missing_code_returns_to_proof(runner, main_scope, profiles, clock):
    session = await _to_proof(runner, main_scope)
    expires = session.expires_at
    profiles.add_player(player("Alice", "WRONGCODE"))
    clock.advance(minutes=5)

    session = await runner.request_check("42", "MAIN")

    assert session.state == VerificationState.AWAIT_PROOF
    assert [i.key for i in session.issues] == ["Verification Code Not Found"]
    assert session.expires_at == expires
    assert session.deadline == expires


async def test_unavailable_profile_is_try_again(runner, main_scope):
    await _to_proof(runner, main_scope)
    session = await runner.request_check("42", "MAIN")
    assert session.state == VerificationState.AWAIT_PROOF
    assert [i.key for i in session.issues] == ["Profile Unavailable"]


async def test_private_name_history_is_try_again(runner, main_scope, profiles):
    session = await _to_proof(runner, main_scope)
    profiles.add_player(player("Alice", session.proof_code))
    profiles.histories.pop("alice")
    session = await runner.request_check("42", "MAIN")
    assert [i.key for i in session.issues] == ["Name History Private"]


async def test_unexpected_error_is_try_again(runner, main_scope, profiles):
    await _to_proof(runner, main_scope)
    profiles.fail_with = RuntimeError("boom")
    session = await runner.request_check("42", "MAIN")
    assert session.state == VerificationState.AWAIT_PROOF
    assert [i.key for i in session.issues] == ["Unexpected Error"]


async def test_check_before_name_selection_is_rejected(runner, main_scope):
    await runner.start("42", "MAIN")
    with pytest.raises(InvalidTransitionError):
        await runner.request_check("42", "MAIN")


async def test_blacklisted_previous_name_fails_with_moderation_id(
    runner, main_scope, profiles, gateway, test_db, registry,
):
    test_db.add(BlacklistEntry(
        community_id="guild-1", name_lower="oldalice", moderation_id="MOD-1",
    ))
    await test_db.commit()
    session = await _to_proof(runner, main_scope)
    profiles.add_player(player("Alice", session.proof_code), history=("OldAlice",))

    session = await runner.request_check("42", "MAIN")

    assert session.outcome == TerminalOutcome.FAIL
    assert session.moderation_id == "MOD-1"
    assert "MOD-1" in gateway.direct_messages[-1][1]
    assert "MOD-1" in gateway.messages_in("chan-failure")[-1]
    assert ("42", MAIN_ROLE) not in gateway.roles
    assert len(registry) == 0


async def test_guild_mismatch_fails(runner, main_scope, profiles, test_db):
    await _set_policy(test_db, main_scope, {
        "check_requirements": True,
        "guild": {"enabled": True, "name": {"enabled": True, "value": "Paladins"}},
    })
    session = await _to_proof(runner, main_scope)
    profiles.add_player(player("Alice", session.proof_code))
    session = await runner.request_check("42", "MAIN")
    assert session.outcome == TerminalOutcome.FAIL
    assert [i.key for i in session.issues] == ["Not In Correct Guild"]



async def test_check_finishing_after_rejoin_leaves_new_session_alone(
    runner, main_scope, profiles, gateway, registry, monkeypatch,
):
    old = await _to_proof(runner, main_scope)
    snapshot = player("Alice", old.proof_code)
    profiles.add_player(snapshot)
    restarted = []

    async def departed_and_rejoined(name):
        registry.remove_member(MemberId("42"))
        restarted.append(await runner.start("42", "MAIN"))
        return snapshot

    monkeypatch.setattr(profiles, "get_player_info", departed_and_rejoined)
    await runner.request_check("42", "MAIN")

    assert registry.get(MemberId("42"), ScopeId("MAIN")) is restarted[0]
    assert restarted[0].state == VerificationState.AWAIT_NAME_SELECTION
    assert old.outcome is None
    assert ("42", MAIN_ROLE) not in gateway.roles
    assert gateway.messages_in("chan-success") == []


# ─── Manual review prompt ────────────────────────────────────────

async def _to_manual_prompt(runner, main_scope, profiles, test_db):
    await _set_policy(test_db, main_scope, {
        "check_requirements": True, "rank": {"enabled": True, "min": 100},
    })
    session = await _to_proof(runner, main_scope)
    profiles.add_player(player("Alice", session.proof_code, rank=5))
    return await runner.request_check("42", "MAIN")


async def test_manual_verdict_prompts_for_consent(runner, main_scope, profiles, test_db, clock):
    session = await _to_manual_prompt(runner, main_scope, profiles, test_db)
    assert session.state == VerificationState.MANUAL_PROMPT
    assert [i.key for i in session.issues] == ["Rank Too Low"]
    assert session.deadline == clock.now + timedelta(minutes=2)


async def test_accepting_manual_review_records_entry(
    runner, main_scope, profiles, gateway, test_db, registry,
):
    await _to_manual_prompt(runner, main_scope, profiles, test_db)

    session = await runner.manual_consent("42", "MAIN", True)

    assert session.outcome == TerminalOutcome.ESCALATED
    entry = await IdentityStore(test_db).get_manual_entry("42", "MAIN")
    assert entry is not None
    assert entry.candidate_name == "Alice"
    assert entry.queue_message_id is not None
    assert "Rank Too Low" in gateway.messages_in(REVIEW_CHANNEL)[0]
    assert len(registry) == 0


async def test_declining_manual_review_fails(runner, main_scope, profiles, test_db):
    await _to_manual_prompt(runner, main_scope, profiles, test_db)
    session = await runner.manual_consent("42", "MAIN", False)
    assert session.outcome == TerminalOutcome.FAIL
    assert await IdentityStore(test_db).get_manual_entry("42", "MAIN") is None


async def test_manual_without_review_channel_fails(runner, main_scope, profiles, test_db):
    main_scope.manual_review_channel_id = None
    await test_db.commit()
    session = await _to_manual_prompt(runner, main_scope, profiles, test_db)
    assert session.outcome == TerminalOutcome.FAIL
    assert [i.key for i in session.issues] == ["Rank Too Low"]



async def test_handoff_crash_fails_session_and_frees_key(
    runner, main_scope, profiles, gateway, test_db, registry, monkeypatch,
):
    await _to_manual_prompt(runner, main_scope, profiles, test_db)

    async def database_locked(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(runner.reviews, "escalate", database_locked)
    session = await runner.manual_consent("42", "MAIN", True)

    assert session.outcome == TerminalOutcome.FAIL
    assert len(registry) == 0
    assert "could not be recorded" in gateway.messages_in("chan-failure")[-1]
    again = await runner.start("42", "MAIN")
    assert again.state == VerificationState.AWAIT_NAME_SELECTION


# ─── Cancel and timeouts ─────────────────────────────────────────

async def test_cancel_in_proof_step(runner, main_scope, gateway, registry):
    await _to_proof(runner, main_scope)
    session = await runner.cancel("42", "MAIN")
    assert session.outcome == TerminalOutcome.CANCELED
    assert len(registry) == 0
    assert "canceled" in gateway.messages_in("chan-failure")[-1]


async def test_cancel_wins_over_elapsed_deadline(runner, main_scope, clock):
    await runner.start("42", "MAIN")
    clock.advance(minutes=10)
    session = await runner.cancel("42", "MAIN")
    assert session.outcome == TerminalOutcome.CANCELED


async def test_late_event_times_out(runner, main_scope, clock, registry):
    await runner.start("42", "MAIN")
    clock.advance(minutes=3)
    session = await runner.select_name("42", "MAIN", "Alice")
    assert session.outcome == TerminalOutcome.TIMED_OUT
    assert session.candidate_name is None
    assert len(registry) == 0


async def test_proof_window_is_not_extended_by_retries(runner, main_scope, clock):
    await _to_proof(runner, main_scope)
    clock.advance(minutes=15)
    await runner.request_check("42", "MAIN")
    clock.advance(minutes=6)
    session = await runner.request_check("42", "MAIN")
    assert session.outcome == TerminalOutcome.TIMED_OUT


async def test_expire_due_times_out_and_frees_key(runner, main_scope, clock, gateway, registry):
    await runner.start("42", "MAIN")
    clock.advance(minutes=3)

    expired = await runner.expire_due()

    assert [s.outcome for s in expired] == [TerminalOutcome.TIMED_OUT]
    assert len(registry) == 0
    assert "did not respond in time" in gateway.messages_in("chan-failure")[-1]
    session = await runner.start("42", "MAIN")
    assert session.state == VerificationState.AWAIT_NAME_SELECTION


async def test_expire_due_leaves_live_sessions(runner, main_scope, clock, registry):
    await runner.start("42", "MAIN")
    clock.advance(minutes=1)
    assert await runner.expire_due() == []
    assert len(registry) == 1


async def test_expire_due_collects_stalled_check(runner, main_scope, clock, gateway, registry):
    session = await _to_proof(runner, main_scope)
    session.begin_check(clock.now, runner.timeouts)
    clock.advance(minutes=4)
    assert await runner.expire_due() == []

    clock.advance(minutes=1)
    expired = await runner.expire_due()

    assert expired == [session]
    assert session.outcome == TerminalOutcome.TIMED_OUT
    assert "state: checking" in gateway.messages_in("chan-failure")[-1]
    assert len(registry) == 0


# ─── Sub-scopes ──────────────────────────────────────────────────

async def test_sub_scope_uses_display_name(runner, raid_scope, gateway):
    gateway.display_names["42"] = "Bob | nick"
    session = await runner.start("42", "raids")
    assert session.state == VerificationState.AWAIT_PROOF
    assert session.candidate_name == "Bob"
    assert session.requirements == ["At Least 10 Stars."]


async def test_sub_scope_without_candidate_name(runner, raid_scope, registry):
    with pytest.raises(NoCandidateNameError):
        await runner.start("42", "raids", display_name="~~~")
    assert len(registry) == 0


async def test_sub_scope_pass_does_not_set_nickname(runner, raid_scope, profiles, gateway):
    session = await runner.start("42", "raids", display_name="Bob")
    profiles.add_player(player("Bob", session.proof_code, rank=20))
    session = await runner.request_check("42", "raids")
    assert session.outcome == TerminalOutcome.SUCCESS
    assert ("42", RAID_ROLE) in gateway.roles
    assert "42" not in gateway.nicknames
    assert ("history", "Bob") not in profiles.calls


async def test_sub_scope_without_requirements_grants_immediately(
    runner, raid_scope, gateway, registry, test_db,
):
    await _set_policy(test_db, raid_scope, {"check_requirements": False})
    session = await runner.start("42", "raids", display_name="Bob")
    assert session.outcome == TerminalOutcome.SUCCESS
    assert ("42", RAID_ROLE) in gateway.roles
    assert len(registry) == 0
