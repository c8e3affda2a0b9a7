"""Verification Runner — drives VerificationSession transitions and their side effects.

Invariants:
    - Every user event is resolved against the deadline first (cancel wins, else TimedOut)
    - State checks happen synchronously right before each transition; CHECKING is entered
      before any await so cancel/check cannot interleave with a running check
    - Terminal sessions are removed from the registry in the same step they finish,
      and only if they still own their key
    - After every await the session is re-checked: a session that ended or was
      replaced meanwhile gets no further transitions or side effects
    - Profile failures and unexpected check errors become TRY_AGAIN issues, never raise
    - Blacklist hits end the session with FAIL and carry the moderation id

Design Decisions:
    - Imperative shell around the pure FSM (core/verification_state.py) and the pure
      evaluator (core/evaluate_requirements.py); this module owns all awaits
    - One runner per request: it holds the request's AsyncSession via IdentityStore,
      while the SessionRegistry is shared and injected
"""

import logging
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.core.candidate_names import (
    generate_proof_code, is_valid_name, resolve_sub_scope_name,
)
from gatekeeper.core.describe_requirements import describe_requirements
from gatekeeper.core.domain_types import (
    ChannelRole, MemberId, ScopeId, TerminalOutcome, Verdict,
)
from gatekeeper.core.errors import (
    AlreadyVerifiedError, ConfigError, ErrorContext, ExternalUnavailableError,
    GatekeeperError, InvalidNameError, ManualReviewPendingError,
    NoCandidateNameError, ResourceNotFoundError, SessionConflictError,
)
from gatekeeper.core.evaluate_requirements import EvaluationResult, evaluate
from gatekeeper.core.format_messages import (
    fmt_blacklisted, fmt_canceled, fmt_fatal_issues, fmt_manual_declined,
    fmt_manual_escalated, fmt_manual_handoff_failed, fmt_manual_offered,
    fmt_member_accepted, fmt_name_taken, fmt_proof_issued, fmt_started, fmt_success,
    fmt_timed_out, fmt_try_again_issues, scope_label,
)
from gatekeeper.core.profile_types import PlayerProfileSnapshot
from gatekeeper.core.repository_protocols import BotGateway, ProfileService
from gatekeeper.core.requirement_policy import policy_from_dict
from gatekeeper.core.requirement_rules import (
    Issue, name_history_unavailable_issue, profile_unavailable_issue,
    proof_code_missing_issue, unexpected_error_issue,
)
from gatekeeper.core.session_registry import SessionRegistry
from gatekeeper.core.verification_state import (
    Canceled, ManualConsent, NameSelected, ProofCheckRequested, SessionTimeouts,
    TimedOut, VerificationSession, new_session,
)
from gatekeeper.models import Scope
from gatekeeper.services.gather_lookups import gather_lookups
from gatekeeper.services.identity_store import IdentityStore
from gatekeeper.services.manual_review import ManualReviewCoordinator
from gatekeeper.services.notifier import ScopeNotifier, grant_membership

logger = logging.getLogger(__name__)

BLACKLISTED_NOTICE = (
    "You are blacklisted and cannot verify in this server at this time. You can appeal "
    "with the server staff using the moderation ID: {moderation_id}."
)
FAILED_NOTICE = "A major requirement was not met. Please review the listed issues."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _try_again(
    name: str, issue: Issue, snapshot: PlayerProfileSnapshot | None = None,
) -> EvaluationResult:
    return EvaluationResult(
        name=name, verdict=Verdict.TRY_AGAIN, try_again_issues=[issue], snapshot=snapshot,
    )


class VerificationRunner:
    def __init__(
        self,
        db: AsyncSession,
        registry: SessionRegistry,
        profiles: ProfileService,
        gateway: BotGateway,
        timeouts: SessionTimeouts,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = IdentityStore(db)
        self.registry = registry
        self.profiles = profiles
        self.gateway = gateway
        self.timeouts = timeouts
        self.notifier = ScopeNotifier(gateway)
        self.reviews = ManualReviewCoordinator(db, gateway)
        self._now = clock

    # ─── Lookups ─────────────────────────────────────────────────

    async def _load_scope(self, scope_id: str) -> Scope:
        scope = await self.store.get_scope(scope_id)
        if scope is None:
            raise ResourceNotFoundError("Scope", scope_id)
        return scope

    def get_session(self, member_id: str, scope_id: str) -> VerificationSession:
        session = self.registry.get(MemberId(member_id), ScopeId(scope_id))
        if session is None:
            raise ResourceNotFoundError("VerificationSession", f"{member_id}/{scope_id}")
        return session

    # ─── Entry ───────────────────────────────────────────────────

    async def start(
        self, member_id: str, scope_id: str, display_name: str | None = None,
    ) -> VerificationSession:
        """Open a session, or grant immediately for sub-scopes without requirements."""
        scope = await self._load_scope(scope_id)
        ctx = ErrorContext(member_id=member_id, scope_id=scope_id)
        if not scope.verified_role_id:
            raise ConfigError("scope has no membership role", "verified_role_id", ctx)
        if self.registry.get(MemberId(member_id), ScopeId(scope_id)) is not None:
            raise SessionConflictError(member_id, scope_id, ctx)
        if await self.gateway.has_role(member_id, scope.verified_role_id):
            raise AlreadyVerifiedError(ctx)
        if await self.store.get_manual_entry(member_id, scope_id) is not None:
            raise ManualReviewPendingError(ctx)
        if not await self.profiles.is_online():
            raise ExternalUnavailableError("The profile service", ctx)

        policy = policy_from_dict(scope.requirement_policy)
        label = scope_label(scope.name, scope.is_main)
        known = await self.store.known_names(member_id)

        if not scope.is_main and not policy.check_requirements:
            session = new_session(
                MemberId(member_id), ScopeId(scope_id), False, self._now(), self.timeouts,
            )
            session.finish(TerminalOutcome.SUCCESS)
            await grant_membership(self.gateway, member_id, scope)
            await self.notifier.notify(
                scope, ChannelRole.SUCCESS, fmt_success(label, member_id, None, False),
            )
            logger.info(
                "Granted without requirements",
                extra={"member_id": member_id, "scope_id": scope_id, "verdict": Verdict.PASS.value},
            )
            return session

        if scope.is_main:
            session = new_session(
                MemberId(member_id), ScopeId(scope_id), True, self._now(), self.timeouts,
                name_options=known,
            )
        else:
            if display_name is None:
                display_name = await self.gateway.get_display_name(member_id)
            name = resolve_sub_scope_name(display_name, known)
            if name is None:
                raise NoCandidateNameError(ctx)
            now = self._now()
            session = new_session(
                MemberId(member_id), ScopeId(scope_id), False, now, self.timeouts,
            )
            session.enter_proof(
                name, generate_proof_code(), describe_requirements(policy), now, self.timeouts,
            )

        # Atomic check-and-insert: raises SessionConflictError if a racing start won
        self.registry.create(session)
        logger.info(
            "Verification session started",
            extra={"member_id": member_id, "scope_id": scope_id, "state": session.state.value},
        )
        await self.notifier.notify(scope, ChannelRole.SESSION_STARTED, fmt_started(label, member_id))
        if session.proof_code:
            await self.notifier.notify(scope, ChannelRole.STEP_UPDATE, fmt_proof_issued(
                label, member_id, session.candidate_name, session.proof_code,
            ))
        return session

    # ─── Wait-state events ───────────────────────────────────────

    async def select_name(self, member_id: str, scope_id: str, name: str) -> VerificationSession:
        session = self.get_session(member_id, scope_id)
        scope = await self._load_scope(scope_id)
        name = name.strip()
        event = session.effective_event(NameSelected(name), self._now())
        if isinstance(event, TimedOut):
            await self._time_out(session, scope)
            return session
        session.require(event)
        if not is_valid_name(name):
            raise InvalidNameError(name, ErrorContext(member_id=member_id, scope_id=scope_id))

        label = scope_label(scope.name, scope.is_main)
        owners = await self.store.name_owners(name)
        if self._is_stale(session):
            return session
        session.require(event)
        if any(owner != member_id for owner in owners):
            await self._finish(
                session, scope, TerminalOutcome.FAIL, ChannelRole.FAILURE,
                fmt_name_taken(label, member_id, name),
            )
            return session

        session.enter_proof(
            name, generate_proof_code(),
            describe_requirements(policy_from_dict(scope.requirement_policy)),
            self._now(), self.timeouts,
        )
        await self.notifier.notify(scope, ChannelRole.STEP_UPDATE, fmt_proof_issued(
            label, member_id, name, session.proof_code,
        ))
        return session

    async def request_check(self, member_id: str, scope_id: str) -> VerificationSession:
        """Fetch a fresh snapshot, evaluate it and route on the verdict."""
        session = self.get_session(member_id, scope_id)
        scope = await self._load_scope(scope_id)
        event = session.effective_event(ProofCheckRequested(), self._now())
        if isinstance(event, TimedOut):
            await self._time_out(session, scope)
            return session
        session.begin_check(self._now(), self.timeouts)

        try:
            result = await self._run_check(session, scope)
        except Exception:
            logger.exception(
                "Unexpected error during profile check",
                extra={"member_id": member_id, "scope_id": scope_id, "error_code": "CHECK_FAILED"},
            )
            result = _try_again(session.candidate_name or "", unexpected_error_issue())

        if result is not None and self._is_stale(session):
            logger.info(
                "Check result dropped: session ended or was replaced while checking",
                extra={"member_id": member_id, "scope_id": scope_id},
            )
            return session
        if result is not None:
            await self._route_verdict(session, scope, result)
        return session

    async def manual_consent(
        self, member_id: str, scope_id: str, accepted: bool,
    ) -> VerificationSession:
        session = self.get_session(member_id, scope_id)
        scope = await self._load_scope(scope_id)
        event = session.effective_event(ManualConsent(accepted), self._now())
        if isinstance(event, TimedOut):
            await self._time_out(session, scope)
            return session
        label = scope_label(scope.name, scope.is_main)

        if not accepted:
            session.require(event)
            await self._finish(
                session, scope, TerminalOutcome.FAIL, ChannelRole.FAILURE,
                fmt_manual_declined(label, member_id, session.candidate_name),
            )
            return session

        session.begin_escalation(accepted, self._now(), self.timeouts)
        result = session.last_result
        try:
            await self.reviews.escalate(
                member_id, scope, session.candidate_name, result.snapshot, result.manual_issues,
            )
        except ManualReviewPendingError:
            logger.info(
                "Manual entry already pending", extra={"member_id": member_id, "scope_id": scope_id},
            )
            scope = await self._load_scope(scope_id)
        except GatekeeperError:
            await self._finish(
                session, scope, TerminalOutcome.FAIL, ChannelRole.FAILURE,
                fmt_manual_handoff_failed(label, member_id, session.candidate_name),
            )
            raise
        except Exception:
            logger.exception(
                "Manual review handoff failed",
                extra={"member_id": member_id, "scope_id": scope_id, "error_code": "HANDOFF_FAILED"},
            )
            await self._finish(
                session, scope, TerminalOutcome.FAIL, ChannelRole.FAILURE,
                fmt_manual_handoff_failed(label, member_id, session.candidate_name),
            )
            return session
        await self._finish(
            session, scope, TerminalOutcome.ESCALATED, ChannelRole.STEP_UPDATE,
            fmt_manual_escalated(label, member_id, session.candidate_name),
        )
        return session

    async def cancel(self, member_id: str, scope_id: str) -> VerificationSession:
        """Cancel wins over an elapsed deadline in any wait-state."""
        session = self.get_session(member_id, scope_id)
        scope = await self._load_scope(scope_id)
        session.require(Canceled())
        await self._finish(
            session, scope, TerminalOutcome.CANCELED, ChannelRole.FAILURE,
            fmt_canceled(scope_label(scope.name, scope.is_main), member_id),
        )
        return session

    async def expire_due(self, now: datetime | None = None) -> list[VerificationSession]:
        """Time out every session whose wait-state deadline has passed."""
        now = now or self._now()
        expired = []
        for session in self.registry.expired(now):
            scope = await self.store.get_scope(session.scope_id)
            if session.is_terminal or not session.is_expired(now):
                continue
            await self._time_out(session, scope)
            expired.append(session)
        return expired

    # ─── Check internals ─────────────────────────────────────────

    async def _run_check(
        self, session: VerificationSession, scope: Scope,
    ) -> EvaluationResult | None:
        """Evaluate the member's profile. None means the session ended or was replaced."""
        name = session.candidate_name
        snapshot = await self.profiles.get_player_info(name)
        if snapshot is None:
            return _try_again(name, profile_unavailable_issue(name))
        if not snapshot.description_contains(session.proof_code):
            return _try_again(name, proof_code_missing_issue(session.proof_code), snapshot)

        names = [snapshot.name]
        if session.is_main_scope:
            history = await self.profiles.get_name_history(name)
            if history is None:
                return _try_again(name, name_history_unavailable_issue(), snapshot)
            names.extend(history.names)
        names.extend(await self.store.known_names(session.member_id))

        hit = await self.store.find_blacklisted(scope.community_id, names)
        if self._is_stale(session):
            return None
        if hit is not None:
            session.moderation_id = hit.moderation_id
            await self._finish(
                session, scope, TerminalOutcome.FAIL, ChannelRole.FAILURE,
                fmt_blacklisted(
                    scope_label(scope.name, scope.is_main), session.member_id,
                    name, hit.name_lower, hit.moderation_id,
                ),
            )
            await self.notifier.direct(
                session.member_id,
                BLACKLISTED_NOTICE.format(moderation_id=hit.moderation_id or "N/A"),
            )
            return None

        policy = policy_from_dict(scope.requirement_policy)
        aux = await gather_lookups(
            self.profiles, self.store, policy, name, session.member_id, scope.community_id,
        )
        return evaluate(
            snapshot, policy, aux,
            manual_review_configured=bool(scope.manual_review_channel_id),
        )

    async def _route_verdict(
        self, session: VerificationSession, scope: Scope, result: EvaluationResult,
    ) -> None:
        member_id, name = session.member_id, session.candidate_name
        label = scope_label(scope.name, scope.is_main)
        logger.info(
            "Profile evaluated",
            extra={"member_id": member_id, "scope_id": scope.id, "verdict": result.verdict.value},
        )

        if result.verdict == Verdict.FAIL:
            issues = result.fatal_issues or result.manual_issues
            await self._finish(
                session, scope, TerminalOutcome.FAIL, ChannelRole.FAILURE,
                fmt_fatal_issues(label, member_id, name, issues), issues,
            )
            session.last_result = result
            await self.notifier.direct(member_id, FAILED_NOTICE)
        elif result.verdict == Verdict.TRY_AGAIN:
            session.return_to_proof(result.try_again_issues, result)
            await self.notifier.notify(
                scope, ChannelRole.FAILURE,
                fmt_try_again_issues(label, member_id, name, result.try_again_issues),
            )
        elif result.verdict == Verdict.MANUAL:
            session.enter_manual_prompt(result, self._now(), self.timeouts)
            await self.notifier.notify(
                scope, ChannelRole.STEP_UPDATE,
                fmt_manual_offered(label, member_id, name, result.manual_issues),
            )
        else:
            session.last_result = result
            await self._finish(
                session, scope, TerminalOutcome.SUCCESS, ChannelRole.SUCCESS,
                fmt_success(label, member_id, name, scope.is_main), [],
            )
            await grant_membership(self.gateway, member_id, scope, name)
            if scope.is_main:
                await self.store.remember_name(member_id, name)
                await self.store.commit()
            await self.notifier.direct(
                member_id, fmt_member_accepted(scope.name, scope.success_message),
            )

    # ─── Terminal helpers ────────────────────────────────────────

    async def _finish(
        self,
        session: VerificationSession,
        scope: Scope | None,
        outcome: TerminalOutcome,
        role: ChannelRole,
        log_line: str,
        issues: list[Issue] | None = None,
    ) -> None:
        if session.is_terminal:
            return
        session.finish(outcome, issues)
        self.registry.remove(session.member_id, session.scope_id, expected=session)
        logger.info(
            "Verification session finished",
            extra={"member_id": session.member_id, "scope_id": session.scope_id, "state": outcome.value},
        )
        if scope is not None:
            await self.notifier.notify(scope, role, log_line)

    async def _time_out(self, session: VerificationSession, scope: Scope | None) -> None:
        state = session.state.value
        label = scope_label(scope.name, scope.is_main) if scope is not None else session.scope_id
        await self._finish(
            session, scope, TerminalOutcome.TIMED_OUT, ChannelRole.FAILURE,
            fmt_timed_out(label, session.member_id, state),
        )
