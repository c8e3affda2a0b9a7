"""Requirement Evaluation — reduces the rule list into one classified verdict.

Invariants:
    - PURE: same (snapshot, policy, aux, manual_review_configured) -> same result
    - check_requirements = False -> PASS with all three issue lists empty
    - First FATAL issue stops evaluation: verdict FAIL, later rules never run
    - Precedence FATAL > TRY_AGAIN > MANUAL > PASS
    - MANUAL without a configured review destination is downgraded to FAIL

Design Decisions:
    - The evaluator never fetches: the shell gathers auxiliary data first
      (see services/gather_lookups.py) so evaluation stays deterministic
"""

from dataclasses import dataclass, field

from gatekeeper.core.domain_types import IssueSeverity, Verdict
from gatekeeper.core.profile_types import PlayerProfileSnapshot
from gatekeeper.core.requirement_policy import RequirementPolicy
from gatekeeper.core.requirement_rules import (
    RULES, AuxiliaryLookups, Issue, RuleContext,
)


@dataclass(frozen=True)
class EvaluationResult:
    name: str
    verdict: Verdict
    fatal_issues: list[Issue] = field(default_factory=list)
    manual_issues: list[Issue] = field(default_factory=list)
    try_again_issues: list[Issue] = field(default_factory=list)
    snapshot: PlayerProfileSnapshot | None = None

    @property
    def all_issues(self) -> list[Issue]:
        return self.fatal_issues + self.try_again_issues + self.manual_issues


def resolve_verdict(
    fatal: list[Issue], try_again: list[Issue], manual: list[Issue],
    manual_review_configured: bool,
) -> Verdict:
    """Apply the fixed precedence and the MANUAL -> FAIL downgrade."""
    if fatal:
        return Verdict.FAIL
    if try_again:
        return Verdict.TRY_AGAIN
    if manual:
        return Verdict.MANUAL if manual_review_configured else Verdict.FAIL
    return Verdict.PASS


def evaluate(
    snapshot: PlayerProfileSnapshot,
    policy: RequirementPolicy,
    aux: AuxiliaryLookups | None = None,
    manual_review_configured: bool = True,
) -> EvaluationResult:
    """Run every rule against the snapshot and classify the outcome."""
    if not policy.check_requirements:
        return EvaluationResult(name=snapshot.name, verdict=Verdict.PASS, snapshot=snapshot)

    ctx = RuleContext(snapshot=snapshot, policy=policy, aux=aux or AuxiliaryLookups())
    buckets: dict[IssueSeverity, list[Issue]] = {severity: [] for severity in IssueSeverity}
    for rule in RULES:
        for issue in rule(ctx):
            buckets[issue.severity].append(issue)
        if buckets[IssueSeverity.FATAL]:
            break

    fatal = buckets[IssueSeverity.FATAL]
    try_again = buckets[IssueSeverity.TRY_AGAIN]
    manual = buckets[IssueSeverity.MANUAL]
    return EvaluationResult(
        name=snapshot.name,
        verdict=resolve_verdict(fatal, try_again, manual, manual_review_configured),
        fatal_issues=fatal,
        manual_issues=manual,
        try_again_issues=try_again,
        snapshot=snapshot,
    )
