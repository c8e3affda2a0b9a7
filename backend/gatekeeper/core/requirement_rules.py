"""Requirement Rules — independent checks, each emitting zero or more classified issues.

Invariants:
    - Every rule is PURE: (RuleContext) -> list[Issue], no IO, no mutation of inputs
    - RULES order is the evaluation order: privacy, guild, thresholds, characters,
      exaltations, graveyard
    - Guild issues are the only FATAL issues; the evaluator stops at the first one
    - Tier matching cascades downward only: a tier-T character may fill slot T or lower
    - Absent auxiliary data (None) means "unavailable", never "zero"

Design Decisions:
    - Rule list over one branching function: each rule is testable in isolation
      and the evaluator is a reduction over the list
    - Numeric helpers (apply_past_deaths, match_character_tiers, unmet_exaltations)
      are exported so the cascading behaviour can be asserted directly
"""

from dataclasses import dataclass, field
from typing import Callable

from gatekeeper.core.domain_types import (
    IssueSeverity, NUMBER_OF_STATS, SHORT_STAT_TO_LONG, is_valid_guild_rank,
)
from gatekeeper.core.dungeon_catalog import HISTORY_ACHIEVEMENTS, logged_dungeon_name
from gatekeeper.core.profile_types import (
    Character, ExaltationRecord, GraveyardSummary, PlayerProfileSnapshot,
)
from gatekeeper.core.requirement_policy import RequirementPolicy


@dataclass(frozen=True)
class Issue:
    """One failed check. value is shown to the member, log to moderators."""
    key: str
    value: str
    log: str
    severity: IssueSeverity

    def to_dict(self) -> dict:
        return {"key": self.key, "value": self.value, "log": self.log}


@dataclass(frozen=True)
class AuxiliaryLookups:
    """Data fetched besides the snapshot. None = requested but unavailable."""
    graveyard: GraveyardSummary | None = None
    exaltations: ExaltationRecord | None = None
    logged_completions: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class RuleContext:
    snapshot: PlayerProfileSnapshot
    policy: RequirementPolicy
    aux: AuxiliaryLookups


@dataclass(frozen=True)
class RequiredLookups:
    graveyard: bool = False
    exaltations: bool = False
    logged_completions: bool = False


def required_lookups(policy: RequirementPolicy) -> RequiredLookups:
    """Which auxiliary sources the active policy branches read."""
    if not policy.check_requirements:
        return RequiredLookups()
    graveyard = policy.graveyard
    history_mode = graveyard.enabled and not graveyard.use_logged_counters
    past_deaths = policy.characters.enabled and policy.characters.check_past_deaths
    return RequiredLookups(
        graveyard=history_mode or past_deaths,
        exaltations=policy.exaltations.enabled and bool(policy.exaltations.positive_minimums),
        logged_completions=graveyard.enabled and graveyard.use_logged_counters,
    )


def _codify(lines: list[str]) -> str:
    return "```\n" + "\n".join(lines) + "\n```"


# ─── Numeric helpers ─────────────────────────────────────────────

def _take_from(needed: list[int], tier: int, amount: int) -> None:
    """Apply `amount` tier-`tier` characters to `needed`, cascading downward."""
    if needed[tier] > 0:
        needed[tier] -= amount
        return
    for lower in range(tier - 1, -1, -1):
        if needed[lower] > 0:
            needed[lower] -= amount
            return


def apply_past_deaths(
    needed: list[int], stats_characters: tuple[tuple[int, ...], ...],
) -> list[int]:
    """Subtract dead-character counts per class from needed tiers (copy returned)."""
    result = list(needed)
    for per_class in stats_characters:
        for tier, count in enumerate(per_class[: len(result)]):
            if count > 0:
                _take_from(result, tier, count)
    return result


def match_character_tiers(needed: list[int], characters: tuple[Character, ...]) -> list[int]:
    """Walk live characters against needed tier counts (copy returned)."""
    result = list(needed)
    if not result:
        return result
    top = len(result) - 1
    for character in characters:
        if character.is_deceased or character.tier is None or character.tier < 0:
            continue
        _take_from(result, min(character.tier, top), 1)
    return result


def unmet_exaltations(
    minimum: dict[str, int], record: ExaltationRecord, on_one_character: bool,
) -> dict[str, int]:
    """Stat -> amount still missing. Empty when the requirement is met."""
    if not minimum:
        return {}
    if on_one_character:
        for character in record.characters:
            if all(character.stats.get(stat, 0) >= amount for stat, amount in minimum.items()):
                return {}
        return dict(minimum)
    totals = {stat: 0 for stat in minimum}
    for character in record.characters:
        for stat in minimum:
            totals[stat] += character.stats.get(stat, 0)
    return {
        stat: amount - totals[stat]
        for stat, amount in minimum.items()
        if amount - totals[stat] > 0
    }


# ─── Rules ───────────────────────────────────────────────────────

def check_last_seen(ctx: RuleContext) -> list[Issue]:
    if not ctx.policy.last_seen.must_be_hidden or ctx.snapshot.last_seen_hidden:
        return []
    return [Issue(
        key="Last Seen Location is Not Private",
        value=(
            "Your last seen location is not hidden. Please make sure no one can "
            "see it and then try again."
        ),
        log="User's last seen location is public.",
        severity=IssueSeverity.TRY_AGAIN,
    )]


def check_guild(ctx: RuleContext) -> list[Issue]:
    guild = ctx.policy.guild
    if not guild.enabled:
        return []
    snap = ctx.snapshot
    needed_guild = f"**`{guild.name.value}`**"

    if guild.name.enabled and snap.guild.lower() != guild.name.value.lower():
        current = f"**`{snap.guild}`**"
        if snap.guild:
            value = f"You are in the guild {current} but must be in the guild {needed_guild}."
            log = f"User is in guild {current} but must be in the guild {needed_guild}."
        else:
            value = f"You are not in a guild but must be in the guild {needed_guild}."
            log = f"User is not in a guild but must be in the guild {needed_guild}."
        return [Issue("Not In Correct Guild", value, log, IssueSeverity.FATAL)]

    if not guild.rank.enabled:
        return []
    has = f"**`{snap.guild_rank}`**"
    need = f"**`{guild.rank.min}`**"
    if guild.rank.exact:
        if snap.guild_rank == guild.rank.min:
            return []
        key = "Not In Correct Guild"
        wording = "the rank"
    else:
        if is_valid_guild_rank(guild.rank.min, snap.guild_rank):
            return []
        key = "Invalid Guild Rank"
        wording = "at least rank"
    if snap.guild:
        value = f"You have the rank {has} but must have {wording} {need}."
        log = f"User has the rank {has} but must have {wording} {need}."
    else:
        value = f"You must be in the guild, {needed_guild}."
        log = f"User is not in the guild {needed_guild}."
    return [Issue(key, value, log, IssueSeverity.FATAL)]


def check_thresholds(ctx: RuleContext) -> list[Issue]:
    issues: list[Issue] = []
    policy, snap = ctx.policy, ctx.snapshot
    if policy.rank.enabled and snap.rank < policy.rank.min:
        issues.append(Issue(
            key="Rank Too Low",
            value=(
                f"You have **`{snap.rank}`** stars out of the {policy.rank.min} "
                "required stars needed."
            ),
            log=f"User has **`{snap.rank}`**/{policy.rank.min} required stars needed.",
            severity=IssueSeverity.MANUAL,
        ))
    if policy.alive_fame.enabled and snap.alive_fame < policy.alive_fame.min:
        issues.append(Issue(
            key="Alive Fame Too Low",
            value=(
                f"You have **`{snap.alive_fame}`** alive fame out of the "
                f"{policy.alive_fame.min} required alive fame."
            ),
            log=f"User has **`{snap.alive_fame}`**/{policy.alive_fame.min} required alive fame.",
            severity=IssueSeverity.MANUAL,
        ))
    return issues


def check_character_tiers(ctx: RuleContext) -> list[Issue]:
    characters = ctx.policy.characters
    if not characters.enabled:
        return []
    needed = list(characters.stats_needed)
    graveyard_missing = characters.check_past_deaths and ctx.aux.graveyard is None
    if characters.check_past_deaths and ctx.aux.graveyard is not None:
        needed = apply_past_deaths(needed, ctx.aux.graveyard.stats_characters)
    remaining = match_character_tiers(needed, ctx.snapshot.characters)
    if not any(count > 0 for count in remaining):
        return []

    if graveyard_missing:
        return [Issue(
            key="Graveyard Summary Private",
            value=(
                "Your live characters do not meet the stats requirement and I am not able "
                "to access your graveyard summary to count past deaths. Make sure anyone "
                "can see your graveyard summary and then try again."
            ),
            log="User's graveyard summary is private; past deaths could not be counted.",
            severity=IssueSeverity.TRY_AGAIN,
        )]

    lines = [
        f"- Need {count} {tier}/{NUMBER_OF_STATS}s"
        for tier, count in enumerate(remaining) if count > 0
    ]
    display = _codify(lines)
    return [Issue(
        key="Stats Requirement Not Fulfilled",
        value=f"You need to fulfill the following stats requirements: {display}",
        log=f"User needs to fulfill the following stats requirements: {display}",
        severity=IssueSeverity.MANUAL,
    )]


def check_exaltations(ctx: RuleContext) -> list[Issue]:
    exalts = ctx.policy.exaltations
    minimum = exalts.positive_minimums
    if not exalts.enabled or not minimum:
        return []
    if ctx.aux.exaltations is None:
        return [Issue(
            key="Exaltation Information Private",
            value=(
                "I am not able to access your exaltation data. Make sure anyone can "
                "see your exaltation data and then try again."
            ),
            log="User's exaltation information is private.",
            severity=IssueSeverity.TRY_AGAIN,
        )]
    missing = unmet_exaltations(minimum, ctx.aux.exaltations, exalts.on_one_character)
    if not missing:
        return []
    if exalts.on_one_character:
        lines = ["- You do not have one character that meets all exaltation requirements."]
    else:
        lines = [
            f"- Need {amount} {SHORT_STAT_TO_LONG[stat]} Exaltations."
            for stat, amount in missing.items()
        ]
    display = _codify(lines)
    return [Issue(
        key="Exaltation Requirement Not Satisfied",
        value=f"You did not satisfy one or more exaltation requirements: {display}",
        log=f"User did not satisfy one or more exaltation requirements: {display}",
        severity=IssueSeverity.MANUAL,
    )]


def check_graveyard(ctx: RuleContext) -> list[Issue]:
    graveyard = ctx.policy.graveyard
    if not graveyard.enabled:
        return []

    value_lines: list[str] = []
    log_lines: list[str] = []
    if graveyard.use_logged_counters:
        for dungeon_id, target in graveyard.logged_targets.items():
            have = ctx.aux.logged_completions.get(dungeon_id, 0)
            if target <= 0 or have >= target:
                continue
            line = f"- {have}/{target} {logged_dungeon_name(dungeon_id)} Completions Logged."
            value_lines.append(line)
            log_lines.append(line)
    else:
        summary = ctx.aux.graveyard
        if summary is None:
            return [Issue(
                key="Graveyard History Private",
                value=(
                    "I am not able to access your graveyard summary. Make sure your "
                    "graveyard is set so anyone can see it and then try again."
                ),
                log="User's graveyard information is private.",
                severity=IssueSeverity.TRY_AGAIN,
            )]
        for display_name, target in graveyard.history_targets.items():
            achievement = HISTORY_ACHIEVEMENTS.get(display_name)
            if achievement is None or target <= 0:
                continue
            have = summary.total_for(achievement) or 0
            if have >= target:
                continue
            if have == 0:
                value_lines.append(f"- You do not have any {display_name} completions.")
                log_lines.append(f"- No {display_name} completions.")
            else:
                value_lines.append(
                    f"- You have {have} / {target} total {display_name} completions needed."
                )
                log_lines.append(f"- {have} / {target} total {display_name} completions.")

    if not value_lines:
        return []
    return [Issue(
        key="Dungeon Completion Requirement Not Fulfilled",
        value=(
            "You still need to satisfy the following dungeon requirements: "
            f"{_codify(value_lines)}"
        ),
        log=f"User has not fulfilled the following dungeon requirements: {_codify(log_lines)}",
        severity=IssueSeverity.MANUAL,
    )]


# ─── Pre-check issues (raised by the session before evaluation) ──

def profile_unavailable_issue(name: str) -> Issue:
    return Issue(
        key="Profile Unavailable",
        value=(
            f"Your profile, **`{name}`**, could not be reached. Make sure your profile "
            "is public (anyone can see it) and then try again."
        ),
        log=f"The profile of **`{name}`** could not be fetched. Is the profile private?",
        severity=IssueSeverity.TRY_AGAIN,
    )


def proof_code_missing_issue(code: str) -> Issue:
    return Issue(
        key="Verification Code Not Found",
        value=(
            f"Your verification code, **`{code}`**, was not found in any line of your "
            "profile description. Add it and then try again."
        ),
        log=f"The verification code **`{code}`** was not found in the profile description.",
        severity=IssueSeverity.TRY_AGAIN,
    )


def name_history_unavailable_issue() -> Issue:
    return Issue(
        key="Name History Private",
        value=(
            "I am not able to access your name history. Make sure anyone can see your "
            "name history and then try again."
        ),
        log="User's name history is private.",
        severity=IssueSeverity.TRY_AGAIN,
    )


def unexpected_error_issue() -> Issue:
    return Issue(
        key="Unexpected Error",
        value="Something went wrong while reviewing your profile. Please try again.",
        log="An unexpected error occurred while checking the profile.",
        severity=IssueSeverity.TRY_AGAIN,
    )


Rule = Callable[[RuleContext], list[Issue]]

RULES: tuple[Rule, ...] = (
    check_last_seen,
    check_guild,
    check_thresholds,
    check_character_tiers,
    check_exaltations,
    check_graveyard,
)
