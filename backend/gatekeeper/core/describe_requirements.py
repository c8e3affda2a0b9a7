"""Requirement Description — renders a policy as the list shown with the proof prompt.

Invariants:
    - check_requirements = False -> ["No Requirements."]
    - Zero-valued targets are never listed
    - Exaltation / graveyard visibility lines appear once, before their first target
    - Logged-counter targets for unknown dungeon ids are listed under the raw id
"""

from gatekeeper.core.domain_types import NUMBER_OF_STATS, SHORT_STAT_TO_LONG
from gatekeeper.core.dungeon_catalog import logged_dungeon_name
from gatekeeper.core.requirement_policy import RequirementPolicy


def describe_requirements(policy: RequirementPolicy) -> list[str]:
    """Human-readable requirement lines for a scope's policy."""
    if not policy.check_requirements:
        return ["No Requirements."]

    lines: list[str] = []
    if policy.last_seen.must_be_hidden:
        lines.append("Private Location.")
    if policy.rank.enabled:
        lines.append(f"At Least {policy.rank.min} Stars.")
    if policy.guild.enabled:
        if policy.guild.name.enabled:
            lines.append(f"In Guild: {policy.guild.name.value}.")
        if policy.guild.rank.enabled:
            prefix = "Must Be Rank" if policy.guild.rank.exact else "Must Be At Least Rank"
            lines.append(f"{prefix}: {policy.guild.rank.min}.")
    if policy.alive_fame.enabled:
        lines.append(f"At Least {policy.alive_fame.min} Alive Fame.")
    if policy.characters.enabled:
        lines.extend(_describe_characters(policy))
    if policy.exaltations.enabled:
        lines.extend(_describe_exaltations(policy))
    if policy.graveyard.enabled:
        lines.extend(_describe_graveyard(policy))
    return lines


def _describe_characters(policy: RequirementPolicy) -> list[str]:
    suffix = " (Past Deaths Allowed)." if policy.characters.check_past_deaths else "."
    return [
        f"{needed} {tier}/{NUMBER_OF_STATS} Characters{suffix}"
        for tier, needed in enumerate(policy.characters.stats_needed)
        if needed > 0
    ]


def _describe_exaltations(policy: RequirementPolicy) -> list[str]:
    minimums = policy.exaltations.positive_minimums
    if not minimums:
        return []
    lines = ["Exaltations is Public."]
    for stat, amount in minimums.items():
        lines.append(f"{amount} {SHORT_STAT_TO_LONG[stat]} Exaltations.")
    if policy.exaltations.on_one_character:
        lines.append("Exaltations Must Be On One Character.")
    return lines


def _describe_graveyard(policy: RequirementPolicy) -> list[str]:
    if policy.graveyard.use_logged_counters:
        return [
            f"{amount} {logged_dungeon_name(dungeon_id)} Completion Logged."
            for dungeon_id, amount in policy.graveyard.logged_targets.items()
            if amount > 0
        ]
    targets = [(name, amount) for name, amount in policy.graveyard.history_targets.items() if amount > 0]
    if not targets:
        return []
    return ["Graveyard History is Public."] + [
        f"{amount} {name} Completions." for name, amount in targets
    ]
