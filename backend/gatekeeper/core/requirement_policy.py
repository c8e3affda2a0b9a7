"""Requirement Policy — per-scope configuration tree read by the evaluator.

Invariants:
    - Policies are frozen during an evaluation; scopes replace them wholesale
    - policy_from_dict tolerates missing keys (defaults = everything disabled)
    - policy_to_dict(policy_from_dict(d)) is the canonical stored form
    - stats_needed has NUMBER_OF_STATS + 1 slots (tiers 0..8), shorter input is zero-padded

Design Decisions:
    - Dataclasses, not ORM: the policy is a JSON column on the scope row,
      and the evaluator must stay importable without SQLAlchemy
"""

from dataclasses import dataclass, field

from gatekeeper.core.domain_types import NUMBER_OF_STATS, SHORT_STAT_TO_LONG


@dataclass(frozen=True)
class LastSeenRequirement:
    must_be_hidden: bool = False


@dataclass(frozen=True)
class RankRequirement:
    enabled: bool = False
    min: int = 0


@dataclass(frozen=True)
class GuildNameRequirement:
    enabled: bool = False
    value: str = ""


@dataclass(frozen=True)
class GuildRankRequirement:
    enabled: bool = False
    min: str = "Initiate"
    exact: bool = False


@dataclass(frozen=True)
class GuildRequirement:
    enabled: bool = False
    name: GuildNameRequirement = field(default_factory=GuildNameRequirement)
    rank: GuildRankRequirement = field(default_factory=GuildRankRequirement)


@dataclass(frozen=True)
class AliveFameRequirement:
    enabled: bool = False
    min: int = 0


@dataclass(frozen=True)
class CharacterRequirement:
    enabled: bool = False
    stats_needed: tuple[int, ...] = (0,) * (NUMBER_OF_STATS + 1)
    check_past_deaths: bool = False


@dataclass(frozen=True)
class ExaltationRequirement:
    enabled: bool = False
    minimum: dict[str, int] = field(default_factory=dict)
    on_one_character: bool = False

    @property
    def positive_minimums(self) -> dict[str, int]:
        return {
            stat: amount for stat, amount in self.minimum.items()
            if stat in SHORT_STAT_TO_LONG and amount > 0
        }


@dataclass(frozen=True)
class GraveyardRequirement:
    enabled: bool = False
    use_logged_counters: bool = False
    logged_targets: dict[str, int] = field(default_factory=dict)
    history_targets: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class RequirementPolicy:
    check_requirements: bool = False
    last_seen: LastSeenRequirement = field(default_factory=LastSeenRequirement)
    rank: RankRequirement = field(default_factory=RankRequirement)
    guild: GuildRequirement = field(default_factory=GuildRequirement)
    alive_fame: AliveFameRequirement = field(default_factory=AliveFameRequirement)
    characters: CharacterRequirement = field(default_factory=CharacterRequirement)
    exaltations: ExaltationRequirement = field(default_factory=ExaltationRequirement)
    graveyard: GraveyardRequirement = field(default_factory=GraveyardRequirement)


def _pad_stats(values) -> tuple[int, ...]:
    stats = [int(v) for v in (values or [])][: NUMBER_OF_STATS + 1]
    stats.extend([0] * (NUMBER_OF_STATS + 1 - len(stats)))
    return tuple(stats)


def policy_from_dict(data: dict | None) -> RequirementPolicy:
    """Build a policy from its stored JSON form. Unknown keys are ignored."""
    data = data or {}
    guild = data.get("guild", {})
    characters = data.get("characters", {})
    exalts = data.get("exaltations", {})
    graveyard = data.get("graveyard", {})
    return RequirementPolicy(
        check_requirements=bool(data.get("check_requirements", False)),
        last_seen=LastSeenRequirement(
            must_be_hidden=bool(data.get("last_seen", {}).get("must_be_hidden", False)),
        ),
        rank=RankRequirement(
            enabled=bool(data.get("rank", {}).get("enabled", False)),
            min=int(data.get("rank", {}).get("min", 0)),
        ),
        guild=GuildRequirement(
            enabled=bool(guild.get("enabled", False)),
            name=GuildNameRequirement(
                enabled=bool(guild.get("name", {}).get("enabled", False)),
                value=str(guild.get("name", {}).get("value", "")),
            ),
            rank=GuildRankRequirement(
                enabled=bool(guild.get("rank", {}).get("enabled", False)),
                min=str(guild.get("rank", {}).get("min", "Initiate")),
                exact=bool(guild.get("rank", {}).get("exact", False)),
            ),
        ),
        alive_fame=AliveFameRequirement(
            enabled=bool(data.get("alive_fame", {}).get("enabled", False)),
            min=int(data.get("alive_fame", {}).get("min", 0)),
        ),
        characters=CharacterRequirement(
            enabled=bool(characters.get("enabled", False)),
            stats_needed=_pad_stats(characters.get("stats_needed")),
            check_past_deaths=bool(characters.get("check_past_deaths", False)),
        ),
        exaltations=ExaltationRequirement(
            enabled=bool(exalts.get("enabled", False)),
            minimum={k: int(v) for k, v in exalts.get("minimum", {}).items()},
            on_one_character=bool(exalts.get("on_one_character", False)),
        ),
        graveyard=GraveyardRequirement(
            enabled=bool(graveyard.get("enabled", False)),
            use_logged_counters=bool(graveyard.get("use_logged_counters", False)),
            logged_targets={
                k: int(v) for k, v in graveyard.get("logged_targets", {}).items()
            },
            history_targets={
                k: int(v) for k, v in graveyard.get("history_targets", {}).items()
            },
        ),
    )


def policy_to_dict(policy: RequirementPolicy) -> dict:
    """Serialize a policy to its stored JSON form."""
    return {
        "check_requirements": policy.check_requirements,
        "last_seen": {"must_be_hidden": policy.last_seen.must_be_hidden},
        "rank": {"enabled": policy.rank.enabled, "min": policy.rank.min},
        "guild": {
            "enabled": policy.guild.enabled,
            "name": {
                "enabled": policy.guild.name.enabled,
                "value": policy.guild.name.value,
            },
            "rank": {
                "enabled": policy.guild.rank.enabled,
                "min": policy.guild.rank.min,
                "exact": policy.guild.rank.exact,
            },
        },
        "alive_fame": {"enabled": policy.alive_fame.enabled, "min": policy.alive_fame.min},
        "characters": {
            "enabled": policy.characters.enabled,
            "stats_needed": list(policy.characters.stats_needed),
            "check_past_deaths": policy.characters.check_past_deaths,
        },
        "exaltations": {
            "enabled": policy.exaltations.enabled,
            "minimum": dict(policy.exaltations.minimum),
            "on_one_character": policy.exaltations.on_one_character,
        },
        "graveyard": {
            "enabled": policy.graveyard.enabled,
            "use_logged_counters": policy.graveyard.use_logged_counters,
            "logged_targets": dict(policy.graveyard.logged_targets),
            "history_targets": dict(policy.graveyard.history_targets),
        },
    }
