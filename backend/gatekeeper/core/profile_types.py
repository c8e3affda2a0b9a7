"""Profile Types — immutable snapshots of externally fetched profile data.

Invariants:
    - All snapshot types are frozen: a session re-fetches instead of mutating
    - Character.tier is None when the source does not expose the maxed-stat count
    - GraveyardSummary.stats_characters[k][i] = dead characters of class k with i maxed stats
"""

from dataclasses import dataclass, field

from gatekeeper.core.domain_types import HIDDEN_LAST_SEEN


@dataclass(frozen=True)
class Character:
    tier: int | None
    is_deceased: bool = False
    class_name: str = ""


@dataclass(frozen=True)
class PlayerProfileSnapshot:
    """Point-in-time profile record used as evaluator input."""
    name: str
    rank: int = 0
    alive_fame: int = 0
    guild: str = ""
    guild_rank: str = ""
    last_seen: str = ""
    characters: tuple[Character, ...] = ()
    description: tuple[str, ...] = ()
    created: str | None = None
    first_seen: str | None = None

    @property
    def last_seen_hidden(self) -> bool:
        return self.last_seen.strip().lower() == HIDDEN_LAST_SEEN

    def description_contains(self, code: str) -> bool:
        return any(code in line for line in self.description)


@dataclass(frozen=True)
class NameHistory:
    names: tuple[str, ...] = ()


@dataclass(frozen=True)
class CharacterExaltation:
    class_name: str
    stats: dict[str, int] = field(default_factory=dict)   # short stat key -> amount


@dataclass(frozen=True)
class ExaltationRecord:
    characters: tuple[CharacterExaltation, ...] = ()


@dataclass(frozen=True)
class AchievementTotal:
    achievement: str
    total: int


@dataclass(frozen=True)
class GraveyardSummary:
    achievements: tuple[AchievementTotal, ...] = ()
    stats_characters: tuple[tuple[int, ...], ...] = ()

    def total_for(self, achievement: str) -> int | None:
        for entry in self.achievements:
            if entry.achievement == achievement:
                return entry.total
        return None
