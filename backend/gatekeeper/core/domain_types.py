"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - MemberId and ScopeId wrap platform snowflakes / scope identifiers as str
    - MAIN_SCOPE_ID identifies the community-wide scope; every other id is a sub-scope
    - GUILD_RANKS is ordered highest first; "at least" means at or above the floor's index
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

MemberId = NewType("MemberId", str)
ScopeId = NewType("ScopeId", str)
SessionKey = tuple[MemberId, ScopeId]

MAIN_SCOPE_ID = ScopeId("MAIN")


# ─── Game Constants ──────────────────────────────────────────────

NUMBER_OF_STATS: int = 8        # tiers run 0..NUMBER_OF_STATS
MAX_NAME_LENGTH: int = 15
PROOF_CODE_LENGTH: int = 15

GUILD_RANKS: tuple[str, ...] = (
    "Founder",
    "Leader",
    "Officer",
    "Member",
    "Initiate",
)

HIDDEN_LAST_SEEN = "hidden"

SHORT_STAT_TO_LONG: dict[str, str] = {
    "att": "Attack",
    "def": "Defense",
    "spd": "Speed",
    "dex": "Dexterity",
    "vit": "Vitality",
    "wis": "Wisdom",
    "hp": "Health",
    "mp": "Magic",
}

LONG_STAT_TO_SHORT: dict[str, str] = {
    long.lower(): short for short, long in SHORT_STAT_TO_LONG.items()
}


def is_valid_guild_rank(min_needed: str, actual: str) -> bool:
    """Whether `actual` is at least `min_needed` in the guild rank ordering."""
    if min_needed == actual:
        return True
    if min_needed not in GUILD_RANKS:
        return False
    floor = GUILD_RANKS.index(min_needed)
    return actual in GUILD_RANKS[: floor + 1]


# ─── Enums ───────────────────────────────────────────────────────

class Verdict(str, Enum):
    """Evaluation outcome. Precedence: FAIL > TRY_AGAIN > MANUAL > PASS."""
    PASS = "pass"
    TRY_AGAIN = "try_again"
    MANUAL = "manual"
    FAIL = "fail"


class IssueSeverity(str, Enum):
    """Which bucket an issue lands in."""
    FATAL = "fatal"
    TRY_AGAIN = "try_again"
    MANUAL = "manual"


class VerificationState(str, Enum):
    """Session states. CHECKING is transient (one check or handoff, bounded by check_stall)."""
    AWAIT_NAME_SELECTION = "await_name_selection"
    AWAIT_PROOF = "await_proof"
    CHECKING = "checking"
    MANUAL_PROMPT = "manual_prompt"
    TERMINAL = "terminal"


class TerminalOutcome(str, Enum):
    """How a session ended."""
    SUCCESS = "success"
    FAIL = "fail"
    CANCELED = "canceled"
    TIMED_OUT = "timed_out"
    ESCALATED = "escalated"


class ChannelRole(str, Enum):
    """Logical logging channels a scope may configure."""
    SESSION_STARTED = "session_started"
    STEP_UPDATE = "step_update"
    SUCCESS = "success"
    FAILURE = "failure"


class Disposition(str, Enum):
    """Moderator decisions on a manual verification entry."""
    ACCEPT = "accept"
    DENY = "deny"
    DISCUSS = "discuss"


class CounterCategory(str, Enum):
    """Logged counter families written by the raid/attendance subsystem."""
    RUN = "run"
    LEAD = "lead"
    KEY = "key"
    POINTS = "points"


class CounterOutcome(str, Enum):
    """Unified outcome labels for logged counters."""
    COMPLETED = "completed"
    FAILED = "failed"
    ASSISTED = "assisted"
    USED = "used"
    NONE = "none"
