"""Counter Keys — structured composite keys for logged per-member counters.

Invariants:
    - Storage and evaluation only ever see CounterKey, never a colon string
    - Legacy keys are parsed on input: R:<scope>:<dungeon>:<1|0>,
      L:<scope>:<dungeon>:<Completed|Failed|Assisted>, K:<scope>:<key>:USE, P:<scope>
    - Outcomes are unified to CounterOutcome labels (run 1/0 -> completed/failed)
    - subject is "" for categories without one (points)
"""

from dataclasses import dataclass

from gatekeeper.core.domain_types import CounterCategory, CounterOutcome

_LEGACY_CATEGORY = {
    "R": CounterCategory.RUN,
    "L": CounterCategory.LEAD,
    "K": CounterCategory.KEY,
    "P": CounterCategory.POINTS,
}

_RUN_FLAGS = {"1": CounterOutcome.COMPLETED, "0": CounterOutcome.FAILED}

_LEAD_LABELS = {
    "completed": CounterOutcome.COMPLETED,
    "failed": CounterOutcome.FAILED,
    "assisted": CounterOutcome.ASSISTED,
}


@dataclass(frozen=True)
class CounterKey:
    scope: str
    category: CounterCategory
    subject: str
    outcome: CounterOutcome


def parse_legacy_counter_key(raw: str) -> CounterKey:
    """Parse a colon-delimited legacy key. Raises ValueError on malformed input."""
    parts = raw.split(":")
    category = _LEGACY_CATEGORY.get(parts[0]) if parts else None
    if category is None or len(parts) < 2 or not parts[1]:
        raise ValueError(f"Unrecognized counter key: {raw!r}")

    scope = parts[1]
    if category == CounterCategory.POINTS:
        if len(parts) != 2:
            raise ValueError(f"Points key takes no subject: {raw!r}")
        return CounterKey(scope, category, "", CounterOutcome.NONE)

    if len(parts) != 4 or not parts[2]:
        raise ValueError(f"Expected 4 fields in counter key: {raw!r}")
    subject, flag = parts[2], parts[3]

    if category == CounterCategory.RUN:
        outcome = _RUN_FLAGS.get(flag)
    elif category == CounterCategory.LEAD:
        outcome = _LEAD_LABELS.get(flag.lower())
    else:
        outcome = CounterOutcome.USED if flag.upper() == "USE" else None
    if outcome is None:
        raise ValueError(f"Unrecognized outcome {flag!r} in counter key: {raw!r}")
    return CounterKey(scope, category, subject, outcome)
