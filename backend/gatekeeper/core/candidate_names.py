"""Candidate Names — validation and resolution of the in-game name a member verifies as.

Invariants:
    - A valid name is 1..MAX_NAME_LENGTH ASCII letters, nothing else
    - Display names are split on "|" and each part stripped; only valid parts count
    - Sub-scope resolution: first valid display-name part, else first known name, else None
    - Proof codes are PROOF_CODE_LENGTH characters from an unambiguous alphanumeric alphabet
"""

import re
import secrets

from gatekeeper.core.domain_types import MAX_NAME_LENGTH, PROOF_CODE_LENGTH

_NAME_PATTERN = re.compile(rf"[A-Za-z]{{1,{MAX_NAME_LENGTH}}}")
_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz23456789"


def is_valid_name(name: str) -> bool:
    return bool(_NAME_PATTERN.fullmatch(name))


def names_from_display_name(display_name: str) -> list[str]:
    """All valid names embedded in a display name like "Alice | Bob"."""
    parts = (part.strip() for part in display_name.split("|"))
    return [part for part in parts if is_valid_name(part)]


def resolve_sub_scope_name(display_name: str | None, known_names: list[str]) -> str | None:
    candidates = names_from_display_name(display_name or "")
    if candidates:
        return candidates[0]
    return known_names[0] if known_names else None


def generate_proof_code() -> str:
    """One-time code the member places in their profile description."""
    return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(PROOF_CODE_LENGTH))
