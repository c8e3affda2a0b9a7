"""Auxiliary Lookup Gathering — fetches only the data the active policy branches read.

Invariants:
    - Lookups not named by required_lookups(policy) are never fetched
    - Fetches run concurrently; an unavailable source stays None in AuxiliaryLookups
    - Logged completions come from the identity store, scoped to the community
"""

import asyncio

from gatekeeper.core.repository_protocols import ProfileService
from gatekeeper.core.requirement_policy import RequirementPolicy
from gatekeeper.core.requirement_rules import AuxiliaryLookups, required_lookups
from gatekeeper.services.identity_store import IdentityStore


async def _none():
    return None


async def gather_lookups(
    profiles: ProfileService,
    store: IdentityStore,
    policy: RequirementPolicy,
    name: str,
    member_id: str,
    community_id: str,
) -> AuxiliaryLookups:
    needed = required_lookups(policy)
    graveyard, exaltations = await asyncio.gather(
        profiles.get_graveyard_summary(name) if needed.graveyard else _none(),
        profiles.get_exaltation(name) if needed.exaltations else _none(),
    )
    logged: dict[str, int] = {}
    if needed.logged_completions:
        logged = await store.completed_runs(member_id, community_id)
    return AuxiliaryLookups(
        graveyard=graveyard, exaltations=exaltations, logged_completions=logged,
    )
