"""Owner handle -> member identities.

``@alice`` is an individual.  ``@org/team`` is looked up in the team
directory; when that lookup fails for any reason the team slug itself is
treated as a single individual, so a broken lookup never blocks the check.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from ownergate.models import Membership, MembershipSource
from ownergate.ports import TeamDirectory

log = logging.getLogger("ownergate.membership")


def clean_handle(handle: str) -> str:
    return handle[1:] if handle.startswith("@") else handle


async def resolve_membership(handle: str, directory: TeamDirectory) -> Membership:
    cleaned = clean_handle(handle)

    if "/" not in cleaned:
        return Membership(handle=handle, members=[cleaned], source=MembershipSource.INDIVIDUAL)

    parts = cleaned.split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        log.warning("Invalid team format: %s", handle)
        return Membership(handle=handle, members=[], source=MembershipSource.INVALID)

    org, team = parts
    try:
        log.info("Fetching members for team: %s/%s", org, team)
        members = list(await directory.list_team_members(org, team))
    except Exception as exc:
        log.warning("Failed to fetch team members for %s: %s", handle, exc)
        return Membership(handle=handle, members=[team], source=MembershipSource.FALLBACK)

    log.info("Team %s has %d members: %s", handle, len(members), ", ".join(members))
    return Membership(handle=handle, members=members, source=MembershipSource.TEAM)


async def resolve_memberships(
    handles: Iterable[str],
    directory: TeamDirectory,
) -> dict[str, Membership]:
    """Resolve every distinct handle concurrently, keyed in input order."""
    distinct = list(dict.fromkeys(handles))
    resolved = await asyncio.gather(*(resolve_membership(h, directory) for h in distinct))
    return dict(zip(distinct, resolved))
