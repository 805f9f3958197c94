from __future__ import annotations

import logging
from typing import Iterable

from analytics_sync.domain.models import Group, GroupProfiles, ProfileMeta

logger = logging.getLogger(__name__)

UNGROUPED_ID = "default"
UNGROUPED_NAME = "Ungrouped Profiles"


def assemble_groups(groups: Iterable[Group], profiles: Iterable[ProfileMeta]) -> list[GroupProfiles]:
    """Buckets profiles under every known group they list, in directory order.

    Profiles that list no known group end up in the ungrouped bucket; groups
    without profiles are dropped.
    """
    buckets: dict[str, GroupProfiles] = {
        group.group_id: GroupProfiles(group_id=group.group_id, group_name=group.name) for group in groups
    }
    ungrouped = GroupProfiles(group_id=UNGROUPED_ID, group_name=UNGROUPED_NAME)
    for profile in profiles:
        known = [group_id for group_id in profile.group_ids if group_id in buckets]
        if not known:
            ungrouped.profiles.append(profile)
            continue
        for group_id in known:
            buckets[group_id].profiles.append(profile)

    assembled = [bucket for bucket in buckets.values() if bucket.profiles]
    skipped = len(buckets) - len(assembled)
    if skipped:
        logger.info("Skipping %s group(s) without profiles", skipped)
    if ungrouped.profiles:
        assembled.append(ungrouped)
    return assembled
