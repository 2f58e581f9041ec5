"""Application service for deleting stale releases."""

import logging
from dataclasses import dataclass, field
from typing import List

from release_cleanup.domain.release import Release, ReleaseAccess, SelectionParams
from release_cleanup.domain.selection import filter_by_pattern, select_for_deletion, sort_by_publication

logger = logging.getLogger(__name__)


def _listing(releases: List[Release]) -> str:
    return "\n".join(f"  - {release.describe()}" for release in releases)


@dataclass
class CleanupSummary:
    """Outcome of a cleanup run."""

    found: List[Release] = field(default_factory=list)
    matching: List[Release] = field(default_factory=list)
    selected: List[Release] = field(default_factory=list)
    deleted: List[Release] = field(default_factory=list)
    failed: List[Release] = field(default_factory=list)

    def format(self) -> str:
        sections = [
            ("Releases found", self.found),
            ("Releases matching filters", self.matching),
            ("Releases selected for deletion", self.selected),
        ]
        if self.failed:
            sections.append(("Releases that could not be deleted", self.failed))

        lines = []
        for title, releases in sections:
            lines.append(f"{title}: {len(releases)}")
            if releases:
                lines.append(_listing(releases))
        return "\n".join(lines)


class CleanupService:
    """Service for selecting releases outside the retention window and deleting them."""

    def __init__(self, access: ReleaseAccess, dry_run: bool = False):
        """
        Initialize cleanup service.

        Args:
            access: Backend used to list and delete releases
            dry_run: If True, report what would be deleted without deleting
        """
        self.access = access
        self.dry_run = dry_run

    def run(self, params: SelectionParams) -> CleanupSummary:
        """
        List, filter and delete releases.

        A failure while deleting one release is logged and does not stop
        the others. A failure while listing propagates.

        Args:
            params: Filters and retention count

        Returns:
            Summary of found, matching and selected releases
        """
        releases = self.access.list()
        logger.info(f"Found {len(releases)} releases")
        logger.info(f"Tag filter: {params.tag_filter}, name filter: {params.name_filter}, keep last {params.keep_last_n}")

        filtered = filter_by_pattern(releases, params.tag_filter, params.name_filter)
        if filtered:
            filtered = sort_by_publication(filtered)
        to_delete = select_for_deletion(filtered, params.keep_last_n)
        to_delete_ids = {release.id for release in to_delete}

        summary = CleanupSummary(found=list(releases), matching=filtered, selected=to_delete)

        for release in filtered:
            if release.id not in to_delete_ids:
                logger.info(f"Keeping release with tag {release.tag}")
                continue

            if self.dry_run:
                logger.info(f"Would remove release with tag {release.tag} (dry run)")
                continue

            logger.info(f"Removing release with tag {release.tag}")
            try:
                self.access.delete(release)
                self.access.delete_tag(release)
                self.access.wait_for_deletion(release)
                summary.deleted.append(release)
            except Exception as e:
                logger.error(f"Error while deleting release {release.describe()}: {e}")
                summary.failed.append(release)

        return summary
