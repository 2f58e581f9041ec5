"""Release selection: pattern filtering and keep-last-N retention."""

import re
from typing import List, Optional, Sequence

from release_cleanup.domain.release import Release


def _full_match(pattern: Optional[str], value: Optional[str]) -> bool:
    if pattern is None:
        return True
    return re.fullmatch(pattern, value or "") is not None


def filter_by_pattern(
    releases: Sequence[Release],
    tag_pattern: Optional[str] = None,
    name_pattern: Optional[str] = None,
) -> List[Release]:
    """
    Keep the releases whose tag and name fully match the given patterns.

    A pattern must match the whole field, not a substring of it. A pattern
    left as None matches everything.

    Args:
        releases: Releases to filter
        tag_pattern: Regular expression for the tag name
        name_pattern: Regular expression for the release name

    Returns:
        Matching releases, in input order
    """
    return [
        release
        for release in releases
        if _full_match(tag_pattern, release.tag) and _full_match(name_pattern, release.name)
    ]


def sort_by_publication(releases: Sequence[Release]) -> List[Release]:
    """Sort oldest first; releases without a publication date come before all others."""
    return sorted(releases, key=lambda r: (r.publication is not None, r.publication))


def select_for_deletion(releases: Sequence[Release], keep_last_n: int) -> List[Release]:
    """
    Compute which releases fall outside the retention window.

    Args:
        releases: Releases that matched the filters
        keep_last_n: Number of most recently published releases to keep.
            Zero or negative means nothing is kept.

    Returns:
        Releases to delete, oldest first (input order when nothing is kept)
    """
    if not releases:
        return []
    if keep_last_n <= 0:
        return list(releases)
    if keep_last_n >= len(releases):
        return []
    return sort_by_publication(releases)[: len(releases) - keep_last_n]
