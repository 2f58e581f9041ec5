from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from release_cleanup.application.cleanup_service import CleanupService, CleanupSummary
from release_cleanup.domain.release import Release, SelectionParams
from release_cleanup.infrastructure.github_client import ReleaseListingError

START = datetime(2021, 1, 1, tzinfo=timezone.utc)


def _release(id: int, tag: str, day: int | None) -> Release:
    publication = None if day is None else START + timedelta(days=day)
    return Release(id=id, url=f"https://api.example.com/releases/{id}", tag=tag, name=tag, publication=publication)


class FakeAccess:
    def __init__(self, releases: list[Release], failing: set[int] | None = None) -> None:
        self.releases = releases
        self.failing = failing or set()
        self.calls: list[tuple[str, int]] = []

    def list(self) -> list[Release]:
        return list(self.releases)

    def delete(self, release: Release) -> None:
        self.calls.append(("delete", release.id))
        if release.id in self.failing:
            raise RuntimeError("release is stuck")

    def delete_tag(self, release: Release) -> None:
        self.calls.append(("delete_tag", release.id))

    def wait_for_deletion(self, release: Release) -> bool:
        self.calls.append(("wait", release.id))
        return True


class FailingListAccess(FakeAccess):
    def list(self) -> list[Release]:
        raise ReleaseListingError("page 2 could not be fetched")


RELEASES = [
    _release(1, "v1.0.0-alpha.1", 3),
    _release(2, "v1.0.0", 1),
    _release(3, "v1.0.0-alpha.2", None),
    _release(4, "v1.0.0-alpha.3", 5),
    _release(5, "v1.0.0-alpha.4", 4),
]


def test_run_deletes_oldest_matching_releases_in_order() -> None:
    access = FakeAccess(RELEASES)

    summary = CleanupService(access).run(SelectionParams(r"v1\.0\.0-alpha\.\d+", None, 2))

    assert [r.id for r in summary.found] == [1, 2, 3, 4, 5]
    assert [r.id for r in summary.matching] == [3, 1, 5, 4]
    assert [r.id for r in summary.selected] == [3, 1]
    assert access.calls == [
        ("delete", 3),
        ("delete_tag", 3),
        ("wait", 3),
        ("delete", 1),
        ("delete_tag", 1),
        ("wait", 1),
    ]
    assert [r.id for r in summary.deleted] == [3, 1]
    assert summary.failed == []


def test_one_failing_release_does_not_stop_the_batch(caplog: pytest.LogCaptureFixture) -> None:
    access = FakeAccess(RELEASES, failing={1})

    summary = CleanupService(access).run(SelectionParams(r"v1\.0\.0-alpha\.\d+", None, 1))

    assert [r.id for r in summary.selected] == [3, 1, 5]
    assert ("delete", 1) in access.calls
    assert ("delete_tag", 1) not in access.calls
    for release_id in (3, 5):
        assert ("delete", release_id) in access.calls
        assert ("delete_tag", release_id) in access.calls
    assert [r.id for r in summary.deleted] == [3, 5]
    assert [r.id for r in summary.failed] == [1]
    assert "release is stuck" in caplog.text


def test_keep_zero_deletes_every_match() -> None:
    access = FakeAccess(RELEASES)

    summary = CleanupService(access).run(SelectionParams(None, r"v1\.0\.0", 0))

    assert [r.id for r in summary.selected] == [2]
    assert access.calls == [("delete", 2), ("delete_tag", 2), ("wait", 2)]


def test_keep_more_than_matching_deletes_nothing() -> None:
    access = FakeAccess(RELEASES)

    summary = CleanupService(access).run(SelectionParams(r"v1.*", None, 10))

    assert summary.selected == []
    assert access.calls == []


def test_no_match() -> None:
    access = FakeAccess(RELEASES)

    summary = CleanupService(access).run(SelectionParams(r"v2.*", None, 1))

    assert summary.matching == []
    assert summary.selected == []
    assert access.calls == []


def test_dry_run_deletes_nothing() -> None:
    access = FakeAccess(RELEASES)

    summary = CleanupService(access, dry_run=True).run(SelectionParams(r"v1\.0\.0-alpha\.\d+", None, 2))

    assert [r.id for r in summary.selected] == [3, 1]
    assert summary.deleted == []
    assert access.calls == []


def test_listing_failure_propagates() -> None:
    with pytest.raises(ReleaseListingError):
        CleanupService(FailingListAccess([])).run(SelectionParams(r".*", None, 1))


def test_summary_format() -> None:
    summary = CleanupSummary(
        found=RELEASES,
        matching=RELEASES[:2],
        selected=[RELEASES[0]],
        failed=[RELEASES[0]],
    )

    text = summary.format()

    assert "Releases found: 5" in text
    assert "Releases matching filters: 2" in text
    assert "Releases selected for deletion: 1" in text
    assert "Releases that could not be deleted: 1" in text
    assert "v1.0.0-alpha.1 (id=1" in text
    assert "v1.0.0-alpha.2 (id=3, name='v1.0.0-alpha.2', published=unpublished)" in text


def test_summary_format_when_empty() -> None:
    assert CleanupSummary().format() == (
        "Releases found: 0\nReleases matching filters: 0\nReleases selected for deletion: 0"
    )
