"""Domain entities for GitHub releases."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol


@dataclass(frozen=True)
class Release:
    """Immutable release entity. Two releases are equal when their ids are."""

    id: int
    url: str = field(default="", compare=False)
    tag: str = field(default="", compare=False)
    name: Optional[str] = field(default=None, compare=False)
    publication: Optional[datetime] = field(default=None, compare=False)

    def describe(self) -> str:
        published = self.publication.isoformat() if self.publication else "unpublished"
        return f"{self.tag} (id={self.id}, name={self.name!r}, published={published})"


@dataclass(frozen=True)
class SelectionParams:
    """Which releases to match and how many of them to keep."""

    tag_filter: Optional[str]
    name_filter: Optional[str]
    keep_last_n: int


@dataclass(frozen=True)
class RepositoryCoordinate:
    """Repository to clean up and the token used to access it."""

    owner: str
    repository: str
    token: str = field(repr=False)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repository}"


class ReleaseAccess(Protocol):
    """Operations the cleanup needs from a release hosting backend."""

    def list(self) -> List[Release]:
        ...

    def delete(self, release: Release) -> None:
        ...

    def delete_tag(self, release: Release) -> None:
        ...

    def wait_for_deletion(self, release: Release) -> bool:
        ...
