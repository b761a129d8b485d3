"""
Blacklisted paths.

The blacklist is a frozen set of canonical absolute paths that are never
served and never shown in a directory listing. It is built once at startup
and only read afterwards, so concurrent workers can consult it without a
lock.

Entries are canonicalized non-strictly: a name that does not exist yet
(for example a log file that will be created later) is still blocked once
it appears, as long as its parent directories don't change.
"""

import logging
from pathlib import Path
from typing import FrozenSet, Iterable, Union


logger = logging.getLogger(__name__)


class Blacklist:
    """
    Immutable set of canonical paths excluded from serving and listing.

    Usage:
        blacklist = Blacklist.from_names("/srv/www", ["secret.txt"])
        Path("/srv/www/secret.txt") in blacklist   # True
    """

    def __init__(self, paths: Iterable[Union[str, Path]] = ()):
        self._paths: FrozenSet[Path] = frozenset(
            Path(p).resolve(strict=False) for p in paths
        )

    @classmethod
    def from_names(cls, root: Union[str, Path], names: Iterable[str]) -> "Blacklist":
        """
        Build a blacklist from file names relative to root.

        Args:
            root: The served directory.
            names: File names relative to root. Empty names are skipped.
        """
        root_path = Path(root)
        blacklist = cls(root_path / name for name in names if name)
        for path in sorted(blacklist.paths):
            logger.debug(f"Blacklisted: {path}")
        return blacklist

    @property
    def paths(self) -> FrozenSet[Path]:
        return self._paths

    def __contains__(self, path: object) -> bool:
        """Membership test for an already canonical path."""
        if not isinstance(path, (str, Path)):
            return False
        return Path(path) in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def __bool__(self) -> bool:
        return bool(self._paths)

    def __repr__(self) -> str:
        return f"Blacklist({sorted(str(p) for p in self._paths)!r})"
