"""
=============================================================================
PATH RESOLUTION
=============================================================================

Turns a request target into a candidate filesystem path. This module does
NOT decide whether the path may be served. That is the Access Guard's job,
and it runs as late as possible (see guard.py).

=============================================================================
RESOLUTION STEPS
=============================================================================

    Request target                     "/docs/guide"
          │
          ▼
    1. Absolute, rooted at os.sep      /docs/guide
          │                            ("/" alone becomes /index.html,
          │                             or the root itself when there is
          │                             no index.html to list it instead)
          ▼
    2. Strip the root prefix           docs/guide
          │
          ▼
    3. Extension fallback              docs/guide.html
          │                            (only if docs/guide is missing
          │                             AND has no extension)
          ▼
    4. Join with the served directory  /srv/www/docs/guide.html
                                       (made absolute, NOT normalized)

The ".." segments are deliberately kept. pathlib drops "." segments and
duplicate separators, but ".." can only be resolved correctly by the
filesystem (a ".." after a symlink goes to the link TARGET's parent), so
removing it lexically here would make the containment check lie.

=============================================================================
"""

import os
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Optional, Union


INDEX_FILE = "index.html"
FALLBACK_EXTENSION = ".html"


def _exists(path: Path) -> bool:
    # Errors such as ENAMETOOLONG or EACCES mean "not there" for serving
    try:
        return path.exists()
    except (OSError, ValueError):
        return False


@dataclass(frozen=True)
class ResolvedPath:
    """
    A candidate path produced by the resolver.

    Attributes:
        relative: Path relative to the served directory, not canonicalized.
        absolute: The served directory (absolute, not normalized) joined
                  with ``relative``. Canonicalized by the Access Guard, and
                  inspected by the optional external-symlink policy.
    """

    relative: PurePath
    absolute: Path

    def exists(self) -> bool:
        """Whether anything (following symlinks) exists at this path."""
        return _exists(self.absolute)


class PathResolver:
    """
    Maps request targets onto paths below the served directory.

    Usage:
        resolver = PathResolver("/srv/www")
        resolved = resolver.resolve("/")
        resolved.relative   # PurePosixPath('index.html')
    """

    def __init__(
        self,
        root: Union[str, Path],
        index_file: str = INDEX_FILE,
        fallback_extension: str = FALLBACK_EXTENSION,
    ):
        # absolute() keeps symlinks and ".." untouched; resolve() would not
        self.root = Path(root).absolute()
        self.index_file = index_file
        self.fallback_extension = fallback_extension

    def resolve(self, target: str) -> Optional[ResolvedPath]:
        """
        Resolve a request target.

        Args:
            target: Decoded request path, starting with "/".

        Returns:
            The ResolvedPath, or None if no path can be constructed from
            the target (prefix mismatch, embedded NUL byte, ...). Paths the
            filesystem refuses to look up count as missing.
        """
        try:
            return self._resolve(target)
        except ValueError:
            return None

    def _resolve(self, target: str) -> Optional[ResolvedPath]:
        if "\x00" in target:
            raise ValueError("embedded null byte")

        system_root = PurePath(os.sep)

        # Empty components ("//") and "." vanish here, ".." is preserved
        absolute = system_root.joinpath(*target.split("/"))

        if absolute == system_root:
            if not _exists(self.root / self.index_file):
                # No index page: the root itself is listed
                return ResolvedPath(relative=PurePath(), absolute=self.root)
            absolute = absolute / self.index_file

        relative = absolute.relative_to(system_root)

        if not relative.suffix and not _exists(self.root / relative):
            relative = relative.with_name(relative.name + self.fallback_extension)

        return ResolvedPath(relative=relative, absolute=self.root / relative)
