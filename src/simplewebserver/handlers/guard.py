"""
=============================================================================
ACCESS GUARD
=============================================================================

The last check before a file is opened. It answers one question: is the
thing this path REALLY points at, right now, allowed to be served?

=============================================================================
WHY CANONICALIZE?
=============================================================================

A request path is just a string, and strings lie:

    GET /../../etc/passwd            ".." climbs out of the root
    GET /docs/../../etc/passwd       same thing, hidden deeper
    GET /link/passwd                 "link" is a symlink to /etc

Only the filesystem knows where a path ends up. Canonicalization
(Path.resolve with strict=True) asks it: every symlink is followed and every
"."/".." is applied, producing the unique absolute path of the real entry.
The containment check is done on THAT path, component by component:

    root       /srv/www
    canonical  /srv/www/docs/a.txt     → inside   ✓
    canonical  /etc/passwd             → outside  ✗ (404)
    canonical  /srv/www-private/x      → outside  ✗ (a plain string prefix
                                                    test would accept it!)

=============================================================================
TOCTOU
=============================================================================

Time-of-check/time-of-use: a file can change between the moment we check
it and the moment we open it. The guard keeps that window as small as it
can be:

    resolve() ──► contained? ──► blacklisted? ──► open(canonical)
       │                                              │
       └──────────── microseconds, same thread ───────┘

and the content server then reads through the descriptor it opened, so no
second path lookup ever happens. If the entry disappears between the
resolver's existence check and resolve(), canonicalization fails and the
request gets a 404 with a TOCTOU notice in the log.

=============================================================================
EXTERNAL SYMLINKS (optional)
=============================================================================

With ``allow_external_symlinks`` the operator may keep symlinks inside the
root that point anywhere. If the requested path ITSELF is a symlink, the
guard lexically normalizes its location (os.path.normpath, no syscalls, no
further link following) and accepts it when that location is inside the
root. Off by default.

=============================================================================
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Union

from .blacklist import Blacklist
from .paths import ResolvedPath


logger = logging.getLogger(__name__)


# Capability flag: the external-symlink policy needs a platform with
# symlinks. Elsewhere the option is accepted and ignored.
EXTERNAL_SYMLINKS_SUPPORTED = hasattr(os, "symlink")


class DenialReason(Enum):
    """Why the guard refused a path. Never visible on the wire."""

    TRAVERSAL = "traversal"        # Canonical path escapes the root
    BLACKLISTED = "blacklisted"    # Canonical path is in the blacklist
    VANISHED = "vanished"          # Entry disappeared before canonicalization


class AccessDenied(Exception):
    """
    Raised when the guard refuses a path.

    Every reason maps to the same 404 response. The reason and path exist
    for logging only.
    """

    def __init__(self, reason: DenialReason, path: Union[str, Path]):
        super().__init__(f"{reason.value}: {path}")
        self.reason = reason
        self.path = path


def is_within(path: Path, root: Path) -> bool:
    """Component-wise containment: is ``path`` equal to or below ``root``?"""
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


class AccessGuard:
    """
    Canonicalizes candidate paths and enforces containment and blacklist.

    Usage:
        guard = AccessGuard("/srv/www", blacklist)
        try:
            canonical = guard.authorize(resolved)
        except AccessDenied as e:
            ...  # 404
    """

    def __init__(
        self,
        root: Union[str, Path],
        blacklist: Blacklist,
        allow_external_symlinks: bool = False,
    ):
        self.root = Path(root).resolve(strict=True)
        self.blacklist = blacklist

        if allow_external_symlinks and not EXTERNAL_SYMLINKS_SUPPORTED:
            logger.warning("External symlinks are not supported on this platform; ignoring")
            allow_external_symlinks = False
        self.allow_external_symlinks = allow_external_symlinks

    def authorize(self, resolved: ResolvedPath) -> Path:
        """
        Validate a resolved path.

        Args:
            resolved: Output of the PathResolver.

        Returns:
            The canonical path, which is the path the caller must open.

        Raises:
            AccessDenied: With reason VANISHED, TRAVERSAL or BLACKLISTED.
        """
        # ─────────────────────────────────────────────────────────────────
        # 1. CANONICALIZE
        # ─────────────────────────────────────────────────────────────────
        try:
            canonical = resolved.absolute.resolve(strict=True)
        except (OSError, RuntimeError) as e:
            # RuntimeError: symlink loop on Python < 3.13
            logger.error(f"!!! TOCTOU prevented: {resolved.relative} ({e}) !!!")
            raise AccessDenied(DenialReason.VANISHED, resolved.relative) from e

        # ─────────────────────────────────────────────────────────────────
        # 2. CONTAINMENT
        # ─────────────────────────────────────────────────────────────────
        if not is_within(canonical, self.root) and not self._external_symlink_ok(resolved):
            logger.warning(f"!!! Directory escape prevented: {canonical} !!!")
            raise AccessDenied(DenialReason.TRAVERSAL, canonical)

        # ─────────────────────────────────────────────────────────────────
        # 3. BLACKLIST
        # ─────────────────────────────────────────────────────────────────
        if canonical in self.blacklist:
            logger.warning(f"Blocked request for blacklisted file: {canonical}")
            raise AccessDenied(DenialReason.BLACKLISTED, canonical)

        return canonical

    def _external_symlink_ok(self, resolved: ResolvedPath) -> bool:
        if not self.allow_external_symlinks:
            return False

        try:
            if not resolved.absolute.is_symlink():
                return False
        except OSError:
            return False

        location = Path(os.path.normpath(resolved.absolute))
        if is_within(location, self.root):
            logger.info(f"Allowing external symlink: {location}")
            return True
        return False
