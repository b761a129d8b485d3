"""
Directory listing pages.

Renders the immediate entries of a directory as an HTML page. Blacklisted
entries are left out: the check is done on each entry's canonical path, so
a symlink pointing at a blacklisted file is hidden too.
"""

import html
import logging
import os
from pathlib import Path
from urllib.parse import quote

from .blacklist import Blacklist
from ..http.response import HTTPResponse, ResponseBuilder, internal_error


logger = logging.getLogger(__name__)


LISTING_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{title}</title>
    <style>
        body {{ font-family: monospace; padding: 20px; }}
        h1 {{ border-bottom: 1px solid #ccc; padding-bottom: 10px; }}
        ul {{ list-style: none; padding: 0; }}
        li {{ padding: 5px 0; }}
        a {{ text-decoration: none; color: #0066cc; }}
        a:hover {{ text-decoration: underline; }}
    </style>
</head>
<body>
    <h1>{title}</h1>
    <ul>
{entries}
    </ul>
</body>
</html>
"""


def entry_href(request_path: str, name: str) -> str:
    """
    Link target for a directory entry.

        entry_href("/", "a.txt")        → "/a.txt"
        entry_href("/docs", "a.txt")    → "/docs/a.txt"
        entry_href("/docs/", "a.txt")   → "/docs/a.txt"
    """
    return quote(request_path.rstrip("/") + "/" + name)


class DirectoryListing:
    """
    Builds listing responses for directories below the root.

    Usage:
        listing = DirectoryListing(blacklist)
        response = listing.render(Path("/srv/www/docs"), "/docs")
    """

    def __init__(self, blacklist: Blacklist):
        self.blacklist = blacklist

    def render(self, directory: Path, request_path: str) -> HTTPResponse:
        """
        Render the listing of ``directory``.

        Args:
            directory: Canonical path of the directory.
            request_path: Decoded request path, shown as the heading and
                          used as the prefix of every link.

        Returns:
            200 with the HTML page, or 500 if the directory can't be read.
        """
        try:
            with os.scandir(directory) as it:
                names = sorted(
                    entry.name for entry in it
                    if not self._is_blacklisted(Path(entry.path))
                )
        except OSError as e:
            logger.error(f"Failed to enumerate directory {directory}: {e}")
            return internal_error()

        entries = "\n".join(
            f'        <li><a href="{html.escape(entry_href(request_path, name))}">'
            f"{html.escape(name)}</a></li>"
            for name in names
        )

        page = LISTING_TEMPLATE.format(
            title=html.escape(request_path),
            entries=entries,
        )
        return ResponseBuilder().html(page).build()

    def _is_blacklisted(self, path: Path) -> bool:
        if not self.blacklist:
            return False
        try:
            canonical = path.resolve(strict=False)
        except (OSError, RuntimeError):
            # Can't tell where it points, so don't advertise it
            return True
        return canonical in self.blacklist
