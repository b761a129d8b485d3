"""
=============================================================================
HANDLERS MODULE
=============================================================================

Everything between "we have a request path" and "bytes are on the wire".

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Module        │ Responsibility                                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │ paths.py      │ Request target → candidate path (index, .html)      │
    │ guard.py      │ Canonicalize, containment, blacklist (TOCTOU-aware) │
    │ blacklist.py  │ Immutable set of never-served canonical paths       │
    │ listing.py    │ HTML directory listings, blacklist-filtered         │
    │ static.py     │ Orchestrates the above and streams files            │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .blacklist import Blacklist
from .paths import PathResolver, ResolvedPath
from .guard import AccessGuard, AccessDenied, DenialReason
from .listing import DirectoryListing
from .static import StaticFileHandler

__all__ = [
    "Blacklist",
    "PathResolver",
    "ResolvedPath",
    "AccessGuard",
    "AccessDenied",
    "DenialReason",
    "DirectoryListing",
    "StaticFileHandler",
]
