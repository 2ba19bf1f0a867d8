"""Unit patch for SVG written to standard output."""
from __future__ import annotations

import re

_PX_HEADER = re.compile(rb'^(<svg width="\d+)px(" height="\d+)px(")', re.MULTILINE)


def px_to_pt(svg: bytes) -> bytes:
    """Rewrite a ``<svg width="Npx" height="Npx"`` header line to ``pt`` units.

    Only the first line-anchored root header is touched; any other ``px`` in
    the document is left as is.
    """
    return _PX_HEADER.sub(rb"\1pt\2pt\3", svg, count=1)
