"""Link-file resolution.

A link file (``*.lnk``) holds a single line naming another path, relative to
the folder the link lives in. It lets several documents share one source
file.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..utils import LINK_SUFFIX, decode_text


@dataclass
class LinkResolution:
    """Outcome of resolving a link file."""

    link: Path
    target: Optional[Path] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.target is not None


def is_link(path: Path) -> bool:
    return path.suffix == LINK_SUFFIX


def resolve_link(link: Path) -> LinkResolution:
    """Resolve a link file to the file it names.

    Args:
        link: Path of the ``.lnk`` file

    Returns:
        LinkResolution with either ``target`` or ``error`` set
    """
    try:
        content = decode_text(link.read_bytes()).strip()
    except OSError as e:
        return LinkResolution(link, error=f"Cannot read link: {e.strerror or e}")

    if not content or "\n" in content:
        return LinkResolution(link, error="Link must name exactly one path.")

    target = link.parent / content
    if not target.is_file():
        return LinkResolution(link, error=f"Link target not found: {content}")
    return LinkResolution(link, target=target)
