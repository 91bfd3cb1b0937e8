"""Utility functions shared by the assembler and the sync engine."""

from pathlib import Path
from typing import Optional
from urllib.parse import unquote

# =============================================================================
# Constants
# =============================================================================

# Namespace prefix carried by every design document identifier
DESIGN_PREFIX: str = "_design/"

# Folder holding design documents, one subdirectory per document
DESIGN_FOLDER: str = "_design"

# Folder holding local (non-replicated) documents, never pushed
LOCAL_FOLDER: str = "_local"

# Reserved folder name for binary resources
ATTACHMENTS_FOLDER: str = "_attachments"

# Suffix of link files naming another path
LINK_SUFFIX: str = ".lnk"

# Default HTTP timeout for database requests
DEFAULT_TIMEOUT: float = 30.0


# =============================================================================
# Text utilities
# =============================================================================


def normalize_newlines(text: str) -> str:
    """Convert CRLF and lone CR line endings to LF.

    Examples:
        >>> normalize_newlines("a\\r\\nb\\rc")
        'a\\nb\\nc'
    """
    return text.replace("\r\n", "\n").replace("\r", "\n")


def detect_charset(data: bytes) -> Optional[str]:
    """Sniff the character encoding of a byte string.

    Byte order marks are checked first. Without a BOM, data of at least
    16 bytes that decodes as strict UTF-8 is reported as UTF-8.

    Args:
        data: Raw file content

    Returns:
        Encoding name, or None if the content is too short or not UTF-8
    """
    if len(data) < 2:
        return None
    if data[:2] == b"\xfe\xff":
        return "utf-16be"
    if data[:2] == b"\xff\xfe":
        if len(data) < 4 or data[2:4] != b"\x00\x00":
            return "utf-16le"
        return "utf-32le"

    if len(data) < 3:
        return None
    if data[:3] == b"\xef\xbb\xbf":
        return "utf-8"

    if len(data) < 4:
        return None
    if data[:4] == b"\x00\x00\xfe\xff":
        return "utf-32be"
    if data[:4] == b"\x84\x31\x95\x33":
        return "gb18030"

    if len(data) < 16:
        return None

    try:
        data.decode("utf-8", errors="strict")
    except UnicodeDecodeError:
        return None
    return "utf-8"


def decode_text(data: bytes) -> str:
    """Decode file content, honouring a byte order mark if present.

    Content without a BOM is decoded as UTF-8; invalid sequences become
    U+FFFD rather than failing.
    """
    charset = detect_charset(data) or "utf-8"
    text = data.decode(charset, errors="replace")
    if text.startswith("\ufeff"):
        text = text[1:]
    return text


# =============================================================================
# Path utilities
# =============================================================================


def relative_key(path: Path, base_path: Path) -> str:
    """Return the forward-slash, percent-decoded path of ``path`` under ``base_path``.

    Examples:
        >>> relative_key(Path("/a/img/my%20logo.png"), Path("/a"))
        'img/my logo.png'
    """
    return unquote(path.relative_to(base_path).as_posix())


def format_origin(
    origin: str, line: Optional[int] = None, column: Optional[int] = None
) -> str:
    """Format a diagnostic origin as ``path(line,column)``.

    Examples:
        >>> format_origin("views/map.js", 3, 7)
        'views/map.js(3,7)'
        >>> format_origin("views/map.js", 3)
        'views/map.js(3)'
        >>> format_origin("views/map.js")
        'views/map.js'
    """
    if line:
        if column:
            return f"{origin}({line},{column})"
        return f"{origin}({line})"
    return origin


def first_line(message: str) -> str:
    """Return the first line of an exception message."""
    message = message.strip()
    return message.splitlines()[0] if message else message


def format_size(size_bytes: int) -> str:
    """Format a byte count in human-readable form.

    Examples:
        >>> format_size(256)
        '256 B'
        >>> format_size(1536)
        '1.5 KB'
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
