"""Attachment building for ``_attachments`` folders."""

import logging
import mimetypes
from pathlib import Path
from typing import Optional

from ..utils import LINK_SUFFIX, detect_charset, first_line, relative_key
from .context import BuildContext, ErrorKind
from .links import is_link, resolve_link
from .values import Attachment, AttachmentSet

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Types served as text, checked before the mimetypes registry
TEXT_CONTENT_TYPES: dict[str, str] = {
    ".txt": "text/plain",
    ".htm": "text/html",
    ".html": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".ics": "text/calendar",
    ".vcf": "text/vcard",
    ".csv": "text/csv",
    ".md": "text/markdown",
    ".xml": "application/xml",
    ".xhtml": "application/xhtml+xml",
    ".rss": "application/rss+xml",
    ".atom": "application/atom+xml",
    ".json": "application/json",
}


def guess_content_type(key: str) -> tuple[str, bool]:
    """Guess the MIME type of an attachment from its name.

    Args:
        key: Attachment key or file name

    Returns:
        Tuple of (content type, is textual)

    Examples:
        >>> guess_content_type("index.html")
        ('text/html', True)
        >>> guess_content_type("logo.png")
        ('image/png', False)
    """
    extension = Path(key).suffix.lower()
    content_type = TEXT_CONTENT_TYPES.get(extension)
    if content_type is not None:
        return content_type, True

    content_type, _ = mimetypes.guess_type(key, strict=False)
    if not content_type:
        content_type = DEFAULT_CONTENT_TYPE
    return content_type, content_type.startswith("text/")


def get_content_type(key: str, data: bytes) -> str:
    """Return the content type of an attachment, with a charset for text.

    Examples:
        >>> get_content_type("notes.txt", b"plain ascii text, long enough")
        'text/plain; charset=utf-8'
        >>> get_content_type("notes.txt", b"short")
        'text/plain'
    """
    content_type, textual = guess_content_type(key)
    if textual:
        charset = detect_charset(data)
        if charset is not None:
            content_type += f"; charset={charset}"
    return content_type


class AttachmentBuilder:
    """Builds an attachment set from a folder and all of its subfolders."""

    def __init__(self, context: BuildContext):
        self.context = context

    def build(self, directory: Path) -> AttachmentSet:
        """Collect every file below ``directory`` as an attachment.

        Keys are paths relative to ``directory`` with forward slashes. A
        ``.lnk`` file contributes its target's content under its own key
        minus the ``.lnk`` suffix. A failing file is reported and skipped;
        the rest of the set is still built.

        Args:
            directory: The ``_attachments`` folder

        Returns:
            AttachmentSet, possibly partial
        """
        result = AttachmentSet()
        try:
            files = sorted(p for p in directory.rglob("*") if p.is_file())
        except OSError as e:
            self.context.error(directory, first_line(str(e)), ErrorKind.IO)
            return result

        for path in files:
            if self.context.exclude_dot_files and self._is_dot_path(path, directory):
                continue
            attachment = self._build_attachment(path, directory)
            if attachment is not None:
                result.attachments[attachment.key] = attachment

        logger.debug(
            f"Built {len(result.attachments)} attachment(s) from "
            f"{self.context.relative(directory)}"
        )
        return result

    @staticmethod
    def _is_dot_path(path: Path, directory: Path) -> bool:
        return any(part.startswith(".") for part in path.relative_to(directory).parts)

    def _build_attachment(self, path: Path, directory: Path) -> Optional[Attachment]:
        key = relative_key(path, directory)
        source = path

        if is_link(path):
            resolution = resolve_link(path)
            if not resolution.ok:
                self.context.error(
                    path, resolution.error or "", ErrorKind.LINK_RESOLUTION
                )
                return None
            key = key[: -len(LINK_SUFFIX)]
            source = resolution.target

        try:
            data = source.read_bytes()
        except OSError as e:
            self.context.error(path, first_line(str(e)), ErrorKind.IO)
            return None

        self.context.file_assembled()
        return Attachment(key=key, data=data, content_type=get_content_type(key, data))
