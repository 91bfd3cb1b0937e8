"""Content classification: turns one file into a document value."""

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional

from ..utils import decode_text, first_line, normalize_newlines
from .context import BuildContext, ErrorKind
from .links import is_link, resolve_link
from .scripts import BUILTIN_REDUCERS, KNOWN_GLOBALS, ScriptValidator
from .values import DocumentValue, ParsedValue, PlainText, ScriptText

logger = logging.getLogger(__name__)

# Characters allowed in text files: TAB, LF, CR and everything printable
_VALID_TEXT = re.compile("[\t\n\r\u0020-\ufffd\U00010000-\U0010ffff]*")


class ContentClassifier:
    """Decides how a file is loaded and produces its value.

    ``.json`` files are parsed, ``.js`` files are syntax checked, and every
    other file is loaded as text. Problems are reported to the context and a
    placeholder value is returned, so the surrounding build continues.
    """

    def __init__(self, context: BuildContext, validator: ScriptValidator):
        self.context = context
        self.validator = validator

    def classify(self, path: Path) -> DocumentValue:
        """Load a file as a document value.

        Link files are resolved first; the target's extension then decides
        the treatment.

        Args:
            path: File to load

        Returns:
            ParsedValue, ScriptText or PlainText
        """
        if is_link(path):
            resolution = resolve_link(path)
            if not resolution.ok:
                self.context.error(
                    path, resolution.error or "", ErrorKind.LINK_RESOLUTION
                )
                return PlainText("")
            logger.debug(f"Resolved link {path.name} -> {resolution.target}")
            return self._classify_file(resolution.target, origin=path)
        return self._classify_file(path, origin=path)

    def _classify_file(self, path: Path, origin: Path) -> DocumentValue:
        extension = path.suffix
        if extension == ".js":
            return self.load_script(path, origin)
        if extension == ".json":
            return self.load_json(path, origin)
        return self.load_text(path, origin)

    def _read(self, path: Path, origin: Path) -> Optional[str]:
        try:
            return decode_text(path.read_bytes())
        except OSError as e:
            self.context.error(origin, first_line(str(e)), ErrorKind.IO)
            return None

    def read_json(self, path: Path, origin: Path) -> tuple[bool, Any]:
        """Parse a JSON file.

        Returns:
            Tuple of (success, parsed value); the value is None on failure
        """
        text = self._read(path, origin)
        if text is None:
            return False, None

        try:
            value = json.loads(text)
        except json.JSONDecodeError as e:
            self.context.error(origin, e.msg, ErrorKind.PARSE, e.lineno, e.colno)
            return False, None

        self.context.file_assembled()
        return True, value

    def load_json(self, path: Path, origin: Path) -> ParsedValue:
        """Parse a JSON file; returns ``ParsedValue(None)`` on failure."""
        ok, value = self.read_json(path, origin)
        return ParsedValue(value, failed=not ok)

    def load_script(self, path: Path, origin: Path) -> ScriptText:
        """Syntax check a JavaScript file; returns empty text on failure.

        The built-in reducer names are passed through unchecked.
        """
        code = self._read(path, origin)
        if code is None:
            return ScriptText("")

        if code.strip() in BUILTIN_REDUCERS:
            self.context.file_assembled()
            return ScriptText(code.strip())

        result = self.validator.validate(code, KNOWN_GLOBALS)
        for diagnostic in result.diagnostics:
            if diagnostic.is_error:
                self.context.error(
                    origin,
                    diagnostic.message,
                    ErrorKind.SCRIPT,
                    diagnostic.line,
                    diagnostic.column,
                )
            else:
                self.context.warning(
                    origin,
                    diagnostic.message,
                    ErrorKind.SCRIPT,
                    diagnostic.line,
                    diagnostic.column,
                )

        if result.has_errors:
            return ScriptText("")
        self.context.file_assembled()
        return ScriptText(normalize_newlines(result.text))

    def load_text(self, path: Path, origin: Path) -> PlainText:
        """Load a text file, rejecting binary content."""
        text = self._read(path, origin)
        if text is None:
            return PlainText("")

        if not _VALID_TEXT.fullmatch(text):
            self.context.error(origin, "Binary file found.", ErrorKind.BINARY_CONTENT)
            return PlainText("")

        self.context.file_assembled()
        return PlainText(normalize_newlines(text))
