"""Run context shared by every assembly and sync step.

Components never raise for bad input files. They report a diagnostic to the
context and carry on with a placeholder value, so a single run surfaces
every problem in the tree. The push is gated on :attr:`BuildContext.has_failed`.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from ..utils import format_origin

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ErrorKind(str, Enum):
    """Categories of problems found during a run."""

    PARSE = "parse"
    """Malformed JSON"""

    SCRIPT = "script"
    """JavaScript rejected by the validator"""

    BINARY_CONTENT = "binary_content"
    """Disallowed characters in a text file"""

    MISSING_IDENTIFIER = "missing_identifier"
    """Document without a required _id"""

    INVALID_DOCUMENT_SHAPE = "invalid_document_shape"
    """Non-object where a document was expected"""

    DUPLICATE_IDENTIFIER = "duplicate_identifier"
    """Two documents with the same _id"""

    LINK_RESOLUTION = "link_resolution"
    """Link file pointing at a missing path"""

    IO = "io"
    """Filesystem access failure"""

    REMOTE_WRITE = "remote_write"
    """Database refused a document or the whole request"""

    FATAL = "fatal"
    """Failure not tied to a single file"""


@dataclass(frozen=True)
class Diagnostic:
    """One reported problem."""

    severity: Severity
    kind: ErrorKind
    message: str
    origin: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def __str__(self) -> str:
        if self.origin is None:
            return f"Fatal error: {self.message}"
        origin = format_origin(self.origin, self.line, self.column)
        return f"{origin}: {self.severity.value}: {self.message}"


class BuildContext:
    """Collects diagnostics and counters for one run.

    Safe to share between threads: appends are serialized by a lock and no
    order is promised between diagnostics reported by different threads.

    Examples:
        >>> ctx = BuildContext(Path("/src"))
        >>> ctx.error(Path("/src/a.json"), "Unexpected token", ErrorKind.PARSE, 1, 2)
        >>> ctx.has_failed
        True
        >>> str(ctx.diagnostics[0])
        'a.json(1,2): error: Unexpected token'
    """

    def __init__(
        self,
        root: Path,
        minify: bool = False,
        exclude_dot_files: bool = False,
        callback: Optional[Callable[[Diagnostic], None]] = None,
    ):
        """Initialize the context.

        Args:
            root: Source root; origins are reported relative to it
            minify: Whether JavaScript sources are minified
            exclude_dot_files: Whether entries starting with a dot are skipped
            callback: Optional function called with every new diagnostic
        """
        self.root = root
        self.minify = minify
        self.exclude_dot_files = exclude_dot_files
        self.callback = callback
        self._diagnostics: list[Diagnostic] = []
        self._files_assembled = 0
        self._lock = threading.Lock()

    @property
    def diagnostics(self) -> list[Diagnostic]:
        with self._lock:
            return list(self._diagnostics)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.is_error]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if not d.is_error]

    @property
    def has_failed(self) -> bool:
        return any(d.is_error for d in self.diagnostics)

    @property
    def files_assembled(self) -> int:
        """Number of files turned into document values without error."""
        with self._lock:
            return self._files_assembled

    def file_assembled(self) -> None:
        with self._lock:
            self._files_assembled += 1

    def relative(self, path: Union[Path, str]) -> str:
        """Return ``path`` relative to the source root, with forward slashes."""
        if isinstance(path, str):
            return path
        try:
            relative = path.relative_to(self.root).as_posix()
        except ValueError:
            return path.as_posix()
        return relative if relative != "." else self.root.name

    def report(self, diagnostic: Diagnostic) -> None:
        with self._lock:
            self._diagnostics.append(diagnostic)
        if diagnostic.is_error:
            logger.debug(f"Recorded {diagnostic.kind.value} error: {diagnostic}")
        if self.callback is not None:
            self.callback(diagnostic)

    def error(
        self,
        origin: Union[Path, str],
        message: str,
        kind: ErrorKind,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        """Record an error against a file, folder or document id."""
        self.report(
            Diagnostic(
                severity=Severity.ERROR,
                kind=kind,
                message=message,
                origin=self.relative(origin),
                line=line,
                column=column,
            )
        )

    def warning(
        self,
        origin: Union[Path, str],
        message: str,
        kind: ErrorKind,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        """Record a warning; warnings never fail the run."""
        self.report(
            Diagnostic(
                severity=Severity.WARNING,
                kind=kind,
                message=message,
                origin=self.relative(origin),
                line=line,
                column=column,
            )
        )

    def fatal(self, message: str, kind: ErrorKind = ErrorKind.FATAL) -> None:
        """Record an error with no file origin."""
        self.report(Diagnostic(severity=Severity.ERROR, kind=kind, message=message))
