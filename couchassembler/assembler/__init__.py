"""Document assembler - turns a folder tree into JSON documents."""

from .attachments import AttachmentBuilder, get_content_type, guess_content_type
from .builder import DocumentTreeBuilder, LooseValue, design_root_for
from .classifier import ContentClassifier
from .context import BuildContext, Diagnostic, ErrorKind, Severity
from .identifiers import IdentifierResolver, normalize_design_id
from .links import LinkResolution, resolve_link
from .scripts import (
    KNOWN_GLOBALS,
    ScriptDiagnostic,
    ScriptValidation,
    ScriptValidator,
)
from .values import (
    Attachment,
    AttachmentSet,
    Document,
    DocumentValue,
    NestedDocument,
    ParsedValue,
    PlainText,
    ScriptText,
)

__all__ = [
    "AttachmentBuilder",
    "get_content_type",
    "guess_content_type",
    "DocumentTreeBuilder",
    "LooseValue",
    "design_root_for",
    "ContentClassifier",
    "BuildContext",
    "Diagnostic",
    "ErrorKind",
    "Severity",
    "IdentifierResolver",
    "normalize_design_id",
    "LinkResolution",
    "resolve_link",
    "KNOWN_GLOBALS",
    "ScriptDiagnostic",
    "ScriptValidation",
    "ScriptValidator",
    "Attachment",
    "AttachmentSet",
    "Document",
    "DocumentValue",
    "NestedDocument",
    "ParsedValue",
    "PlainText",
    "ScriptText",
]
