"""Document values produced by the assembler.

Every file or folder becomes exactly one of the value variants below. Each
variant knows how to turn itself into JSON, so serialization never has to
inspect what kind of value it holds.
"""

import base64
import json
from dataclasses import dataclass, field
from typing import Any, Optional, Union


@dataclass(frozen=True)
class Attachment:
    """A binary resource embedded in a document."""

    key: str
    """Path relative to the attachments folder, with forward slashes"""

    data: bytes
    """Raw file content"""

    content_type: str
    """MIME type, optionally with a ``; charset=...`` suffix"""

    def to_json(self) -> dict[str, Any]:
        """Return the inline attachment stub CouchDB expects."""
        return {
            "content_type": self.content_type,
            "data": base64.b64encode(self.data).decode("ascii"),
        }


@dataclass
class ParsedValue:
    """Structured data loaded from a JSON file."""

    value: Any

    failed: bool = field(default=False, compare=False)
    """Set when the file could not be loaded; the error is already reported"""

    def to_json(self) -> Any:
        return self.value


@dataclass
class ScriptText:
    """Validated (and possibly minified) JavaScript source."""

    text: str

    def to_json(self) -> str:
        return self.text


@dataclass
class PlainText:
    """Text content with normalized line endings."""

    text: str

    def to_json(self) -> str:
        return self.text


@dataclass
class AttachmentSet:
    """Attachments keyed by their relative path."""

    attachments: dict[str, Attachment] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        return {key: item.to_json() for key, item in self.attachments.items()}


@dataclass
class NestedDocument:
    """A JSON object assembled from a folder."""

    fields: dict[str, "DocumentValue"] = field(default_factory=dict)

    def __contains__(self, key: str) -> bool:
        return key in self.fields

    def get(self, key: str) -> Optional["DocumentValue"]:
        return self.fields.get(key)

    def set(self, key: str, value: "DocumentValue") -> None:
        self.fields[key] = value

    def to_json(self) -> dict[str, Any]:
        return {key: value.to_json() for key, value in self.fields.items()}

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "NestedDocument":
        """Wrap an already parsed JSON object."""
        return cls({key: ParsedValue(value) for key, value in data.items()})


DocumentValue = Union[ParsedValue, ScriptText, PlainText, AttachmentSet, NestedDocument]


@dataclass
class Document:
    """A document ready to be pushed.

    ``id`` and ``rev`` take precedence over any ``_id``/``_rev`` fields in the
    body when the document is serialized.
    """

    body: NestedDocument
    """Document content"""

    origin: str
    """Path the document was assembled from, relative to the source root"""

    name: str = ""
    """Folder name or file stem, used when the body defines no _id"""

    id: Optional[str] = None
    """Identifier, set by the identifier resolver"""

    rev: Optional[str] = None
    """Revision of the remote document being replaced, if any"""

    def to_json(self) -> dict[str, Any]:
        data = self.body.to_json()
        if self.id is not None:
            data["_id"] = self.id
        if self.rev is not None:
            data["_rev"] = self.rev
        return data

    def serialize(self) -> str:
        """Serialize compactly, without insignificant whitespace."""
        return json.dumps(self.to_json(), separators=(",", ":"), ensure_ascii=False)
