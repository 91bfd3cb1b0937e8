"""Identifier resolution for built documents."""

import logging
from typing import Optional

from ..utils import ATTACHMENTS_FOLDER, DESIGN_PREFIX
from .builder import LooseValue
from .context import BuildContext, ErrorKind
from .values import Document, NestedDocument, ParsedValue, PlainText

logger = logging.getLogger(__name__)


def normalize_design_id(doc_id: str, prefix: str = DESIGN_PREFIX) -> str:
    """Prepend the design namespace unless already present.

    Examples:
        >>> normalize_design_id("blog")
        '_design/blog'
        >>> normalize_design_id("_design/blog")
        '_design/blog'
    """
    if doc_id.startswith(prefix):
        return doc_id
    return prefix + doc_id


class IdentifierResolver:
    """Assigns every document its final ``_id``."""

    def __init__(self, context: BuildContext, prefix: str = DESIGN_PREFIX):
        self.context = context
        self.prefix = prefix

    def resolve_design_document(self, document: Document) -> Optional[Document]:
        """Set the ``_id`` of a design document.

        Without an ``_id`` field the id is the folder name; an ``_id`` lacking
        the namespace gets it prepended. Text files are stripped, so an
        ``_id`` file ending in a newline works as expected.

        Returns:
            The document, or None if its ``_id`` field is not a string or
            failed to load
        """
        field = document.body.get("_id")
        if field is None:
            document.id = self.prefix + document.name
            return document

        if isinstance(field, ParsedValue) and field.failed:
            logger.debug(f"Skipping {document.origin}: _id file failed to load")
            return None

        doc_id = field.to_json()
        if not isinstance(doc_id, str):
            self.context.error(
                document.origin,
                "Document _id must be a string.",
                ErrorKind.INVALID_DOCUMENT_SHAPE,
            )
            return None
        if isinstance(field, PlainText):
            doc_id = doc_id.strip()

        document.id = normalize_design_id(doc_id, self.prefix)
        return document

    def resolve_design_documents(self, documents: list[Document]) -> list[Document]:
        resolved = []
        for document in documents:
            if self.resolve_design_document(document) is not None:
                resolved.append(document)
        return resolved

    def resolve_documents(self, values: list[LooseValue]) -> list[Document]:
        """Turn loose JSON values into documents.

        A single object per file falls back to the file name as ``_id``;
        objects from an array must carry their own ``_id``. Anything that is
        not an object is rejected. Only the first document with a given
        ``_id`` is kept.

        Args:
            values: Values collected by DocumentTreeBuilder.build_documents

        Returns:
            Documents with identifiers, in input order
        """
        documents: list[Document] = []
        seen: dict[str, str] = {}

        for item in values:
            where = "" if item.index is None else f" (element {item.index})"

            if not isinstance(item.value, dict):
                self.context.error(
                    item.origin,
                    f"Document must be an object{where}.",
                    ErrorKind.INVALID_DOCUMENT_SHAPE,
                )
                continue

            doc_id = item.value.get("_id")
            if doc_id is None:
                if item.index is not None:
                    self.context.error(
                        item.origin,
                        f"Document must have an _id{where}.",
                        ErrorKind.MISSING_IDENTIFIER,
                    )
                    continue
                doc_id = item.name
            elif not isinstance(doc_id, str):
                self.context.error(
                    item.origin,
                    f"Document _id must be a string{where}.",
                    ErrorKind.INVALID_DOCUMENT_SHAPE,
                )
                continue

            origin = self.context.relative(item.origin)
            if doc_id in seen:
                self.context.error(
                    item.origin,
                    f"Duplicate _id '{doc_id}'{where}, already defined in "
                    f"{seen[doc_id]}.",
                    ErrorKind.DUPLICATE_IDENTIFIER,
                )
                continue
            seen[doc_id] = origin

            body = NestedDocument.from_mapping(item.value)
            if item.attachments is not None:
                body.set(ATTACHMENTS_FOLDER, item.attachments)
            documents.append(
                Document(body=body, origin=origin, name=item.name, id=doc_id)
            )

        logger.debug(f"Resolved {len(documents)} of {len(values)} loose value(s)")
        return documents

