"""Document tree building: maps folders on disk to JSON documents.

A design document is a folder: subfolders become nested objects, files
become fields named after the file without its extension, and a top-level
``_attachments`` folder becomes the document's attachments. Loose ``*.json``
files outside the design folder become ordinary documents.

A folder ``app/_design/blog`` holding ``views/``, ``shows/`` and
``_attachments/`` yields one document with origin ``_design/blog`` whose
fields are ``_attachments``, ``shows`` and ``views``.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ..utils import ATTACHMENTS_FOLDER, DESIGN_FOLDER, LOCAL_FOLDER, first_line
from .attachments import AttachmentBuilder
from .classifier import ContentClassifier
from .context import BuildContext, ErrorKind
from .scripts import ScriptValidator
from .values import AttachmentSet, Document, NestedDocument

logger = logging.getLogger(__name__)


@dataclass
class LooseValue:
    """A value read from a loose JSON file, not yet checked to be a document."""

    value: Any
    """Parsed JSON value (a document if it is an object)"""

    origin: Path
    """File the value was read from"""

    name: str
    """File name without extension"""

    index: Optional[int] = None
    """Position in the file's top-level array, None for a single document"""

    attachments: Optional[AttachmentSet] = None
    """Attachments from a sibling ``<name>._attachments`` folder"""


class DocumentTreeBuilder:
    """Builds documents from folders.

    Each call returns the value for its own subtree; failures are reported
    to the context and replaced by empty values, so one broken folder never
    stops its siblings from being built.
    """

    def __init__(
        self,
        context: BuildContext,
        classifier: Optional[ContentClassifier] = None,
        attachments: Optional[AttachmentBuilder] = None,
    ):
        """Initialize the builder.

        Args:
            context: Run context receiving diagnostics
            classifier: Content classifier (created from the context if omitted)
            attachments: Attachment builder (created from the context if omitted)
        """
        self.context = context
        self.classifier = classifier or ContentClassifier(
            context, ScriptValidator(minify=context.minify)
        )
        self.attachments = attachments or AttachmentBuilder(context)

    def _skip(self, path: Path) -> bool:
        return self.context.exclude_dot_files and path.name.startswith(".")

    def _list(self, directory: Path) -> tuple[list[Path], list[Path]]:
        """Return (subfolders, files) of a folder, each sorted by name."""
        entries = [p for p in sorted(directory.iterdir()) if not self._skip(p)]
        folders = [p for p in entries if p.is_dir()]
        files = [p for p in entries if p.is_file()]
        return folders, files

    def build(self, directory: Path, top_level: bool = True) -> NestedDocument:
        """Build the object for one folder.

        Subfolders are handled first, then files; a later entry with the same
        key replaces an earlier one. ``_attachments`` is only special at the
        top level of a design document; deeper down it is an ordinary folder.

        Args:
            directory: Folder to build
            top_level: Whether this folder is a design document root

        Returns:
            NestedDocument, empty if the folder could not be read
        """
        result = NestedDocument()
        try:
            folders, files = self._list(directory)

            for folder in folders:
                if top_level and folder.name == ATTACHMENTS_FOLDER:
                    result.set(folder.name, self.attachments.build(folder))
                else:
                    result.set(folder.name, self.build(folder, top_level=False))

            for file in files:
                result.set(file.stem, self.classifier.classify(file))
        except Exception as e:
            logger.debug(f"Failed to build {directory}", exc_info=True)
            self.context.error(directory, first_line(str(e)), ErrorKind.IO)
            return NestedDocument()
        return result

    def build_design_documents(self, design_root: Path) -> list[Document]:
        """Build one design document per subfolder of ``design_root``.

        A missing design folder yields no documents.

        Args:
            design_root: The ``_design`` folder

        Returns:
            Documents without identifiers; see IdentifierResolver
        """
        if not design_root.is_dir():
            logger.debug(f"No design folder at {design_root}")
            return []

        start = time.time()
        try:
            folders, _ = self._list(design_root)
        except OSError as e:
            self.context.error(design_root, first_line(str(e)), ErrorKind.IO)
            return []

        documents = [
            Document(
                body=self.build(folder),
                origin=self.context.relative(folder),
                name=folder.name,
            )
            for folder in folders
        ]
        logger.debug(
            f"Built {len(documents)} design document(s) in {time.time() - start:.2f}s"
        )
        return documents

    def build_documents(self, directory: Path) -> list[LooseValue]:
        """Collect loose JSON files below ``directory``.

        Folders named ``_design`` or ``_local``, and folders ending in
        ``_attachments``, are skipped. A file holding an array contributes
        one value per element.

        Args:
            directory: Folder to scan recursively

        Returns:
            LooseValue list; see IdentifierResolver.resolve_documents
        """
        values: list[LooseValue] = []
        try:
            folders, files = self._list(directory)

            for folder in folders:
                name = folder.name
                if name in (DESIGN_FOLDER, LOCAL_FOLDER):
                    continue
                if name.endswith(ATTACHMENTS_FOLDER):
                    continue
                values.extend(self.build_documents(folder))

            for file in files:
                if file.suffix == ".json":
                    values.extend(self._load_loose(file))
        except Exception as e:
            logger.debug(f"Failed to scan {directory}", exc_info=True)
            self.context.error(directory, first_line(str(e)), ErrorKind.IO)
        return values

    def _load_loose(self, file: Path) -> list[LooseValue]:
        ok, value = self.classifier.read_json(file, file)
        if not ok:
            return []

        if isinstance(value, list):
            return [
                LooseValue(item, origin=file, name=file.stem, index=index)
                for index, item in enumerate(value)
            ]

        attachments = None
        if isinstance(value, dict):
            folder = file.with_suffix("." + ATTACHMENTS_FOLDER)
            if folder.is_dir():
                attachments = self.attachments.build(folder)
        return [LooseValue(value, origin=file, name=file.stem, attachments=attachments)]


def design_root_for(source: Path) -> Path:
    """Return the design folder for a source root.

    The source root may itself be the design folder.

    Examples:
        >>> design_root_for(Path("app"))
        PosixPath('app/_design')
        >>> design_root_for(Path("app/_design"))
        PosixPath('app/_design')
    """
    if source.name == DESIGN_FOLDER:
        return source
    return source / DESIGN_FOLDER
