"""Unit tests for identifier resolution."""

from pathlib import Path

import pytest

from couchassembler.assembler.builder import DocumentTreeBuilder, LooseValue
from couchassembler.assembler.context import ErrorKind
from couchassembler.assembler.identifiers import IdentifierResolver, normalize_design_id
from couchassembler.assembler.values import (
    AttachmentSet,
    Document,
    NestedDocument,
    ParsedValue,
    PlainText,
)


@pytest.fixture
def resolver(context):
    """Create a resolver reporting into the test context."""
    return IdentifierResolver(context)


def design_document(name, **fields):
    body = NestedDocument(dict(fields))
    return Document(body=body, origin=f"_design/{name}", name=name)


class TestNormalizeDesignId:
    """Tests for normalize_design_id."""

    def test_prefix_added_once(self):
        assert normalize_design_id("blog") == "_design/blog"

    def test_idempotent(self):
        once = normalize_design_id("blog")
        assert normalize_design_id(once) == once


class TestDesignDocuments:
    """Tests for design document identifiers."""

    def test_id_from_folder_name(self, resolver):
        document = resolver.resolve_design_document(design_document("foo"))
        assert document.id == "_design/foo"

    def test_id_without_prefix(self, resolver):
        document = design_document("folder", _id=PlainText("bar\n"))
        assert resolver.resolve_design_document(document).id == "_design/bar"

    def test_id_with_prefix_unchanged(self, resolver):
        document = design_document("folder", _id=ParsedValue("_design/bar"))
        assert resolver.resolve_design_document(document).id == "_design/bar"

    def test_non_string_id(self, resolver, context):
        document = design_document("folder", _id=ParsedValue(42))
        assert resolver.resolve_design_document(document) is None
        assert context.errors[0].kind == ErrorKind.INVALID_DOCUMENT_SHAPE
        assert context.errors[0].origin == "_design/folder"

    def test_failed_id_file_not_reported_twice(self, resolver, context):
        document = design_document("folder", _id=ParsedValue(None, failed=True))
        assert resolver.resolve_design_document(document) is None
        assert context.errors == []

    def test_malformed_id_json_gives_one_error(self, resolver, context, make_tree):
        root = make_tree(
            {"_design/blog/_id.json": "{", "_design/blog/language": "javascript"}
        )
        builder = DocumentTreeBuilder(context)

        documents = resolver.resolve_design_documents(
            builder.build_design_documents(root / "_design")
        )

        assert documents == []
        assert [e.kind for e in context.errors] == [ErrorKind.PARSE]
        assert context.errors[0].origin == "_design/blog/_id.json"

    def test_json_null_id_still_rejected(self, resolver, context):
        document = design_document("folder", _id=ParsedValue(None))
        assert resolver.resolve_design_document(document) is None
        assert context.errors[0].kind == ErrorKind.INVALID_DOCUMENT_SHAPE

    def test_resolve_many_drops_invalid(self, resolver):
        documents = resolver.resolve_design_documents(
            [design_document("a"), design_document("b", _id=ParsedValue([1]))]
        )
        assert [d.id for d in documents] == ["_design/a"]


class TestLooseDocuments:
    """Tests for auxiliary document identifiers."""

    def test_id_from_file_stem(self, resolver, temp_dir):
        origin = temp_dir / "post.json"
        values = [LooseValue({"title": "Hi"}, origin=origin, name="post")]
        (document,) = resolver.resolve_documents(values)
        assert document.id == "post"
        assert document.origin == "post.json"
        assert document.to_json() == {"title": "Hi", "_id": "post"}

    def test_explicit_id(self, resolver, temp_dir):
        values = [LooseValue({"_id": "p1"}, origin=temp_dir / "post.json", name="post")]
        assert resolver.resolve_documents(values)[0].id == "p1"

    def test_array_element_requires_id(self, resolver, context, temp_dir):
        origin = temp_dir / "seed.json"
        values = [
            LooseValue({"_id": "a"}, origin=origin, name="seed", index=0),
            LooseValue({"x": 1}, origin=origin, name="seed", index=1),
        ]
        documents = resolver.resolve_documents(values)
        assert [d.id for d in documents] == ["a"]
        error = context.errors[0]
        assert error.kind == ErrorKind.MISSING_IDENTIFIER
        assert error.message == "Document must have an _id (element 1)."

    def test_non_object_rejected(self, resolver, context, temp_dir):
        origin = temp_dir / "list.json"
        values = [LooseValue([1, 2], origin=origin, name="list", index=0)]
        assert resolver.resolve_documents(values) == []
        assert context.errors[0].kind == ErrorKind.INVALID_DOCUMENT_SHAPE
        assert context.errors[0].message.startswith("Document must be an object")

    def test_top_level_scalar_rejected(self, resolver, context, temp_dir):
        values = [LooseValue("text", origin=temp_dir / "s.json", name="s")]
        assert resolver.resolve_documents(values) == []
        assert str(context.errors[0]) == "s.json: error: Document must be an object."

    def test_non_string_id_rejected(self, resolver, context, temp_dir):
        values = [LooseValue({"_id": 7}, origin=temp_dir / "n.json", name="n")]
        assert resolver.resolve_documents(values) == []
        assert context.errors[0].kind == ErrorKind.INVALID_DOCUMENT_SHAPE

    def test_duplicate_id(self, resolver, context, temp_dir):
        values = [
            LooseValue({"_id": "x"}, origin=temp_dir / "a.json", name="a"),
            LooseValue({"_id": "x"}, origin=temp_dir / "b.json", name="b"),
        ]
        documents = resolver.resolve_documents(values)
        assert [d.origin for d in documents] == ["a.json"]
        error = context.errors[0]
        assert error.kind == ErrorKind.DUPLICATE_IDENTIFIER
        assert error.origin == "b.json"
        assert "a.json" in error.message

    def test_attachments_added(self, resolver, temp_dir):
        attachments = AttachmentSet()
        values = [
            LooseValue(
                {"title": "Hi"},
                origin=Path(temp_dir / "post.json"),
                name="post",
                attachments=attachments,
            )
        ]
        (document,) = resolver.resolve_documents(values)
        assert document.body.get("_attachments") is attachments
