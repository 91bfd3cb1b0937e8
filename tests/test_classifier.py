"""Unit tests for the content classifier."""

import pytest

from couchassembler.assembler.classifier import ContentClassifier
from couchassembler.assembler.context import ErrorKind
from couchassembler.assembler.links import resolve_link
from couchassembler.assembler.scripts import ScriptValidator
from couchassembler.assembler.values import ParsedValue, PlainText, ScriptText


@pytest.fixture
def classifier(context):
    """Create a classifier reporting into the test context."""
    return ContentClassifier(context, ScriptValidator())


class TestJsonFiles:
    """Tests for .json classification."""

    def test_parsed(self, classifier, context, make_tree):
        root = make_tree({"options.json": '{"local_seq": true}'})
        value = classifier.classify(root / "options.json")
        assert value == ParsedValue({"local_seq": True})
        assert not context.has_failed
        assert context.files_assembled == 1

    def test_parse_error(self, classifier, context, make_tree):
        root = make_tree({"views/bad.json": '{"a": }'})
        value = classifier.classify(root / "views" / "bad.json")
        assert value == ParsedValue(None)
        assert value.failed
        assert context.has_failed
        error = context.errors[0]
        assert error.kind == ErrorKind.PARSE
        assert error.origin == "views/bad.json"
        assert error.line == 1
        assert error.column is not None
        assert str(error).startswith("views/bad.json(1,")
        assert context.files_assembled == 0

    def test_nul_byte_is_parse_error(self, classifier, context, make_tree):
        root = make_tree({"a.json": b'{"a": 1}\x00'})
        classifier.classify(root / "a.json")
        assert [e.kind for e in context.errors] == [ErrorKind.PARSE]

    def test_bom_is_ignored(self, classifier, context, make_tree):
        root = make_tree({"a.json": b'\xef\xbb\xbf{"a": 1}'})
        assert classifier.classify(root / "a.json") == ParsedValue({"a": 1})
        assert not context.has_failed


class TestScriptFiles:
    """Tests for .js classification."""

    def test_valid_script(self, classifier, context, make_tree):
        root = make_tree({"map.js": "function(doc) {\r\n  emit(doc._id, 1);\r\n}"})
        value = classifier.classify(root / "map.js")
        assert value == ScriptText("function(doc) {\n  emit(doc._id, 1);\n}")
        assert not context.has_failed

    @pytest.mark.parametrize("reducer", ["_sum", "_count", "_stats"])
    def test_builtin_reducers(self, classifier, context, make_tree, reducer):
        root = make_tree({"reduce.js": reducer + "\n"})
        assert classifier.classify(root / "reduce.js") == ScriptText(reducer)
        assert context.diagnostics == []

    def test_syntax_error(self, classifier, context, make_tree):
        root = make_tree({"views/all/map.js": "function(doc) {\n  emit(doc._id,;\n}"})
        value = classifier.classify(root / "views" / "all" / "map.js")
        assert value == ScriptText("")
        error = context.errors[0]
        assert error.kind == ErrorKind.SCRIPT
        assert error.origin == "views/all/map.js"
        assert error.line == 2

    def test_warning_does_not_fail(self, classifier, context, make_tree):
        root = make_tree({"map.js": "function(doc) { helper(doc); }"})
        value = classifier.classify(root / "map.js")
        assert value == ScriptText("function(doc) { helper(doc); }")
        assert not context.has_failed
        assert [w.message for w in context.warnings] == ["Undefined global 'helper'."]
        assert str(context.warnings[0]).startswith("map.js(1,")

    def test_minified(self, context, make_tree):
        root = make_tree({"map.js": "function(doc) {\n  emit( doc._id, 1 );\n}\n"})
        classifier = ContentClassifier(context, ScriptValidator(minify=True))
        value = classifier.classify(root / "map.js")
        assert "\n" not in value.to_json().strip()


class TestTextFiles:
    """Tests for text classification."""

    def test_text(self, classifier, context, make_tree):
        root = make_tree({"language": "javascript\r\n"})
        assert classifier.classify(root / "language") == PlainText("javascript\n")
        assert context.files_assembled == 1

    def test_html_template(self, classifier, context, make_tree):
        root = make_tree({"templates/page.html": "<p>\tcafé 🎉</p>\n"})
        value = classifier.classify(root / "templates" / "page.html")
        assert value == PlainText("<p>\tcafé 🎉</p>\n")
        assert not context.has_failed

    def test_nul_byte_is_binary(self, classifier, context, make_tree):
        root = make_tree({"logo.txt": b"GIF89a\x00\x01"})
        assert classifier.classify(root / "logo.txt") == PlainText("")
        error = context.errors[0]
        assert error.kind == ErrorKind.BINARY_CONTENT
        assert str(error) == "logo.txt: error: Binary file found."

    def test_control_character_is_binary(self, classifier, context, make_tree):
        root = make_tree({"a.txt": "bell\x07"})
        classifier.classify(root / "a.txt")
        assert context.errors[0].kind == ErrorKind.BINARY_CONTENT


class TestLinks:
    """Tests for .lnk files."""

    def test_link_uses_target_extension(self, classifier, context, make_tree):
        root = make_tree(
            {
                "shared/map.js": "function(doc) { emit(doc._id, 1); }",
                "views/all/map.lnk": "../../shared/map.js\n",
            }
        )
        value = classifier.classify(root / "views" / "all" / "map.lnk")
        assert value == ScriptText("function(doc) { emit(doc._id, 1); }")
        assert not context.has_failed

    def test_dangling_link(self, classifier, context, make_tree):
        root = make_tree({"views/map.lnk": "missing.js"})
        value = classifier.classify(root / "views" / "map.lnk")
        assert value == PlainText("")
        error = context.errors[0]
        assert error.kind == ErrorKind.LINK_RESOLUTION
        assert error.origin == "views/map.lnk"
        assert "missing.js" in error.message

    def test_empty_link(self, classifier, context, make_tree):
        root = make_tree({"a.lnk": "  \n"})
        classifier.classify(root / "a.lnk")
        assert context.errors[0].message == "Link must name exactly one path."

    def test_resolution_ok(self, make_tree):
        root = make_tree({"map.js": "x", "good.lnk": "map.js", "bad.lnk": "nope.js"})
        good = resolve_link(root / "good.lnk")
        bad = resolve_link(root / "bad.lnk")
        assert good.ok
        assert good.target == root / "map.js"
        assert not bad.ok
        assert bad.target is None
