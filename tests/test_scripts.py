"""Unit tests for the JavaScript validator."""

import pytest

from couchassembler.assembler.scripts import KNOWN_GLOBALS, ScriptValidator


@pytest.fixture
def validator():
    """Create a validator without minification."""
    return ScriptValidator()


class TestScriptValidator:
    """Tests for ScriptValidator.validate."""

    def test_anonymous_map_function(self, validator):
        source = "function(doc) {\n  emit(doc._id, 1);\n}\n"
        result = validator.validate(source)
        assert not result.has_errors
        assert result.diagnostics == []
        assert result.text == source

    def test_plain_statements(self, validator):
        result = validator.validate("var total = 0;\nexports.add = function(a) {};\n")
        assert not result.has_errors

    def test_syntax_error(self, validator):
        result = validator.validate("function(doc) { emit(doc._id, ; }")
        assert result.has_errors
        assert result.text == ""
        diagnostic = result.diagnostics[0]
        assert diagnostic.is_error
        assert diagnostic.line == 1
        assert diagnostic.message
        assert not diagnostic.message.startswith("Line ")

    def test_syntax_error_line_number(self, validator):
        result = validator.validate("function(doc) {\n  emit(doc._id,;\n}")
        assert result.has_errors
        assert result.diagnostics[0].line == 2

    def test_anonymous_function_after_line_comment(self, validator):
        source = "// by date\nfunction(doc) {\n  emit(doc.date, 1);\n}\n"
        result = validator.validate(source)
        assert not result.has_errors
        assert result.diagnostics == []

    def test_anonymous_function_after_block_comment(self, validator):
        result = validator.validate("/* view */ function(doc) { emit(doc.date, 1); }")
        assert not result.has_errors
        assert result.diagnostics == []

    def test_commented_function_warning_column(self, validator):
        plain = validator.validate("function(doc) { helper(doc); }")
        commented = validator.validate("/* v */ function(doc) { helper(doc); }")
        (before,) = plain.diagnostics
        (after,) = commented.diagnostics
        assert after.line == 1
        assert after.column == before.column + len("/* v */ ")

    def test_undefined_global_warns(self, validator):
        result = validator.validate("function(doc) { frobnicate(doc); }")
        assert not result.has_errors
        assert len(result.diagnostics) == 1
        warning = result.diagnostics[0]
        assert not warning.is_error
        assert warning.message == "Undefined global 'frobnicate'."
        assert warning.line == 1

    def test_undefined_global_reported_once(self, validator):
        result = validator.validate("function(doc) { foo(doc); foo(doc); }")
        assert [d.message for d in result.diagnostics] == ["Undefined global 'foo'."]

    def test_known_globals_and_builtins(self, validator):
        source = (
            "function(head, req) {\n"
            "  start({headers: {}});\n"
            "  var row;\n"
            "  while (row = getRow()) { send(JSON.stringify(row)); }\n"
            "  return Math.max(1, parseInt('2', 10));\n"
            "}"
        )
        result = validator.validate(source, KNOWN_GLOBALS)
        assert result.diagnostics == []

    def test_members_and_keys_are_not_globals(self, validator):
        source = "function(doc) { emit(doc.author.name, {count: doc.hits}); }"
        result = validator.validate(source)
        assert result.diagnostics == []

    def test_declarations_are_not_globals(self, validator):
        source = (
            "function(doc) {\n"
            "  var tags = doc.tags || [];\n"
            "  function key(tag) { return [tag, doc._id]; }\n"
            "  try { tags.forEach(function(t) { emit(key(t), null); }); }\n"
            "  catch (e) { log(e); }\n"
            "}"
        )
        result = validator.validate(source)
        assert result.diagnostics == []

    def test_custom_known_globals(self, validator):
        result = validator.validate("function(doc) { emit(doc._id, 1); }", ["log"])
        assert [d.message for d in result.diagnostics] == ["Undefined global 'emit'."]

    def test_minify(self):
        source = "function(doc) {\n    // comment\n    emit( doc._id , 1 );\n}\n"
        result = ScriptValidator(minify=True).validate(source)
        assert not result.has_errors
        assert "comment" not in result.text
        assert len(result.text) < len(source)
        assert "emit(doc._id,1)" in result.text
