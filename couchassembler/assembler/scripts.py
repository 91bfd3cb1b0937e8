"""JavaScript syntax checking for view, show and list functions.

Parsing is delegated to ``esprima``; minification to ``rjsmin``. Besides
syntax errors the validator warns about identifiers that are neither declared
in the script, nor JavaScript built-ins, nor globals the database provides.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import esprima
import rjsmin
from esprima.error_handler import Error as EsprimaError

logger = logging.getLogger(__name__)

# Reduce functions implemented natively by the database
BUILTIN_REDUCERS = frozenset({"_sum", "_count", "_stats"})

# Globals the database injects into design document functions
KNOWN_GLOBALS: tuple[str, ...] = (
    # CommonJS
    "require",
    "module",
    "exports",
    # All functions
    "log",
    "sum",
    "isArray",
    "toJSON",
    "JSON",
    # Map functions
    "emit",
    # Show functions
    "provides",
    "registerType",
    # List functions
    "getRow",
    "send",
    "start",
    # Cloudant search
    "index",
    "st_index",
)

JS_BUILTINS = frozenset(
    {
        "Array",
        "ArrayBuffer",
        "Boolean",
        "DataView",
        "Date",
        "Error",
        "EvalError",
        "Float32Array",
        "Float64Array",
        "Function",
        "Infinity",
        "Int16Array",
        "Int32Array",
        "Int8Array",
        "Map",
        "Math",
        "NaN",
        "Number",
        "Object",
        "Promise",
        "Proxy",
        "RangeError",
        "ReferenceError",
        "Reflect",
        "RegExp",
        "Set",
        "String",
        "Symbol",
        "SyntaxError",
        "TypeError",
        "URIError",
        "Uint16Array",
        "Uint32Array",
        "Uint8Array",
        "Uint8ClampedArray",
        "WeakMap",
        "WeakSet",
        "arguments",
        "decodeURI",
        "decodeURIComponent",
        "encodeURI",
        "encodeURIComponent",
        "escape",
        "eval",
        "globalThis",
        "isFinite",
        "isNaN",
        "parseFloat",
        "parseInt",
        "undefined",
        "unescape",
    }
)

_LINE_PREFIX = re.compile(r"^Line \d+:\s*")

_LABEL_TYPES = ("LabeledStatement", "BreakStatement", "ContinueStatement")

_FUNCTION_TYPES = (
    "FunctionDeclaration",
    "FunctionExpression",
    "ArrowFunctionExpression",
)


@dataclass
class ScriptDiagnostic:
    """A problem reported while checking a script."""

    is_error: bool
    message: str
    line: Optional[int] = None
    column: Optional[int] = None


@dataclass
class ScriptValidation:
    """Result of validating one script."""

    text: str
    """Source text, minified if requested"""

    diagnostics: list[ScriptDiagnostic] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)


class _IdentifierCollector:
    """Esprima delegate recording declared and referenced identifiers.

    Scoping is flat: a name declared anywhere in the script
    counts as declared everywhere.
    """

    def __init__(self, first_line_offset: int = 0) -> None:
        self.first_line_offset = first_line_offset
        self.declared: set[str] = set()
        self.references: list[tuple[Any, Optional[int], Optional[int]]] = []
        self.excluded: set[int] = set()

    def __call__(self, node: Any, metadata: Any) -> Any:
        node_type = getattr(node, "type", None)

        if node_type == "Identifier":
            self.references.append((node, *self._position(metadata)))
        elif node_type == "MemberExpression" and not getattr(node, "computed", True):
            self.excluded.add(id(node.property))
        elif node_type in ("Property", "MethodDefinition"):
            if not getattr(node, "computed", True):
                self.excluded.add(id(node.key))
        elif node_type == "VariableDeclarator":
            self._declare(node.id)
        elif node_type in _FUNCTION_TYPES:
            self._declare(getattr(node, "id", None))
            for param in getattr(node, "params", None) or []:
                self._declare(param)
        elif node_type in ("ClassDeclaration", "ClassExpression"):
            self._declare(getattr(node, "id", None))
        elif node_type == "CatchClause":
            self._declare(getattr(node, "param", None))
        elif node_type in _LABEL_TYPES:
            label = getattr(node, "label", None)
            if label is not None:
                self.excluded.add(id(label))
        return node

    def _position(self, metadata: Any) -> tuple[Optional[int], Optional[int]]:
        start = getattr(metadata, "start", None)
        line = getattr(start, "line", None)
        column = getattr(start, "column", None)
        if column is None:
            return line, None
        column += 1
        if line == 1:
            column = max(column - self.first_line_offset, 1)
        return line, column

    def _declare(self, pattern: Any) -> None:
        """Record every name bound by a declaration pattern."""
        if pattern is None:
            return
        pattern_type = getattr(pattern, "type", None)
        if pattern_type == "Identifier":
            self.declared.add(pattern.name)
            self.excluded.add(id(pattern))
        elif pattern_type == "AssignmentPattern":
            self._declare(pattern.left)
        elif pattern_type == "RestElement":
            self._declare(pattern.argument)
        elif pattern_type == "ArrayPattern":
            for element in pattern.elements:
                self._declare(element)
        elif pattern_type == "ObjectPattern":
            for prop in pattern.properties:
                if getattr(prop, "type", None) == "RestElement":
                    self._declare(prop.argument)
                else:
                    self._declare(prop.value)

    def undeclared(
        self, known: Iterable[str]
    ) -> list[tuple[str, Optional[int], Optional[int]]]:
        """Return (name, line, column) for the first use of each unknown name."""
        allowed = self.declared | JS_BUILTINS | set(known)
        seen: set[str] = set()
        result = []
        for node, line, column in self.references:
            if id(node) in self.excluded:
                continue
            name = node.name
            if name in allowed or name in seen:
                continue
            seen.add(name)
            result.append((name, line, column))
        return result


def _collect(source: str, first_line_offset: int = 0) -> _IdentifierCollector:
    collector = _IdentifierCollector(first_line_offset)
    esprima.parseScript(source, delegate=collector)
    return collector


def _is_anonymous_function(source: str) -> bool:
    """Whether the first tokens are ``function (``, ignoring comments."""
    try:
        tokens = esprima.tokenize(source)
    except EsprimaError:
        return False
    return (
        len(tokens) >= 2
        and tokens[0].type == "Keyword"
        and tokens[0].value == "function"
        and tokens[1].value == "("
    )


class ScriptValidator:
    """Checks JavaScript sources and optionally minifies them."""

    def __init__(self, minify: bool = False):
        """Initialize the validator.

        Args:
            minify: Whether valid sources are returned minified
        """
        self.minify = minify

    def _parse(self, source: str) -> _IdentifierCollector:
        """Parse a script, accepting a bare anonymous function as an expression.

        Design document functions are usually written as ``function(doc) {...}``,
        which is not a valid statement. Such sources, leading comments included,
        are parsed wrapped in parentheses; column numbers on the first line are
        shifted back.

        Raises:
            esprima.error_handler.Error: If the source does not parse either way
        """
        if not _is_anonymous_function(source):
            return _collect(source)

        try:
            return _collect("(" + source.rstrip().rstrip(";") + "\n)", 1)
        except EsprimaError as e:
            expression_error = e

        try:
            return _collect(source)
        except EsprimaError:
            line = getattr(expression_error, "lineNumber", None)
            column = getattr(expression_error, "column", None)
            if line == 1 and column:
                expression_error.column = max(column - 1, 1)
            raise expression_error from None

    def validate(
        self, source: str, known_globals: Iterable[str] = KNOWN_GLOBALS
    ) -> ScriptValidation:
        """Validate a script.

        Args:
            source: JavaScript source text
            known_globals: Names provided by the host environment

        Returns:
            ScriptValidation with the (possibly minified) text and diagnostics

        Examples:
            >>> validator = ScriptValidator()
            >>> result = validator.validate("function(doc) { emit(doc._id, 1); }")
            >>> result.has_errors, result.diagnostics
            (False, [])
        """
        try:
            collector = self._parse(source)
        except EsprimaError as e:
            message = getattr(e, "description", None) or _LINE_PREFIX.sub("", str(e))
            return ScriptValidation(
                text="",
                diagnostics=[
                    ScriptDiagnostic(
                        is_error=True,
                        message=message,
                        line=getattr(e, "lineNumber", None),
                        column=getattr(e, "column", None),
                    )
                ],
            )

        diagnostics = [
            ScriptDiagnostic(
                is_error=False,
                message=f"Undefined global '{name}'.",
                line=line,
                column=column,
            )
            for name, line, column in collector.undeclared(known_globals)
        ]

        text = rjsmin.jsmin(source) if self.minify else source
        logger.debug(
            f"Validated script ({len(source)} chars, {len(diagnostics)} warning(s))"
        )
        return ScriptValidation(text=text, diagnostics=diagnostics)
