"""Reader and writer for attribute-only HCL documents such as ``*.pkrvars.hcl``.

Only the literal part of the native syntax is evaluated: strings, heredocs,
numbers, ``true``/``false``/``null``, tuples and objects. Expressions that need
an evaluation context (variable references, function calls, ``for``
expressions, interpolated templates) are kept as :class:`Expression` holding
their source text, and are written back verbatim.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Mapping, Union

_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_-]*")
_HEREDOC_START_RE = re.compile(r"<<-?[A-Za-z_]")
_NUMBER_RE = re.compile(r"-?[0-9]+(\.[0-9]+)?([eE][+-]?[0-9]+)?")
_DIGITS_RE = re.compile(r"[0-9]+")
_FOR_RE = re.compile(r"for\s+[A-Za-z_][A-Za-z0-9_-]*\s*(,\s*[A-Za-z_][A-Za-z0-9_-]*\s*)?in\s")
_KEYWORDS = {"true": True, "false": False, "null": None}
_RESERVED_KEYS = frozenset({"true", "false", "null", "for", "in", "if", "endif", "endfor"})
_SIMPLE_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", '"': '"', "\\": "\\"}
_INDENT = "  "


@dataclass(frozen=True)
class Expression:
    """An expression that cannot be evaluated without a context."""

    source: str


Value = Union[str, int, float, bool, None, list, dict, Expression]


class HclSyntaxError(ValueError):
    def __init__(self, message: str, *, filename: str, line: int, column: int) -> None:
        super().__init__(f"{filename}:{line},{column}: {message}")
        self.filename = filename
        self.line = line
        self.column = column


def as_mapping(value: Value) -> dict[str, Any] | None:
    """Return *value* as a mapping, or ``None`` when it does not evaluate to one."""
    if isinstance(value, dict):
        return value
    return None


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class _Parser:
    def __init__(self, text: str, filename: str) -> None:
        self.text = text
        self.filename = filename
        self.pos = 0

    # -- helpers --

    def error(self, message: str, pos: int | None = None) -> HclSyntaxError:
        at = self.pos if pos is None else pos
        line = self.text.count("\n", 0, at) + 1
        column = at - (self.text.rfind("\n", 0, at) + 1) + 1
        return HclSyntaxError(message, filename=self.filename, line=line, column=column)

    def peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.text[index] if index < len(self.text) else ""

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def skip_space(self, *, newlines: bool) -> None:
        """Skip blanks and comments; newlines only when *newlines* is set."""
        while not self.at_end():
            ch = self.peek()
            if ch in " \t\r" or (newlines and ch == "\n"):
                self.pos += 1
            elif ch == "#" or (ch == "/" and self.peek(1) == "/"):
                end = self.text.find("\n", self.pos)
                self.pos = len(self.text) if end < 0 else end
            elif ch == "/" and self.peek(1) == "*":
                end = self.text.find("*/", self.pos + 2)
                if end < 0:
                    raise self.error("unterminated comment")
                self.pos = end + 2
            else:
                return

    def identifier(self) -> str | None:
        match = _IDENTIFIER_RE.match(self.text, self.pos)
        if match is None:
            return None
        self.pos = match.end()
        return match.group(0)

    # -- body --

    def body(self) -> dict[str, Value]:
        attributes: dict[str, Value] = {}
        while True:
            self.skip_space(newlines=True)
            if self.at_end():
                return attributes
            start = self.pos
            name = self.identifier()
            if name is None:
                raise self.error(f"expected an attribute name, found {self.peek()!r}")
            self.skip_space(newlines=False)
            if self.peek() != "=" or self.peek(1) == "=":
                if self.peek() in ('{', '"') or _IDENTIFIER_RE.match(self.text, self.pos):
                    raise self.error(f"blocks are not supported here ({name!r})", start)
                raise self.error(f"expected '=' after attribute name {name!r}")
            self.pos += 1
            self.skip_space(newlines=False)
            value = self.expression()
            self.skip_space(newlines=False)
            if not self.at_end() and self.peek() != "\n":
                raise self.error(f"unexpected {self.peek()!r} after value of {name!r}")
            if name in attributes:
                raise self.error(f"duplicate attribute {name!r}", start)
            attributes[name] = value

    # -- expressions --

    def expression(self) -> Value:
        ch = self.peek()
        if ch == '"':
            return self.string()
        if ch == "<" and self.peek(1) == "<":
            return self.heredoc()
        if ch == "[":
            return self.tuple()
        if ch == "{":
            return self.object()
        if ch == "(":
            start = self.pos
            self.skip_balanced("(", ")")
            return Expression(self.text[start:self.pos])
        if ch.isdigit() or (ch == "-" and self.peek(1).isdigit()):
            return self.number()
        start = self.pos
        name = self.identifier()
        if name is None:
            if self.at_end():
                raise self.error("expected a value, found end of file")
            raise self.error(f"expected a value, found {ch!r}")
        if name in _KEYWORDS:
            return _KEYWORDS[name]
        self.traversal()
        return Expression(self.text[start:self.pos])

    def number(self) -> int | float:
        match = _NUMBER_RE.match(self.text, self.pos)
        assert match is not None
        self.pos = match.end()
        literal = match.group(0)
        if match.group(1) or match.group(2):
            return float(literal)
        return int(literal)

    def traversal(self) -> None:
        """Consume attribute access, index, splat and call suffixes of a reference."""
        while True:
            ch = self.peek()
            if ch == ".":
                self.pos += 1
                if self.peek() == "*":
                    self.pos += 1
                elif self.identifier() is None:
                    match = _DIGITS_RE.match(self.text, self.pos)
                    if match is None:
                        raise self.error("expected an attribute name after '.'")
                    self.pos = match.end()
            elif ch == "[":
                self.skip_balanced("[", "]")
            elif ch == "(":
                self.skip_balanced("(", ")")
            else:
                return

    def skip_balanced(self, open_char: str, close_char: str) -> None:
        start = self.pos
        depth = 0
        while not self.at_end():
            ch = self.peek()
            if ch == '"':
                self.string()
                continue
            if ch == "#" or (ch == "/" and self.peek(1) in ("/", "*")):
                self.skip_space(newlines=True)
                continue
            if ch == "<" and _HEREDOC_START_RE.match(self.text, self.pos):
                self.heredoc()
                continue
            if ch == open_char:
                depth += 1
            elif ch == close_char:
                depth -= 1
                if depth == 0:
                    self.pos += 1
                    return
            self.pos += 1
        raise self.error(f"unclosed {open_char!r}", start)

    def is_for_expression(self) -> bool:
        return _FOR_RE.match(self.text, self.pos) is not None

    def tuple(self) -> Value:
        start = self.pos
        self.pos += 1
        self.skip_space(newlines=True)
        if self.is_for_expression():
            self.pos = start
            self.skip_balanced("[", "]")
            return Expression(self.text[start:self.pos])
        items: list[Value] = []
        while True:
            self.skip_space(newlines=True)
            if self.peek() == "]":
                self.pos += 1
                break
            items.append(self.expression())
            self.skip_space(newlines=True)
            if self.peek() == ",":
                self.pos += 1
            elif self.peek() == "]":
                self.pos += 1
                break
            else:
                raise self.error("expected ',' or ']' in tuple")
        if any(isinstance(item, Expression) for item in items):
            return Expression(self.text[start:self.pos])
        return items

    def object(self) -> Value:
        start = self.pos
        self.pos += 1
        self.skip_space(newlines=True)
        if self.is_for_expression():
            self.pos = start
            self.skip_balanced("{", "}")
            return Expression(self.text[start:self.pos])
        items: dict[str, Value] = {}
        evaluable = True
        while True:
            self.skip_space(newlines=True)
            if self.peek() == "}":
                self.pos += 1
                break
            key_pos = self.pos
            key = self.object_key()
            self.skip_space(newlines=False)
            if self.peek() not in ("=", ":"):
                raise self.error("expected '=' or ':' after object key")
            self.pos += 1
            self.skip_space(newlines=False)
            value = self.expression()
            if isinstance(key, Expression) or isinstance(value, Expression):
                evaluable = False
            elif key in items:
                raise self.error(f"duplicate object key {key!r}", key_pos)
            else:
                items[key] = value
            self.skip_space(newlines=False)
            if self.peek() == ",":
                self.pos += 1
            elif self.peek() not in ("\n", "}"):
                raise self.error("expected ',', newline or '}' after object item")
        if not evaluable:
            return Expression(self.text[start:self.pos])
        return items

    def object_key(self) -> str | Expression:
        ch = self.peek()
        if ch == '"':
            return self.string()
        if ch == "(":
            start = self.pos
            self.skip_balanced("(", ")")
            return Expression(self.text[start:self.pos])
        if ch.isdigit() or (ch == "-" and self.peek(1).isdigit()):
            start = self.pos
            self.number()
            return self.text[start:self.pos]
        name = self.identifier()
        if name is None:
            raise self.error(f"expected an object key, found {ch!r}")
        return name

    def string(self) -> str | Expression:
        start = self.pos
        self.pos += 1
        chars: list[str] = []
        template = False
        while True:
            if self.at_end() or self.peek() == "\n":
                raise self.error("unterminated string", start)
            ch = self.peek()
            if ch == '"':
                self.pos += 1
                break
            if ch == "\\":
                chars.append(self.escape())
            elif self.text.startswith(("$${", "%%{"), self.pos):
                chars.append(self.text[self.pos + 1:self.pos + 3])
                self.pos += 3
            elif self.text.startswith(("${", "%{"), self.pos):
                template = True
                self.pos += 1
                self.skip_balanced("{", "}")
            else:
                chars.append(ch)
                self.pos += 1
        if template:
            return Expression(self.text[start:self.pos])
        return "".join(chars)

    def escape(self) -> str:
        code = self.peek(1)
        if code in _SIMPLE_ESCAPES:
            self.pos += 2
            return _SIMPLE_ESCAPES[code]
        if code in ("u", "U"):
            width = 4 if code == "u" else 8
            digits = self.text[self.pos + 2:self.pos + 2 + width]
            if len(digits) != width or not all(c in "0123456789abcdefABCDEF" for c in digits):
                raise self.error(f"invalid \\{code} escape sequence")
            self.pos += 2 + width
            return chr(int(digits, 16))
        raise self.error(f"invalid escape sequence \\{code}")

    def heredoc(self) -> str | Expression:
        start = self.pos
        self.pos += 2
        indented = self.peek() == "-"
        if indented:
            self.pos += 1
        marker = self.identifier()
        if marker is None:
            raise self.error("expected heredoc marker")
        self.skip_space(newlines=False)
        if self.peek() != "\n":
            raise self.error("heredoc marker must be followed by a newline")
        self.pos += 1
        lines: list[str] = []
        while True:
            if self.at_end():
                raise self.error(f"unterminated heredoc, missing {marker!r}", start)
            end = self.text.find("\n", self.pos)
            line_end = len(self.text) if end < 0 else end
            line = self.text[self.pos:line_end].rstrip("\r")
            if line.strip() == marker:
                self.pos = line_end
                break
            lines.append(line)
            self.pos = line_end + 1 if end >= 0 else line_end
        if indented:
            lines = _dedent(lines)
        content = "".join(f"{line}\n" for line in lines)
        if re.search(r"[$%]\{", content.replace("$${", "").replace("%%{", "")):
            return Expression(self.text[start:self.pos])
        return content.replace("$${", "${").replace("%%{", "%{")


def _dedent(lines: list[str]) -> list[str]:
    widths = [len(line) - len(line.lstrip(" \t")) for line in lines if line.strip()]
    cut = min(widths) if widths else 0
    return [line[cut:] for line in lines]


def loads(text: str, *, filename: str = "<string>") -> dict[str, Value]:
    """Parse an attribute-only HCL document into an ordered attribute mapping.

    Raises:
        HclSyntaxError: If the document is not valid attribute-only HCL.
    """
    return _Parser(text, filename).body()


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def dumps(attributes: Mapping[str, Value]) -> str:
    """Serialize top-level attributes, one ``name = value`` per line."""
    lines = []
    for name, value in attributes.items():
        if not _IDENTIFIER_RE.fullmatch(name):
            raise ValueError(f"invalid attribute name {name!r}")
        lines.append(f"{name} = {_encode(value, 0)}\n")
    return "".join(lines)


def _is_scalar(value: Value) -> bool:
    if isinstance(value, Expression):
        return "\n" not in value.source
    return not isinstance(value, (list, tuple, dict))


def _encode(value: Value, depth: int) -> str:
    if isinstance(value, Expression):
        return value.source
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"cannot encode non-finite number {value!r}")
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, str):
        return _quote(value)
    pad = _INDENT * depth
    inner = _INDENT * (depth + 1)
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        if all(_is_scalar(item) for item in value):
            return "[" + ", ".join(_encode(item, depth) for item in value) + "]"
        items = "".join(f"{inner}{_encode(item, depth + 1)},\n" for item in value)
        return f"[\n{items}{pad}]"
    if isinstance(value, dict):
        if not value:
            return "{}"
        items = "".join(
            f"{inner}{_object_key(str(key))} = {_encode(value[key], depth + 1)}\n"
            for key in sorted(value, key=str)
        )
        return f"{{\n{items}{pad}}}"
    raise TypeError(f"cannot encode {type(value).__name__} as HCL")


def _object_key(key: str) -> str:
    if _IDENTIFIER_RE.fullmatch(key) and key not in _RESERVED_KEYS:
        return key
    return _quote(key)


def _quote(text: str) -> str:
    out = ['"']
    index = 0
    while index < len(text):
        ch = text[index]
        if ch in ("$", "%") and text.startswith("{", index + 1):
            out.append(ch + ch)
        elif ch == "\\":
            out.append("\\\\")
        elif ch == '"':
            out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(ch)
        index += 1
    out.append('"')
    return "".join(out)
