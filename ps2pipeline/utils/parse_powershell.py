"""Static reader for PowerShell parameter blocks.

Nothing is executed: the script text is tokenized and the ``param(...)``
block is read into :class:`~ps2pipeline.models.ParameterDescriptor` values.
The same tokenizer backs :func:`check_syntax`, which is used to validate
generated wrapper scripts.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Optional

from ps2pipeline.errors.exceptions import GenerationFailure, IntrospectionError
from ps2pipeline.models import ParameterDescriptor, SemanticType

__all__ = [
    "Token",
    "ScriptSignature",
    "tokenize",
    "parse_signature",
    "extract_parameters",
    "script_supports_should_process",
    "find_enum_types",
    "find_function",
    "classify_type",
    "check_syntax",
]

logger = logging.getLogger(__name__)

# token kinds
WORD = "word"
VARIABLE = "variable"
SPLAT = "splat"
STRING = "string"
NUMBER = "number"
COMMENT = "comment"
NEWLINE = "newline"
LPAREN = "lparen"
RPAREN = "rparen"
LBRACKET = "lbracket"
RBRACKET = "rbracket"
LBRACE = "lbrace"
RBRACE = "rbrace"
COMMA = "comma"
SEMICOLON = "semicolon"
EQUALS = "equals"
OPERATOR = "operator"

_OPENERS = {LPAREN: RPAREN, LBRACKET: RBRACKET, LBRACE: RBRACE}
_CLOSERS = {")": RPAREN, "]": RBRACKET, "}": RBRACE}
_SIMPLE = {"(": LPAREN, "[": LBRACKET, "{": LBRACE, ",": COMMA, ";": SEMICOLON, "=": EQUALS}

_WORD_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_\-.#]*")
_VARIABLE_RE = re.compile(r"[A-Za-z0-9_:]+|[$?^]")
_NUMBER_RE = re.compile(r"\d[\w.]*")
_HERE_END_RE = {"'": re.compile(r"\r?\n'@"), '"': re.compile(r'\r?\n"@')}
_EXPANDABLE_RE = re.compile(r"(?<!`)\$(?:[A-Za-z0-9_:?^{(]|\$)")

_BACKTICK_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "a": "\a", "b": "\b", "f": "\f", "v": "\v"}

# `#` only opens a comment at the start of a token
_COMMENT_PRECEDERS = " \t\r\n\f\v\ufeff\u00a0(){}[];,=|&"

_BOOLEAN_TYPES = {
    "switch",
    "bool",
    "boolean",
    "system.boolean",
    "system.management.automation.switchparameter",
}
_NUMBER_TYPES = {
    "int",
    "int16",
    "int32",
    "int64",
    "long",
    "short",
    "uint",
    "uint16",
    "uint32",
    "uint64",
    "ulong",
    "ushort",
    "byte",
    "sbyte",
    "double",
    "float",
    "single",
    "decimal",
    "bigint",
    "system.int16",
    "system.int32",
    "system.int64",
    "system.uint16",
    "system.uint32",
    "system.uint64",
    "system.byte",
    "system.sbyte",
    "system.double",
    "system.single",
    "system.decimal",
    "system.numerics.biginteger",
}
_TEXT_TYPES = {"string", "system.string", "char", "system.char"}
_SCRIPT_TYPES = {"scriptblock", "system.management.automation.scriptblock"}


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    start: int
    end: int
    quote: Optional[str] = None
    expandable: bool = False


@dataclass(frozen=True)
class ScriptSignature:
    """What the parameter block of one script declares."""

    parameters: tuple[ParameterDescriptor, ...]
    supports_should_process: bool = False


# ───────────────────────── tokenizer ────────────────────────────────────────
def _line_of(text: str, pos: int) -> int:
    return text.count("\n", 0, pos) + 1


def _here_string_opens(text: str, pos: int) -> bool:
    """``@'`` and ``@"`` only open a here-string when the rest of the line is blank."""
    newline = text.find("\n", pos + 2)
    rest = text[pos + 2 :] if newline < 0 else text[pos + 2 : newline]
    return newline >= 0 and not rest.strip()


def _read_here_string(text: str, pos: int) -> Token:
    quote = text[pos + 1]
    body_start = text.find("\n", pos) + 1
    end_match = _HERE_END_RE[quote].search(text, body_start - 1)
    if not end_match:
        raise IntrospectionError(f"Unterminated here-string starting on line {_line_of(text, pos)}")
    body = text[body_start : end_match.start()]
    expandable = quote == '"' and bool(_EXPANDABLE_RE.search(body))
    return Token(STRING, body, pos, end_match.end(), quote=quote + "@", expandable=expandable)


def _read_single_quoted(text: str, pos: int) -> Token:
    i = pos + 1
    parts: list[str] = []
    while i < len(text):
        char = text[i]
        if char == "'":
            if text[i + 1 : i + 2] == "'":
                parts.append("'")
                i += 2
                continue
            return Token(STRING, "".join(parts), pos, i + 1, quote="'")
        parts.append(char)
        i += 1
    raise IntrospectionError(f"Unterminated string starting on line {_line_of(text, pos)}")


def _read_double_quoted(text: str, pos: int) -> Token:
    i = pos + 1
    parts: list[str] = []
    expandable = False
    while i < len(text):
        char = text[i]
        if char == "`":
            if i + 1 < len(text):
                escaped = text[i + 1]
                parts.append(_BACKTICK_ESCAPES.get(escaped, escaped))
            i += 2
            continue
        if char == '"':
            if text[i + 1 : i + 2] == '"':
                parts.append('"')
                i += 2
                continue
            return Token(STRING, "".join(parts), pos, i + 1, quote='"', expandable=expandable)
        if char == "$":
            following = text[i + 1 : i + 2]
            if following == "(":
                inner, end = _scan(text, i + 2, nested=True)
                _check_balance(inner, text)
                parts.append(text[i:end])
                expandable = True
                i = end
                continue
            if following == "{":
                close = text.find("}", i + 2)
                if close < 0:
                    raise IntrospectionError(f"Unterminated variable name on line {_line_of(text, i)}")
                parts.append(text[i : close + 1])
                expandable = True
                i = close + 1
                continue
            if following and (following.isalnum() or following in "_:?^$"):
                expandable = True
        parts.append(char)
        i += 1
    raise IntrospectionError(f"Unterminated string starting on line {_line_of(text, pos)}")


def _scan(text: str, pos: int, nested: bool = False) -> tuple[list[Token], int]:
    """Tokenize from *pos*; with *nested* stop after the ``)`` closing a ``$(``."""
    tokens: list[Token] = []
    depth = 0
    length = len(text)
    while pos < length:
        char = text[pos]
        if char in " \t\r\f\v\ufeff\u00a0":
            pos += 1
            continue
        if char == "\n":
            tokens.append(Token(NEWLINE, "\n", pos, pos + 1))
            pos += 1
            continue
        if char == "`":
            # escape or line continuation
            pos += 2
            continue
        if text.startswith("<#", pos):
            close = text.find("#>", pos + 2)
            if close < 0:
                raise IntrospectionError(f"Unterminated block comment starting on line {_line_of(text, pos)}")
            tokens.append(Token(COMMENT, text[pos : close + 2], pos, close + 2))
            pos = close + 2
            continue
        if char == "#" and (pos == 0 or text[pos - 1] in _COMMENT_PRECEDERS):
            newline = text.find("\n", pos)
            end = length if newline < 0 else newline
            tokens.append(Token(COMMENT, text[pos:end], pos, end))
            pos = end
            continue
        if char == "@" and text[pos + 1 : pos + 2] in ("'", '"') and _here_string_opens(text, pos):
            token = _read_here_string(text, pos)
            tokens.append(token)
            pos = token.end
            continue
        if char == "'":
            token = _read_single_quoted(text, pos)
            tokens.append(token)
            pos = token.end
            continue
        if char == '"':
            token = _read_double_quoted(text, pos)
            tokens.append(token)
            pos = token.end
            continue
        if char in "$@":
            following = text[pos + 1 : pos + 2]
            if following == "(":
                tokens.append(Token(LPAREN, char + "(", pos, pos + 2))
                depth += 1
                pos += 2
                continue
            if following == "{" and char == "@":
                tokens.append(Token(LBRACE, "@{", pos, pos + 2))
                depth += 1
                pos += 2
                continue
            if following == "{":
                close = text.find("}", pos + 2)
                if close < 0:
                    raise IntrospectionError(f"Unterminated variable name on line {_line_of(text, pos)}")
                tokens.append(Token(VARIABLE, text[pos + 2 : close], pos, close + 1))
                pos = close + 1
                continue
            match = _VARIABLE_RE.match(text, pos + 1)
            if match:
                kind = VARIABLE if char == "$" else SPLAT
                tokens.append(Token(kind, match.group(0), pos, match.end()))
                pos = match.end()
                continue
            tokens.append(Token(OPERATOR, char, pos, pos + 1))
            pos += 1
            continue
        if char in _SIMPLE:
            kind = _SIMPLE[char]
            if kind in _OPENERS:
                depth += 1
            tokens.append(Token(kind, char, pos, pos + 1))
            pos += 1
            continue
        if char in _CLOSERS:
            if nested and depth == 0 and char == ")":
                return tokens, pos + 1
            depth -= 1
            tokens.append(Token(_CLOSERS[char], char, pos, pos + 1))
            pos += 1
            continue
        match = _NUMBER_RE.match(text, pos)
        if match:
            tokens.append(Token(NUMBER, match.group(0), pos, match.end()))
            pos = match.end()
            continue
        match = _WORD_RE.match(text, pos)
        if match:
            tokens.append(Token(WORD, match.group(0), pos, match.end()))
            pos = match.end()
            continue
        tokens.append(Token(OPERATOR, char, pos, pos + 1))
        pos += 1
    if nested:
        raise IntrospectionError("Unterminated sub-expression '$('")
    return tokens, pos


def tokenize(text: str) -> list[Token]:
    """
    Split PowerShell source into tokens. Comments and newlines are kept.

    Examples:
        >>> [t.kind for t in tokenize("param([int]$x = 1)")]
        ['word', 'lparen', 'lbracket', 'word', 'rbracket', 'variable', 'equals', 'number', 'rparen']
    """
    tokens, _ = _scan(text, 0)
    return tokens


def _check_balance(tokens: Sequence[Token], text: str) -> None:
    stack: list[Token] = []
    for token in tokens:
        if token.kind in _OPENERS:
            stack.append(token)
        elif token.kind in (RPAREN, RBRACKET, RBRACE):
            if not stack:
                raise IntrospectionError(f"Unexpected '{token.value}' on line {_line_of(text, token.start)}")
            opener = stack.pop()
            if _OPENERS[opener.kind] != token.kind:
                raise IntrospectionError(
                    f"'{opener.value}' on line {_line_of(text, opener.start)} "
                    f"closed by '{token.value}' on line {_line_of(text, token.start)}"
                )
    if stack:
        opener = stack[-1]
        raise IntrospectionError(f"Missing closing for '{opener.value}' opened on line {_line_of(text, opener.start)}")


def check_syntax(text: str, shown_text: str | None = None) -> None:
    """Raise :class:`GenerationFailure` unless *text* tokenizes with balanced brackets.

    *shown_text* is attached to the error instead of *text*, e.g. when *text*
    had template expressions swapped out before checking.
    """
    try:
        _check_balance(tokenize(text), text)
    except IntrospectionError as ex:
        generated = text if shown_text is None else shown_text
        raise GenerationFailure(f"Generated script is not valid PowerShell: {ex}", generated) from ex


# ───────────────────────── token helpers ────────────────────────────────────
def _match(tokens: Sequence[Token], index: int) -> int:
    """Index of the token closing the opener at *index*."""
    depth = 0
    for i in range(index, len(tokens)):
        kind = tokens[i].kind
        if kind in _OPENERS:
            depth += 1
        elif kind in (RPAREN, RBRACKET, RBRACE):
            depth -= 1
            if depth == 0:
                return i
    raise IntrospectionError(f"Unbalanced '{tokens[index].value}'")


def _code(tokens: Sequence[Token]) -> list[Token]:
    return [t for t in tokens if t.kind not in (COMMENT, NEWLINE)]


def _next_code(tokens: Sequence[Token], index: int) -> int | None:
    for i in range(index, len(tokens)):
        if tokens[i].kind not in (COMMENT, NEWLINE):
            return i
    return None


def _split_commas(tokens: Sequence[Token]) -> list[list[Token]]:
    """Split on commas that are not nested inside brackets."""
    parts: list[list[Token]] = [[]]
    depth = 0
    for token in tokens:
        if token.kind in _OPENERS:
            depth += 1
        elif token.kind in (RPAREN, RBRACKET, RBRACE):
            depth -= 1
        if token.kind == COMMA and depth == 0:
            parts.append([])
            continue
        parts[-1].append(token)
    return [part for part in parts if part]


def _is_truthy(tokens: Sequence[Token]) -> bool:
    if not tokens:
        return True
    if len(tokens) == 1:
        token = tokens[0]
        if token.kind == VARIABLE:
            return token.value.lower() == "true"
        if token.kind == NUMBER:
            return token.value not in ("0", "0.0")
    return False


def _named_arguments(arguments: Sequence[Token]) -> dict[str, bool]:
    """``Mandatory``, ``Mandatory=$true`` style named attribute arguments."""
    named: dict[str, bool] = {}
    for argument in _split_commas(arguments):
        if argument[0].kind != WORD:
            continue
        if len(argument) == 1:
            named[argument[0].value.lower()] = True
        elif argument[1].kind == EQUALS:
            named[argument[0].value.lower()] = _is_truthy(argument[2:])
    return named


def _positional_literals(arguments: Sequence[Token]) -> tuple[str, ...]:
    values: list[str] = []
    for argument in _split_commas(arguments):
        if len(argument) > 1 and argument[1].kind == EQUALS:
            continue
        value = _constant(argument)
        if value is not None:
            values.append(value)
    return tuple(values)


def _constant(tokens: Sequence[Token]) -> str | None:
    """The literal text of a constant expression, or ``None``."""
    if len(tokens) == 1:
        token = tokens[0]
        if token.kind == STRING and not token.expandable:
            return token.value
        if token.kind == NUMBER:
            return token.value
        if token.kind == VARIABLE and token.value.lower() in ("true", "false"):
            return token.value.lower()
    if len(tokens) == 2 and tokens[0].kind == OPERATOR and tokens[0].value in "+-" and tokens[1].kind == NUMBER:
        return tokens[0].value.replace("+", "") + tokens[1].value
    return None


def _literal_default(tokens: Sequence[Token]) -> str | None:
    """
    Default value of a parameter when it is a constant, else ``None``.

    Arrays of constants are joined with ``;`` which is how array parameters
    are passed through pipeline parameters.
    """
    code = _code(tokens)
    if not code:
        return None
    if len(code) == 1 and code[0].kind == VARIABLE and code[0].value.lower() == "null":
        return None
    if code[0].kind == LPAREN and code[0].value in ("(", "@(") and _match(code, 0) == len(code) - 1:
        code = code[1:-1]
    items = _split_commas(code)
    if not items:
        return None
    values = []
    for item in items:
        value = _constant(item)
        if value is None:
            logger.debug("Default value is not a constant, ignoring it: %s", " ".join(t.value for t in code))
            return None
        values.append(value)
    return ";".join(values)


def _type_name(tokens: Sequence[Token]) -> str:
    return "".join(t.value for t in tokens).lower()


# ───────────────────────── classification ───────────────────────────────────
def _enum_key(name: str) -> str:
    return name.lower().rsplit(".", 1)[-1]


def classify_type(type_name: str, enum_names: Sequence[str] = ()) -> SemanticType:
    """
    Map a PowerShell type constraint to a :class:`SemanticType`.

    Examples:
        >>> classify_type("string[]")
        <SemanticType.ARRAY_OF_TEXT: 'ArrayOfText'>
        >>> classify_type("switch")
        <SemanticType.BOOLEAN: 'Boolean'>
        >>> classify_type("Color", ["color"])
        <SemanticType.ENUM: 'Enum'>
    """
    lowered = type_name.lower()
    is_array = lowered.endswith("[]")
    base = lowered[:-2] if is_array else lowered
    if base in _BOOLEAN_TYPES and not is_array:
        return SemanticType.BOOLEAN
    if base in _NUMBER_TYPES:
        return SemanticType.ARRAY_OF_NUMBER if is_array else SemanticType.NUMBER
    if base in _TEXT_TYPES:
        return SemanticType.ARRAY_OF_TEXT if is_array else SemanticType.TEXT
    if base in _SCRIPT_TYPES:
        return SemanticType.ARRAY_OF_SCRIPT_FRAGMENT if is_array else SemanticType.SCRIPT_FRAGMENT
    if not is_array and base and _enum_key(base) in {_enum_key(n) for n in enum_names}:
        return SemanticType.ENUM
    return SemanticType.OPAQUE


def find_enum_types(text: str) -> dict[str, tuple[str, ...]]:
    """
    Members of every ``enum Name { ... }`` declared in *text*.

    Examples:
        >>> find_enum_types("enum Color { Red; Green = 2 }")
        {'Color': ('Red', 'Green')}
    """
    tokens = tokenize(text)
    enums: dict[str, tuple[str, ...]] = {}
    for index, token in enumerate(tokens):
        if token.kind != WORD or token.value.lower() != "enum":
            continue
        name_index = _next_code(tokens, index + 1)
        if name_index is None or tokens[name_index].kind != WORD:
            continue
        brace_index = _next_code(tokens, name_index + 1)
        # `enum Name : int { ... }` is also allowed
        while brace_index is not None and tokens[brace_index].kind in (OPERATOR, WORD):
            brace_index = _next_code(tokens, brace_index + 1)
        if brace_index is None or tokens[brace_index].kind != LBRACE:
            continue
        members: list[str] = []
        at_statement_start = True
        for member in tokens[brace_index + 1 : _match(tokens, brace_index)]:
            if member.kind in (NEWLINE, SEMICOLON):
                at_statement_start = True
                continue
            if member.kind == COMMENT:
                continue
            if at_statement_start and member.kind == WORD:
                members.append(member.value)
            at_statement_start = False
        enums[tokens[name_index].value] = tuple(members)
    return enums


# ───────────────────────── signature reading ────────────────────────────────
def _unwrap_script_block(tokens: list[Token]) -> list[Token]:
    """``{ param($x) ... }`` is read as the script inside the braces."""
    code_indexes = [i for i, t in enumerate(tokens) if t.kind not in (COMMENT, NEWLINE)]
    if not code_indexes:
        return tokens
    first, last = code_indexes[0], code_indexes[-1]
    if tokens[first].kind == LBRACE and tokens[first].value == "{" and _match(tokens, first) == last:
        return tokens[first + 1 : last]
    return tokens


def _find_param_block(tokens: Sequence[Token]) -> tuple[int | None, list[list[Token]]]:
    """Index of the ``(`` opening the script level param block, plus preceding attributes."""
    attributes: list[list[Token]] = []
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token.kind in (COMMENT, NEWLINE, SEMICOLON):
            i += 1
            continue
        if token.kind == LBRACKET:
            end = _match(tokens, i)
            attributes.append(list(tokens[i + 1 : end]))
            i = end + 1
            continue
        if token.kind == WORD and token.value.lower() == "using":
            while i < len(tokens) and tokens[i].kind not in (NEWLINE, SEMICOLON):
                i += 1
            continue
        if token.kind == WORD and token.value.lower() == "param":
            following = _next_code(tokens, i + 1)
            if following is not None and tokens[following].kind == LPAREN:
                return following, attributes
        return None, attributes
    return None, attributes


def _attribute_call(inner: Sequence[Token]) -> tuple[str, list[Token]] | None:
    code = _code(inner)
    if len(code) >= 2 and code[0].kind == WORD and code[1].kind == LPAREN and code[1].value == "(":
        close = _match(code, 1)
        return code[0].value.lower(), list(code[2:close])
    return None


def _read_parameter(segment: Sequence[Token], enum_types: Mapping[str, Sequence[str]]) -> ParameterDescriptor:
    mandatory = False
    valid_values: tuple[str, ...] | None = None
    type_name = ""
    i = 0
    while i < len(segment) and segment[i].kind == LBRACKET:
        end = _match(segment, i)
        inner = segment[i + 1 : end]
        call = _attribute_call(inner)
        if call is None:
            type_name = _type_name(inner)
        elif call[0] in ("parameter", "system.management.automation.parameter"):
            mandatory = mandatory or _named_arguments(call[1]).get("mandatory", False)
        elif call[0] == "validateset":
            valid_values = _positional_literals(call[1])
        i = end + 1
    if i >= len(segment) or segment[i].kind != VARIABLE:
        found = segment[i].value if i < len(segment) else "end of block"
        raise IntrospectionError(f"Expected a parameter variable, found {found!r}")
    name = segment[i].value.split(":")[-1]
    default_literal = None
    if i + 1 < len(segment) and segment[i + 1].kind == EQUALS:
        default_literal = _literal_default(segment[i + 2 :])

    semantic_type = classify_type(type_name, list(enum_types))
    if semantic_type is SemanticType.ENUM and valid_values is None:
        members = {_enum_key(k): v for k, v in enum_types.items()}
        valid_values = tuple(members[_enum_key(type_name)])
    return ParameterDescriptor(
        name=name,
        type=semantic_type,
        mandatory=mandatory,
        default_literal=default_literal,
        valid_values=valid_values,
        type_name=type_name,
    )


def parse_signature(
    script_text: str,
    enum_types: Mapping[str, Sequence[str]] | None = None,
    context_text: str | None = None,
) -> ScriptSignature:
    """
    Read the parameter block of *script_text*.

    Args:
        script_text: The script, optionally wrapped in ``{ }``.
        enum_types: Extra enum names and members, e.g. .NET enums.
        context_text: Module text searched for ``enum`` declarations.

    Returns:
        ScriptSignature: parameters in declaration order. A script without a
        param block has no parameters.

    Raises:
        IntrospectionError: when the script does not tokenize or the param
            block is malformed.
    """
    tokens = tokenize(script_text)
    _check_balance(tokens, script_text)

    known_enums: dict[str, Sequence[str]] = {}
    if context_text:
        known_enums.update(find_enum_types(context_text))
    known_enums.update(find_enum_types(script_text))
    known_enums.update(enum_types or {})

    body = _unwrap_script_block(tokens)
    open_index, attributes = _find_param_block(body)
    should_process = False
    for attribute in attributes:
        call = _attribute_call(attribute)
        if call and call[0] == "cmdletbinding":
            should_process = _named_arguments(call[1]).get("supportsshouldprocess", False)
    if open_index is None:
        logger.debug("Script has no param block.")
        return ScriptSignature(parameters=(), supports_should_process=should_process)

    close_index = _match(body, open_index)
    segments = _split_commas(_code(body[open_index + 1 : close_index]))
    parameters = tuple(_read_parameter(segment, known_enums) for segment in segments)
    logger.debug("Found %d parameter(s): %s", len(parameters), ", ".join(p.name for p in parameters))
    return ScriptSignature(parameters=parameters, supports_should_process=should_process)


def extract_parameters(
    script_text: str, enum_types: Mapping[str, Sequence[str]] | None = None
) -> list[ParameterDescriptor]:
    """Parameter descriptors of *script_text*, in declaration order."""
    return list(parse_signature(script_text, enum_types).parameters)


def script_supports_should_process(script_text: str) -> bool:
    """True if the script declares ``[CmdletBinding(SupportsShouldProcess)]``."""
    return parse_signature(script_text).supports_should_process


def find_function(module_text: str, name: str) -> str | None:
    """
    Text of the function *name* in *module_text*, as a standalone script.

    Inline parameters (``function f($a) {}``) are rewritten as a param block.

    Examples:
        >>> find_function("function Get-Thing($x) { $x }", "get-thing")
        'param($x)\\n $x '
    """
    tokens = tokenize(module_text)
    _check_balance(tokens, module_text)
    wanted = name.lower()
    for index, token in enumerate(tokens):
        if token.kind != WORD or token.value.lower() not in ("function", "filter"):
            continue
        name_index = _next_code(tokens, index + 1)
        if name_index is None:
            continue
        found = tokens[name_index].value
        # scope qualifiers tokenize as word + operator + word
        following = _next_code(tokens, name_index + 1)
        if following is not None and tokens[following].value == ":":
            name_index = following + 1
            found = tokens[name_index].value
            following = _next_code(tokens, name_index + 1)
        if found.lower() != wanted or following is None:
            continue
        inline_params = None
        if tokens[following].kind == LPAREN:
            close = _match(tokens, following)
            inline_params = module_text[tokens[following].end : tokens[close].start]
            following = _next_code(tokens, close + 1)
        if following is None or tokens[following].kind != LBRACE:
            continue
        body_close = _match(tokens, following)
        body = module_text[tokens[following].end : tokens[body_close].start]
        if inline_params is not None:
            return f"param({inline_params})\n{body}"
        return body
    return None
