"""Lexer/tokenizer for the tageval rule language.

Converts rule text into a stream of tokens for the parser.

Token types:
- Literals: NUMBER, STRING, BOOLEAN, NULL
- Identifiers: IDENTIFIER (field names, function names)
- Operators: comparison, logical, arithmetic, assignment
- Punctuation: parentheses, brackets, braces, COMMA, DOT, COLON, SEMICOLON
"""

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator


class TokenType(Enum):
    """Types of tokens in the rule language."""

    # Literals
    NUMBER = auto()
    STRING = auto()
    BOOLEAN = auto()
    NULL = auto()

    IDENTIFIER = auto()
    LET = auto()         # let

    # Comparison operators
    EQ = auto()          # ==
    NEQ = auto()         # !=
    LT = auto()          # <
    LTE = auto()         # <=
    GT = auto()          # >
    GTE = auto()         # >=

    # Logical operators
    AND = auto()         # && or and
    OR = auto()          # || or or
    NOT = auto()         # ! or not

    # Arithmetic operators
    PLUS = auto()
    MINUS = auto()
    MULTIPLY = auto()
    DIVIDE = auto()
    MODULO = auto()

    # Membership operators
    IN = auto()          # in
    NOT_IN = auto()      # not in

    ASSIGN = auto()      # =

    # Punctuation
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    LBRACE = auto()
    RBRACE = auto()
    COMMA = auto()
    DOT = auto()
    COLON = auto()
    SEMICOLON = auto()

    EOF = auto()


@dataclass(frozen=True)
class Token:
    """A single token from the lexer.

    Attributes:
        type: The token type
        value: Number, string content, identifier name or operator text
        position: Character offset in the source
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """

    type: TokenType
    value: str | int | float | bool | None
    position: int
    line: int = 1
    column: int = 1

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, pos={self.position})"


class LexerError(Exception):
    """Error during lexical analysis."""

    def __init__(self, message: str, position: int, line: int = 1, column: int = 1):
        self.position = position
        self.line = line
        self.column = column
        super().__init__(f"{message} at line {line}, column {column}")


# Group name -> token type. Alternation order matters: longer operators first.
_TOKEN_SPEC = [
    ("WS", r"\s+", None),
    ("FLOAT", r"\d+\.\d+", TokenType.NUMBER),
    ("INT", r"\d+", TokenType.NUMBER),
    ("DSTRING", r'"(?:[^"\\]|\\.)*"', TokenType.STRING),
    ("SSTRING", r"'(?:[^'\\]|\\.)*'", TokenType.STRING),
    ("NAME", r"[A-Za-z_][A-Za-z0-9_]*", TokenType.IDENTIFIER),
    ("EQ", r"==", TokenType.EQ),
    ("NEQ", r"!=", TokenType.NEQ),
    ("LTE", r"<=", TokenType.LTE),
    ("GTE", r">=", TokenType.GTE),
    ("AND", r"&&", TokenType.AND),
    ("OR", r"\|\|", TokenType.OR),
    ("LT", r"<", TokenType.LT),
    ("GT", r">", TokenType.GT),
    ("NOT", r"!", TokenType.NOT),
    ("ASSIGN", r"=", TokenType.ASSIGN),
    ("PLUS", r"\+", TokenType.PLUS),
    ("MINUS", r"-", TokenType.MINUS),
    ("MULTIPLY", r"\*", TokenType.MULTIPLY),
    ("DIVIDE", r"/", TokenType.DIVIDE),
    ("MODULO", r"%", TokenType.MODULO),
    ("LPAREN", r"\(", TokenType.LPAREN),
    ("RPAREN", r"\)", TokenType.RPAREN),
    ("LBRACKET", r"\[", TokenType.LBRACKET),
    ("RBRACKET", r"\]", TokenType.RBRACKET),
    ("LBRACE", r"\{", TokenType.LBRACE),
    ("RBRACE", r"\}", TokenType.RBRACE),
    ("COMMA", r",", TokenType.COMMA),
    ("DOT", r"\.", TokenType.DOT),
    ("COLON", r":", TokenType.COLON),
    ("SEMICOLON", r";", TokenType.SEMICOLON),
]

_MASTER_PATTERN = re.compile(
    "|".join(f"(?P<{name}>{pattern})" for name, pattern, _ in _TOKEN_SPEC)
)
_GROUP_TYPES = {name: token_type for name, _, token_type in _TOKEN_SPEC}

# Keywords are matched case-insensitively.
KEYWORDS = {
    "true": (TokenType.BOOLEAN, True),
    "false": (TokenType.BOOLEAN, False),
    "null": (TokenType.NULL, None),
    "and": (TokenType.AND, "and"),
    "or": (TokenType.OR, "or"),
    "not": (TokenType.NOT, "not"),
    "in": (TokenType.IN, "in"),
    "let": (TokenType.LET, "let"),
}

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "'": "'"}
_ESCAPE_PATTERN = re.compile(r"\\(.)", re.DOTALL)


def _unescape(body: str) -> str:
    return _ESCAPE_PATTERN.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)


class Lexer:
    """Tokenizer for the rule language.

    Usage:
        lexer = Lexer('Status == "active" && Count > 0')
        for token in lexer:
            print(token)
    """

    def __init__(self, source: str):
        self.source = source

    def __iter__(self) -> Iterator[Token]:
        source = self.source
        position = 0
        line = 1
        line_start = 0

        while position < len(source):
            match = _MASTER_PATTERN.match(source, position)
            if match is None:
                raise LexerError(
                    f"Unexpected character '{source[position]}'",
                    position,
                    line,
                    position - line_start + 1,
                )

            group = match.lastgroup
            text = match.group()
            column = position - line_start + 1
            token_type = _GROUP_TYPES[group]

            if token_type is None:
                newlines = text.count("\n")
                if newlines:
                    line += newlines
                    line_start = position + text.rindex("\n") + 1
            elif group == "NAME":
                yield self._name_token(text, position, line, column)
            elif group == "FLOAT":
                yield Token(TokenType.NUMBER, float(text), position, line, column)
            elif group == "INT":
                yield Token(TokenType.NUMBER, int(text), position, line, column)
            elif token_type == TokenType.STRING:
                yield Token(TokenType.STRING, _unescape(text[1:-1]), position, line, column)
            else:
                yield Token(token_type, text, position, line, column)

            position = match.end()

        yield Token(TokenType.EOF, None, position, line, position - line_start + 1)

    def _name_token(self, text: str, position: int, line: int, column: int) -> Token:
        keyword = KEYWORDS.get(text.lower())
        if keyword is None:
            return Token(TokenType.IDENTIFIER, text, position, line, column)
        keyword_type, keyword_value = keyword
        return Token(keyword_type, keyword_value, position, line, column)

    def tokenize(self) -> list[Token]:
        """Tokenize the entire source, folding "not in" into a single token."""
        tokens: list[Token] = []
        for token in self:
            if (
                token.type == TokenType.IN
                and tokens
                and tokens[-1].type == TokenType.NOT
                and tokens[-1].value == "not"
            ):
                previous = tokens.pop()
                token = Token(
                    TokenType.NOT_IN, "not in", previous.position, previous.line, previous.column
                )
            tokens.append(token)
        return tokens
