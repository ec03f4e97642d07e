"""Parser for the tageval rule language.

Converts a stream of tokens into an Abstract Syntax Tree (AST) using
recursive descent with operator precedence.

A program is one or more statements separated by ``;``. A statement is
either ``let <name> = <expr>`` or an expression; the value of a program
is the value of its last statement.

Operator Precedence (lowest to highest):
1. || (or)
2. && (and)
3. == != < <= > >= in not_in
4. + -
5. * / %
6. ! (not) - (unary)
7. . (member access) () (function call) [] (index)
"""

from dataclasses import dataclass
from typing import Any

from tageval.expressions.lexer import Lexer, Token, TokenType


# -----------------------------------------------------------------------------
# AST Node Types
# -----------------------------------------------------------------------------


@dataclass
class ASTNode:
    """Base class for AST nodes."""
    pass


@dataclass
class Literal(ASTNode):
    """A literal value (number, string, boolean, null)."""
    value: Any


@dataclass
class Identifier(ASTNode):
    """A variable reference (usually the name of the field under test)."""
    name: str


@dataclass
class MemberAccess(ASTNode):
    """Dot notation member access (e.g., Address.City)."""
    object: ASTNode
    member: str


@dataclass
class IndexAccess(ASTNode):
    """Bracket notation index access (e.g., Items[0], Counts["green"])."""
    object: ASTNode
    index: ASTNode


@dataclass
class BinaryOp(ASTNode):
    operator: str
    left: ASTNode
    right: ASTNode


@dataclass
class UnaryOp(ASTNode):
    operator: str
    operand: ASTNode


@dataclass
class FunctionCall(ASTNode):
    """Function call (e.g., len(Name), sum(Points))."""
    name: str
    arguments: list[ASTNode]


@dataclass
class ArrayLiteral(ASTNode):
    elements: list[ASTNode]


@dataclass
class ObjectLiteral(ASTNode):
    """Object literal (e.g., {"amount": 12.5, currency: "USD"})."""
    pairs: dict[str, ASTNode]


@dataclass
class LetStatement(ASTNode):
    """Global binding (e.g., let total = sum(Points))."""
    name: str
    value: ASTNode


@dataclass
class Program(ASTNode):
    """A sequence of statements; evaluates to its last statement."""
    statements: list[ASTNode]


# -----------------------------------------------------------------------------
# Parser
# -----------------------------------------------------------------------------


class ParseError(Exception):
    """Error during parsing."""

    def __init__(self, message: str, token: Token):
        self.token = token
        super().__init__(f"{message} at position {token.position}")


_COMPARISON_OPS = {
    TokenType.EQ: "==",
    TokenType.NEQ: "!=",
    TokenType.LT: "<",
    TokenType.LTE: "<=",
    TokenType.GT: ">",
    TokenType.GTE: ">=",
    TokenType.IN: "in",
    TokenType.NOT_IN: "not in",
}

_ADDITIVE_OPS = {TokenType.PLUS: "+", TokenType.MINUS: "-"}

_MULTIPLICATIVE_OPS = {
    TokenType.MULTIPLY: "*",
    TokenType.DIVIDE: "/",
    TokenType.MODULO: "%",
}


class Parser:
    """Recursive descent parser for the rule language.

    Usage:
        program = Parser('Status == "active" && Count > 0').parse()
    """

    def __init__(self, source: str):
        self.source = source
        self.tokens = Lexer(source).tokenize()
        self.position = 0

    def parse(self) -> Program:
        """Parse the source and return the Program root."""
        if self._is_at_end():
            raise ParseError("Empty expression", self._current())

        statements = [self._parse_statement()]
        while self._match(TokenType.SEMICOLON):
            self._advance()
            if self._is_at_end():
                break
            statements.append(self._parse_statement())

        if not self._is_at_end():
            raise ParseError(
                f"Unexpected token '{self._current().value}'",
                self._current(),
            )

        return Program(statements)

    # -------------------------------------------------------------------------
    # Helper methods
    # -------------------------------------------------------------------------

    def _current(self) -> Token:
        if self.position >= len(self.tokens):
            return Token(TokenType.EOF, None, len(self.source))
        return self.tokens[self.position]

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _advance(self) -> Token:
        token = self._current()
        self.position += 1
        return token

    def _match(self, *types: TokenType) -> bool:
        return self._current().type in types

    def _consume(self, token_type: TokenType, message: str) -> Token:
        """Consume a token of the expected type, or raise error."""
        if self._current().type == token_type:
            return self._advance()
        raise ParseError(message, self._current())

    def _parse_delimited(self, closing: TokenType, parse_item) -> list:
        """Parse comma separated items up to (and including) the closing token."""
        items = []
        if not self._match(closing):
            items.append(parse_item())
            while self._match(TokenType.COMMA):
                self._advance()
                items.append(parse_item())
        self._consume(closing, f"Expected '{_CLOSERS[closing]}'")
        return items

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def _parse_statement(self) -> ASTNode:
        if self._match(TokenType.LET):
            self._advance()
            name = self._consume(TokenType.IDENTIFIER, "Expected name after 'let'")
            self._consume(TokenType.ASSIGN, "Expected '=' after binding name")
            return LetStatement(str(name.value), self._parse_or())
        return self._parse_or()

    # -------------------------------------------------------------------------
    # Expressions (in order of precedence, lowest to highest)
    # -------------------------------------------------------------------------

    def _parse_or(self) -> ASTNode:
        left = self._parse_and()
        while self._match(TokenType.OR):
            self._advance()
            left = BinaryOp("||", left, self._parse_and())
        return left

    def _parse_and(self) -> ASTNode:
        left = self._parse_comparison()
        while self._match(TokenType.AND):
            self._advance()
            left = BinaryOp("&&", left, self._parse_comparison())
        return left

    def _parse_comparison(self) -> ASTNode:
        left = self._parse_additive()
        while self._current().type in _COMPARISON_OPS:
            op = _COMPARISON_OPS[self._advance().type]
            left = BinaryOp(op, left, self._parse_additive())
        return left

    def _parse_additive(self) -> ASTNode:
        left = self._parse_multiplicative()
        while self._current().type in _ADDITIVE_OPS:
            op = _ADDITIVE_OPS[self._advance().type]
            left = BinaryOp(op, left, self._parse_multiplicative())
        return left

    def _parse_multiplicative(self) -> ASTNode:
        left = self._parse_unary()
        while self._current().type in _MULTIPLICATIVE_OPS:
            op = _MULTIPLICATIVE_OPS[self._advance().type]
            left = BinaryOp(op, left, self._parse_unary())
        return left

    def _parse_unary(self) -> ASTNode:
        if self._match(TokenType.NOT):
            self._advance()
            return UnaryOp("!", self._parse_unary())

        if self._match(TokenType.MINUS):
            self._advance()
            return UnaryOp("-", self._parse_unary())

        return self._parse_postfix()

    def _parse_postfix(self) -> ASTNode:
        """Parse member access, indexing and calls."""
        expr = self._parse_primary()

        while True:
            if self._match(TokenType.DOT):
                self._advance()
                member = self._consume(TokenType.IDENTIFIER, "Expected identifier after '.'")
                expr = MemberAccess(expr, str(member.value))

            elif self._match(TokenType.LBRACKET):
                self._advance()
                index = self._parse_or()
                self._consume(TokenType.RBRACKET, "Expected ']' after index")
                expr = IndexAccess(expr, index)

            elif self._match(TokenType.LPAREN) and isinstance(expr, Identifier):
                self._advance()
                expr = FunctionCall(expr.name, self._parse_delimited(TokenType.RPAREN, self._parse_or))

            else:
                return expr

    def _parse_primary(self) -> ASTNode:
        token = self._current()

        if token.type in (TokenType.NUMBER, TokenType.STRING, TokenType.BOOLEAN):
            self._advance()
            return Literal(token.value)

        if token.type == TokenType.NULL:
            self._advance()
            return Literal(None)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return Identifier(str(token.value))

        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_or()
            self._consume(TokenType.RPAREN, "Expected ')' after expression")
            return expr

        if token.type == TokenType.LBRACKET:
            self._advance()
            return ArrayLiteral(self._parse_delimited(TokenType.RBRACKET, self._parse_or))

        if token.type == TokenType.LBRACE:
            self._advance()
            return ObjectLiteral(dict(self._parse_delimited(TokenType.RBRACE, self._parse_object_pair)))

        raise ParseError(f"Unexpected token '{token.value}'", token)

    def _parse_object_pair(self) -> tuple[str, ASTNode]:
        """Parse a key-value pair in an object literal."""
        if self._match(TokenType.STRING, TokenType.IDENTIFIER):
            key = str(self._advance().value)
        else:
            raise ParseError("Expected string or identifier as object key", self._current())

        self._consume(TokenType.COLON, "Expected ':' after object key")
        return key, self._parse_or()


_CLOSERS = {
    TokenType.RPAREN: ")",
    TokenType.RBRACKET: "]",
    TokenType.RBRACE: "}",
}


def parse(source: str) -> Program:
    """Convenience function to parse rule text.

    Args:
        source: The rule text

    Returns:
        The Program root node
    """
    return Parser(source).parse()
