"""Rule language for tageval expression rules.

This module provides:
- Lexer: Tokenizes rule text
- Parser: Produces AST from tokens
- Evaluator: Evaluates AST against a scope
- FunctionRegistry: Registry for rule functions
- Runtime: A global scope with compile/run primitives
"""

from tageval.expressions.builtins import register_all_builtins
from tageval.expressions.evaluator import EvaluationError, Evaluator, to_bool
from tageval.expressions.functions import (
    FunctionCategory,
    FunctionDefinition,
    FunctionParameter,
    FunctionRegistry,
)
from tageval.expressions.lexer import Lexer, LexerError, Token, TokenType
from tageval.expressions.parser import (
    ASTNode,
    ArrayLiteral,
    BinaryOp,
    FunctionCall,
    Identifier,
    IndexAccess,
    LetStatement,
    Literal,
    MemberAccess,
    ObjectLiteral,
    ParseError,
    Parser,
    Program,
    UnaryOp,
    parse,
)
from tageval.expressions.runtime import Runtime, Script

__all__ = [
    # Runtime
    "Runtime",
    "Script",
    # Evaluator
    "EvaluationError",
    "Evaluator",
    "to_bool",
    # Functions
    "FunctionCategory",
    "FunctionDefinition",
    "FunctionParameter",
    "FunctionRegistry",
    "register_all_builtins",
    # Lexer
    "Lexer",
    "LexerError",
    "Token",
    "TokenType",
    # Parser
    "ASTNode",
    "ArrayLiteral",
    "BinaryOp",
    "FunctionCall",
    "Identifier",
    "IndexAccess",
    "LetStatement",
    "Literal",
    "MemberAccess",
    "ObjectLiteral",
    "ParseError",
    "Parser",
    "Program",
    "UnaryOp",
    "parse",
]
