"""
Palladium Token Definitions

Defines all token types and the Token class for lexical analysis.

Besides def/if/elif/else/return, the loop keywords (for, while, in) and the
word operators (and, or, not) are reserved, so none of them can be a name.
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any


class TokenType(Enum):
    """All token types in Palladium."""

    # Literals
    INTEGER = auto()
    FLOAT = auto()
    IDENTIFIER = auto()

    # Keywords
    DEF = auto()
    IF = auto()
    ELIF = auto()
    ELSE = auto()
    RETURN = auto()
    FOR = auto()
    WHILE = auto()
    IN = auto()
    AND = auto()
    OR = auto()
    NOT = auto()

    # Operators
    PLUS = auto()          # +
    MINUS = auto()         # -
    STAR = auto()          # *
    SLASH = auto()         # /

    # Comparison
    EQ = auto()            # ==
    LT = auto()            # <
    LE = auto()            # <=
    GT = auto()            # >
    GE = auto()            # >=

    # Assignment
    ASSIGN = auto()        # =

    # Delimiters
    LPAREN = auto()        # (
    RPAREN = auto()        # )
    LBRACE = auto()        # {
    RBRACE = auto()        # }
    LBRACKET = auto()      # [
    RBRACKET = auto()      # ]
    COMMA = auto()         # ,
    COLON = auto()         # :
    SEMICOLON = auto()     # ;

    # Special
    EOF = auto()


# Keyword mapping
KEYWORDS = {
    'def': TokenType.DEF,
    'if': TokenType.IF,
    'elif': TokenType.ELIF,
    'else': TokenType.ELSE,
    'return': TokenType.RETURN,
    'for': TokenType.FOR,
    'while': TokenType.WHILE,
    'in': TokenType.IN,
    'and': TokenType.AND,
    'or': TokenType.OR,
    'not': TokenType.NOT,
}

# Tokens accepted by the operator recognizer, shared by terms and expressions
OPERATORS = (
    TokenType.NOT, TokenType.OR, TokenType.AND,
    TokenType.LE, TokenType.GE, TokenType.EQ,
    TokenType.PLUS, TokenType.MINUS, TokenType.STAR, TokenType.SLASH,
    TokenType.GT, TokenType.LT, TokenType.ASSIGN,
)


@dataclass
class Token:
    """Represents a single token from the source code."""

    type: TokenType
    lexeme: str
    value: Any
    line: int
    column: int

    def __repr__(self) -> str:
        if self.value is not None:
            return f"Token({self.type.name}, {self.lexeme!r}, {self.value!r}, line={self.line})"
        return f"Token({self.type.name}, {self.lexeme!r}, line={self.line})"

    def is_keyword(self) -> bool:
        """Check if this token is a reserved word."""
        return self.type in KEYWORDS.values()

    def is_operator(self) -> bool:
        """Check if this token is an operator."""
        return self.type in OPERATORS


def describe(token_type: TokenType) -> str:
    """Human-readable name of a token type for error messages."""
    for word, kw_type in KEYWORDS.items():
        if kw_type == token_type:
            return f"'{word}'"
    return _SYMBOLS.get(token_type, token_type.name.lower())


_SYMBOLS = {
    TokenType.PLUS: "'+'",
    TokenType.MINUS: "'-'",
    TokenType.STAR: "'*'",
    TokenType.SLASH: "'/'",
    TokenType.EQ: "'=='",
    TokenType.LT: "'<'",
    TokenType.LE: "'<='",
    TokenType.GT: "'>'",
    TokenType.GE: "'>='",
    TokenType.ASSIGN: "'='",
    TokenType.LPAREN: "'('",
    TokenType.RPAREN: "')'",
    TokenType.LBRACE: "'{'",
    TokenType.RBRACE: "'}'",
    TokenType.LBRACKET: "'['",
    TokenType.RBRACKET: "']'",
    TokenType.COMMA: "','",
    TokenType.COLON: "':'",
    TokenType.SEMICOLON: "';'",
    TokenType.EOF: "end of input",
}
