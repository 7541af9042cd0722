"""
Palladium Lexer

Turns Palladium source into a flat token list for the parser. Whitespace,
newlines and ``#`` comments separate tokens and are otherwise dropped.
"""

from typing import List
from .tokens import Token, TokenType, KEYWORDS
from .errors import SyntaxError


# Characters that always form a token on their own
SINGLE_CHAR_TOKENS = {
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    '{': TokenType.LBRACE,
    '}': TokenType.RBRACE,
    '[': TokenType.LBRACKET,
    ']': TokenType.RBRACKET,
    ',': TokenType.COMMA,
    ':': TokenType.COLON,
    ';': TokenType.SEMICOLON,
    '+': TokenType.PLUS,
    '-': TokenType.MINUS,
    '*': TokenType.STAR,
    '/': TokenType.SLASH,
}

# Characters that pair with a following '=': (alone, with '=')
COMPARISON_TOKENS = {
    '=': (TokenType.ASSIGN, TokenType.EQ),
    '<': (TokenType.LT, TokenType.LE),
    '>': (TokenType.GT, TokenType.GE),
}


def is_digit(c: str) -> bool:
    """ASCII decimal digit. str.isdigit() also accepts '²' and '①'."""
    return '0' <= c <= '9'


class Lexer:
    """Lexical analyzer for Palladium source code."""

    def __init__(self, source: str):
        self.source = source
        self.tokens: List[Token] = []
        self.start = 0
        self.current = 0
        self.line = 1
        self.line_start = 0

    def tokenize(self) -> List[Token]:
        """
        Tokenize the whole source.

        Returns:
            Token list, always ending with a single EOF token

        Raises:
            SyntaxError: On a character that cannot start any token
        """
        while not self.is_at_end():
            self.start = self.current
            self.scan_token()

        self.start = self.current
        self.add_token(TokenType.EOF)
        return self.tokens

    def scan_token(self) -> None:
        c = self.advance()

        if c == '\n':
            self.line += 1
            self.line_start = self.current
        elif c.isspace():
            pass
        elif c == '#':
            self.skip_comment()
        elif c in SINGLE_CHAR_TOKENS:
            self.add_token(SINGLE_CHAR_TOKENS[c])
        elif c in COMPARISON_TOKENS:
            alone, with_equals = COMPARISON_TOKENS[c]
            self.add_token(with_equals if self.match('=') else alone)
        elif is_digit(c):
            self.number()
        elif c.isalpha():
            self.identifier()
        else:
            raise SyntaxError(f"Unexpected character: {c!r}", self.line, self.column())

    # =========================================================================
    # Token Scanners
    # =========================================================================

    def skip_comment(self) -> None:
        while self.peek() != '\n' and not self.is_at_end():
            self.advance()

    def number(self) -> None:
        """
        Scan ``digits`` or ``digits.digits``.

        The token value is the matched text. The parser converts it, after
        folding in any leading '-', so range checks see the signed value.
        """
        self.digits()

        if self.peek() == '.' and is_digit(self.peek_next()):
            self.advance()
            self.digits()
            kind = TokenType.FLOAT
        else:
            kind = TokenType.INTEGER

        self.add_token(kind, self.source[self.start:self.current])

    def digits(self) -> None:
        while is_digit(self.peek()):
            self.advance()

    def identifier(self) -> None:
        """Scan a name; reserved words only match as whole words."""
        while self.peek().isalnum():
            self.advance()

        text = self.source[self.start:self.current]
        self.add_token(KEYWORDS.get(text, TokenType.IDENTIFIER))

    # =========================================================================
    # Character Helpers
    # =========================================================================

    def advance(self) -> str:
        c = self.source[self.current]
        self.current += 1
        return c

    def peek(self) -> str:
        if self.is_at_end():
            return '\0'
        return self.source[self.current]

    def peek_next(self) -> str:
        if self.current + 1 >= len(self.source):
            return '\0'
        return self.source[self.current + 1]

    def match(self, expected: str) -> bool:
        """Consume the next character only if it is ``expected``."""
        if self.peek() != expected:
            return False
        self.current += 1
        return True

    def is_at_end(self) -> bool:
        return self.current >= len(self.source)

    def column(self) -> int:
        """1-based column of the token being scanned."""
        return self.start - self.line_start + 1

    def add_token(self, type: TokenType, value=None) -> None:
        lexeme = self.source[self.start:self.current]
        self.tokens.append(Token(type, lexeme, value, self.line, self.column()))
