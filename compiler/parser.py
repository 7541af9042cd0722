"""
Palladium Parser

Backtracking recursive descent parser that produces a syntax tree from tokens.

Every production either succeeds, consuming some prefix of the token stream,
or fails without consuming anything. Alternatives are tried in a fixed order
and the first success wins. When the whole program cannot be parsed, a single
SyntaxError is raised at the furthest position any alternative reached.

Terms and expressions accept the same operator set, so there is no operator
precedence beyond the nesting written in the source: ``1 + 2 * 3`` folds left
to right as ``(1 + 2) * 3``.
"""

from typing import Callable, List, Optional, Set, Tuple, TypeVar
from .tokens import Token, TokenType, describe
from .ast import (
    SyntaxNode, Integer, Float, Identifier, IdentifierList, Operator,
    AdditionOperator, SubtractionOperator, MultiplicationOperator,
    DivisionOperator, GreaterThan, LessThan, GreaterThanOrEqual,
    LessThanOrEqual, EqualTo, LogicalAnd, LogicalOr, LogicalNot, Assignment,
    Factor, Term, Expression, If, Elif, Else, WhileLoopStart, WhileLoopBody,
    WhileLoop, ForLoopStart, ForLoopBody, ForLoop, FunctionName, FunctionArgs,
    FunctionBody, Function, FunctionCall, ReturnStatement, List as ListNode,
    Dictionary, Program,
)
from .errors import SyntaxError, NumericConversionError


T = TypeVar('T')

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

OPERATOR_NODES = {
    TokenType.PLUS: AdditionOperator,
    TokenType.MINUS: SubtractionOperator,
    TokenType.STAR: MultiplicationOperator,
    TokenType.SLASH: DivisionOperator,
    TokenType.GT: GreaterThan,
    TokenType.LT: LessThan,
    TokenType.GE: GreaterThanOrEqual,
    TokenType.LE: LessThanOrEqual,
    TokenType.EQ: EqualTo,
    TokenType.AND: LogicalAnd,
    TokenType.OR: LogicalOr,
    TokenType.NOT: LogicalNot,
    TokenType.ASSIGN: Assignment,
}

_OPENERS = (TokenType.LPAREN, TokenType.LBRACKET, TokenType.LBRACE)
_CLOSERS = (TokenType.RPAREN, TokenType.RBRACKET, TokenType.RBRACE)


class ParseFailure(Exception):
    """A production did not match. Internal to the parser."""
    pass


class Parser:
    """Backtracking recursive descent parser for Palladium."""

    def __init__(self, tokens: List[Token]):
        """
        Initialize the parser.

        Args:
            tokens: List of tokens from the lexer, ending with EOF
        """
        self.tokens = tokens
        self.current = 0
        self.furthest = 0
        self.expected: Set[str] = set()

    def parse(self) -> Program:
        """
        Parse the token stream into a syntax tree.

        Returns:
            Program node

        Raises:
            SyntaxError: If the tokens do not form a program
            NumericConversionError: If a literal does not fit its type
        """
        try:
            return self.program()
        except ParseFailure:
            raise self._syntax_error() from None
        except RecursionError:
            token = self.peek()
            raise SyntaxError("Nesting too deep", token.line, token.column) from None

    # =========================================================================
    # Program and Statements
    # =========================================================================

    def program(self) -> Program:
        start = self.peek()
        statements = self.many(self.statement)
        if not statements:
            self.fail("statement")
        self.consume(TokenType.EOF)
        return Program(tuple(statements), start.line, start.column)

    def statement(self) -> SyntaxNode:
        """Parse any statement-level construct."""
        return self.first_of(
            self.function,
            self.conditional,
            self.loop,
            self.list_literal,
            self.dictionary,
            self.expression,
        )

    def block(self) -> Tuple[SyntaxNode, ...]:
        """Parse the statements of a body. Bodies run until no statement matches."""
        return tuple(self.many(self.statement))

    # =========================================================================
    # Functions
    # =========================================================================

    def function(self) -> Function:
        """
        Parse a function definition.

        Example:
            def add(a, b):
                c = a + b
                return c;
        """
        keyword = self.consume(TokenType.DEF)
        name_token = self.consume(TokenType.IDENTIFIER)
        name = FunctionName(name_token.lexeme, name_token.line, name_token.column)

        args = self.function_args()

        colon = self.consume(TokenType.COLON)
        body = FunctionBody(self.block(), colon.line, colon.column)
        return_statement = self.attempt(self.return_statement)

        return Function(name, args, body, return_statement, keyword.line, keyword.column)

    def function_args(self) -> FunctionArgs:
        """Formal arguments; the separating commas are optional."""
        paren = self.consume(TokenType.LPAREN)
        args = []
        while self.check(TokenType.IDENTIFIER):
            args.append(self.advance().lexeme)
            self.match(TokenType.COMMA)
        self.consume(TokenType.RPAREN)
        return FunctionArgs(tuple(args), paren.line, paren.column)

    def return_statement(self) -> ReturnStatement:
        keyword = self.consume(TokenType.RETURN)
        args = []
        first = self.attempt(self.expression)
        if first is not None:
            args.append(first)
            while self.match(TokenType.COMMA):
                args.append(self.expression())
        self.consume(TokenType.SEMICOLON)
        return ReturnStatement(tuple(args), keyword.line, keyword.column)

    def function_call(self) -> FunctionCall:
        name = self.consume(TokenType.IDENTIFIER)
        self.consume(TokenType.LPAREN)
        args = []
        if self.check(TokenType.IDENTIFIER):
            args.append(self.advance().lexeme)
            while self.match(TokenType.COMMA):
                args.append(self.consume(TokenType.IDENTIFIER).lexeme)
        self.consume(TokenType.RPAREN)
        return FunctionCall(name.lexeme, tuple(args), name.line, name.column)

    # =========================================================================
    # Conditionals
    # =========================================================================

    def conditional(self) -> If:
        """
        Parse an if block with any elif blocks and an optional else.

        Example:
            if x > 5:
                y = 1
            elif x > 3:
                y = 2
            else:
                y = 3
        """
        keyword = self.consume(TokenType.IF)
        condition = self.expression()
        self.consume(TokenType.COLON)
        body = self.block()

        elifs = tuple(self.many(self.elif_block))
        orelse = self.attempt(self.else_block)

        return If(condition, body, elifs, orelse, keyword.line, keyword.column)

    def elif_block(self) -> Elif:
        keyword = self.consume(TokenType.ELIF)
        condition = self.expression()
        self.consume(TokenType.COLON)
        return Elif(condition, self.block(), keyword.line, keyword.column)

    def else_block(self) -> Else:
        keyword = self.consume(TokenType.ELSE)
        self.consume(TokenType.COLON)
        return Else(self.block(), keyword.line, keyword.column)

    # =========================================================================
    # Loops
    # =========================================================================

    def loop(self) -> SyntaxNode:
        return self.first_of(self.while_loop, self.for_loop)

    def while_loop(self) -> WhileLoop:
        keyword = self.consume(TokenType.WHILE)
        condition = self.expression()
        self.consume(TokenType.COLON)
        start = WhileLoopStart(condition, keyword.line, keyword.column)

        first = self.peek()
        body = WhileLoopBody(self.block(), first.line, first.column)
        return WhileLoop(start, body, keyword.line, keyword.column)

    def for_loop(self) -> ForLoop:
        keyword = self.consume(TokenType.FOR)
        variable = self.consume(TokenType.IDENTIFIER)
        self.consume(TokenType.IN)
        collection = self.consume(TokenType.IDENTIFIER)
        self.consume(TokenType.COLON)
        start = ForLoopStart(variable.lexeme, collection.lexeme,
                             keyword.line, keyword.column)

        first = self.peek()
        body = ForLoopBody(self.block(), first.line, first.column)
        return ForLoop(start, body, keyword.line, keyword.column)

    # =========================================================================
    # Collections
    # =========================================================================

    def list_literal(self) -> ListNode:
        """
        Parse a list literal.

        Each comma-separated segment between the brackets is parsed on its own
        as a complete expression.
        """
        bracket = self.consume(TokenType.LBRACKET)
        segments = self.delimited_segments(TokenType.RBRACKET)

        elements = []
        for offset, segment in segments:
            elements.append(self.parse_segment(offset, segment, self._segment_expression))
        return ListNode(tuple(elements), bracket.line, bracket.column)

    def dictionary(self) -> Dictionary:
        """
        Parse a dictionary literal.

        The ``key: value`` pairs are checked but not kept in the node.
        """
        brace = self.consume(TokenType.LBRACE)
        segments = self.delimited_segments(TokenType.RBRACE)

        for offset, segment in segments:
            self.parse_segment(offset, segment, self._segment_key_value)
        return Dictionary((), (), brace.line, brace.column)

    def delimited_segments(self, closer: TokenType) -> List[Tuple[int, List[Token]]]:
        """
        Consume tokens up to the matching closer, split at top-level commas.

        Returns (start index, tokens) for each segment. An empty interior
        yields no segments.
        """
        segments = []
        segment: List[Token] = []
        segment_start = self.current
        depth = 0

        while True:
            token = self.peek()
            if token.type == TokenType.EOF:
                self.fail(describe(closer))
            if depth == 0 and token.type == closer:
                break
            if depth == 0 and token.type == TokenType.COMMA:
                segments.append((segment_start, segment))
                self.advance()
                segment = []
                segment_start = self.current
                continue
            if token.type in _OPENERS:
                depth += 1
            elif token.type in _CLOSERS:
                depth -= 1
            segment.append(self.advance())

        if segment or segments:
            segments.append((segment_start, segment))
        self.advance()  # closer
        return segments

    def parse_segment(self, offset: int, segment: List[Token],
                      production: Callable[['Parser'], T]) -> T:
        """Run a production over a segment that it must consume entirely."""
        if segment:
            end = segment[-1]
            eof = Token(TokenType.EOF, "", None, end.line, end.column + len(end.lexeme))
        else:
            at = self.tokens[offset]
            eof = Token(TokenType.EOF, "", None, at.line, at.column)

        sub = Parser(segment + [eof])
        try:
            result = production(sub)
            sub.consume(TokenType.EOF)
        except ParseFailure:
            for expected in sub.expected:
                self._record(offset + sub.furthest, expected)
            raise
        return result

    @staticmethod
    def _segment_expression(parser: 'Parser') -> Expression:
        return parser.expression()

    @staticmethod
    def _segment_key_value(parser: 'Parser') -> Tuple[Expression, Expression]:
        key = parser.expression()
        parser.consume(TokenType.COLON)
        value = parser.expression()
        return key, value

    # =========================================================================
    # Expressions
    # =========================================================================

    def expression(self) -> Expression:
        """``Term (Operator Term)*``"""
        start = self.peek()
        left = self.term()
        right = self.many(lambda: (self.operator(), self.term()))
        return Expression(left, tuple(right), start.line, start.column)

    def term(self) -> Term:
        """``Factor (Operator Factor)*``"""
        start = self.peek()
        left = self.factor()
        right = self.many(lambda: (self.operator(), self.factor()))
        return Term(left, tuple(right), start.line, start.column)

    def factor(self) -> Factor:
        """
        Parse a factor.

        The order of the alternatives decides which one wins and must not
        change: integer, float, call, identifier(s), parenthesized expression.
        """
        start = self.peek()
        inner = self.first_of(
            self.integer,
            self.float_literal,
            self.function_call,
            self.identifiers,
            self.parenthesized,
        )
        return Factor(inner, start.line, start.column)

    def parenthesized(self) -> Expression:
        self.consume(TokenType.LPAREN)
        expr = self.expression()
        self.consume(TokenType.RPAREN)
        return expr

    def operator(self) -> Operator:
        token = self.peek()
        if not token.is_operator():
            self.fail("operator")
        self.advance()
        return OPERATOR_NODES[token.type](token.line, token.column)

    # =========================================================================
    # Lexical Primitives
    # =========================================================================

    def integer(self) -> Integer:
        """Signed 64-bit integer: an optional '-' and decimal digits."""
        start = self.peek()
        negative = self.match(TokenType.MINUS)
        token = self.consume(TokenType.INTEGER, "integer")

        text = ("-" if negative else "") + token.value
        value = int(text)
        if not INT64_MIN <= value <= INT64_MAX:
            raise NumericConversionError(
                f"Integer literal out of 64-bit range: {text}",
                start.line, start.column)

        return Integer(value, start.line, start.column)

    def float_literal(self) -> Float:
        """64-bit float: an optional '-', digits, '.', digits."""
        start = self.peek()
        negative = self.match(TokenType.MINUS)
        token = self.consume(TokenType.FLOAT, "float")

        text = ("-" if negative else "") + token.value
        value = float(text)
        if value in (float('inf'), float('-inf')):
            raise NumericConversionError(
                f"Float literal out of 64-bit range: {text}",
                start.line, start.column)

        return Float(value, start.line, start.column)

    def identifiers(self) -> SyntaxNode:
        """One or more comma-separated names."""
        first = self.consume(TokenType.IDENTIFIER, "identifier")
        names = [first.lexeme]
        names.extend(self.many(self._next_identifier))

        if len(names) == 1:
            return Identifier(first.lexeme, first.line, first.column)
        return IdentifierList(tuple(names), first.line, first.column)

    def _next_identifier(self) -> str:
        self.consume(TokenType.COMMA)
        return self.consume(TokenType.IDENTIFIER, "identifier").lexeme

    # =========================================================================
    # Combinators
    # =========================================================================

    def attempt(self, production: Callable[[], T]) -> Optional[T]:
        """Run a production, restoring the position and returning None on failure."""
        saved = self.current
        try:
            return production()
        except ParseFailure:
            self.current = saved
            return None

    def first_of(self, *productions: Callable[[], T]) -> T:
        """Ordered alternation: the first production that matches wins."""
        for production in productions:
            result = self.attempt(production)
            if result is not None:
                return result
        raise ParseFailure()

    def many(self, production: Callable[[], T]) -> List[T]:
        """Zero or more repetitions of a production."""
        results = []
        while True:
            saved = self.current
            result = self.attempt(production)
            if result is None or self.current == saved:
                break
            results.append(result)
        return results

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def match(self, *types: TokenType) -> bool:
        """Check if current token matches any of the given types and advance."""
        for type in types:
            if self.check(type):
                self.advance()
                return True
        return False

    def check(self, type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self.peek().type == type

    def advance(self) -> Token:
        """Consume and return the current token."""
        token = self.peek()
        if token.type != TokenType.EOF:
            self.current += 1
        return token

    def peek(self) -> Token:
        """Return the current token."""
        return self.tokens[self.current]

    def consume(self, type: TokenType, expected: Optional[str] = None) -> Token:
        """Consume a token of the expected type or fail."""
        if self.check(type):
            return self.advance()
        self.fail(expected or describe(type))

    def fail(self, expected: str) -> None:
        """Record what was expected at the current position and fail."""
        self._record(self.current, expected)
        raise ParseFailure()

    def _record(self, position: int, expected: str) -> None:
        if position > self.furthest:
            self.furthest = position
            self.expected = {expected}
        elif position == self.furthest:
            self.expected.add(expected)

    def _syntax_error(self) -> SyntaxError:
        token = self.tokens[min(self.furthest, len(self.tokens) - 1)]
        if token.type == TokenType.EOF:
            found = "end of input"
        elif token.is_keyword():
            found = f"reserved word {token.lexeme!r}"
        else:
            found = repr(token.lexeme)
        expected = " or ".join(sorted(self.expected)) or "statement"
        return SyntaxError(f"Expected {expected}, found {found}", token.line, token.column)
