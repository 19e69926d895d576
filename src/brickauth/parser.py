"""
Parser for the textual authorization expression syntax.

Grammar::

    expr    := and ( '||' and )*
    and     := primary ( '&&' primary )*
    primary := '(' expr ')' | '#defer' | call
    call    := ('#authorize' | '#authorizeAny')
               '(' '#principal' ',' '#'<securable> ',' PRIV (',' PRIV)* ')'

Example::

    parse_expression('''
        #authorize(#principal, #metastore, OWNER) ||
        #authorizeAny(#principal, #catalog, OWNER, USE_CATALOG)
    ''')
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from brickauth.errors import InvalidExpressionError
from brickauth.models.enums import PrivilegeType, securable_type_from_expression_name
from brickauth.models.expressions import DEFER, And, Authorize, AuthorizeAny, ExpressionNode, Or

logger = logging.getLogger(__name__)


@dataclass
class Token:
    type: str
    value: str
    line: int
    column: int


_SYMBOLS = {
    "(": "LPAREN",
    ")": "RPAREN",
    ",": "COMMA",
}

_OPERATORS = {
    "&&": "AND",
    "||": "OR",
}


def _is_ident_part(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def tokenize(source: str) -> List[Token]:
    """Tokenize expression text."""
    tokens: List[Token] = []
    pos = 0
    line = 1
    column = 1
    length = len(source)

    while pos < length:
        ch = source[pos]

        if ch == "\n":
            pos += 1
            line += 1
            column = 1
            continue

        if ch.isspace():
            pos += 1
            column += 1
            continue

        if ch in _SYMBOLS:
            tokens.append(Token(_SYMBOLS[ch], ch, line, column))
            pos += 1
            column += 1
            continue

        pair = source[pos:pos + 2]
        if pair in _OPERATORS:
            tokens.append(Token(_OPERATORS[pair], pair, line, column))
            pos += 2
            column += 2
            continue

        if ch == "#" or _is_ident_part(ch):
            start = pos
            pos += 1
            while pos < length and _is_ident_part(source[pos]):
                pos += 1
            word = source[start:pos]
            if word == "#":
                raise InvalidExpressionError("Expected a name after '#'", line, column)
            tokens.append(Token("REF" if ch == "#" else "IDENT", word, line, column))
            column += pos - start
            continue

        raise InvalidExpressionError(f"Unexpected character '{ch}'", line, column)

    tokens.append(Token("EOF", "", line, column))
    return tokens


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, tokens: List[Token]):
        self._tokens = tokens
        self._pos = 0

    def parse(self) -> ExpressionNode:
        expr = self._parse_or()
        if not self._check("EOF"):
            tok = self._current()
            raise InvalidExpressionError(f"Unexpected '{tok.value}'", tok.line, tok.column)
        return expr

    def _parse_or(self) -> ExpressionNode:
        left = self._parse_and()
        while self._check("OR"):
            self._advance()
            left = Or(left=left, right=self._parse_and())
        return left

    def _parse_and(self) -> ExpressionNode:
        left = self._parse_primary()
        while self._check("AND"):
            self._advance()
            left = And(left=left, right=self._parse_primary())
        return left

    def _parse_primary(self) -> ExpressionNode:
        if self._check("LPAREN"):
            self._advance()
            expr = self._parse_or()
            self._expect("RPAREN", "Expected ')'")
            return expr

        tok = self._expect("REF", "Expected '#authorize', '#authorizeAny', '#defer' or '('")
        if tok.value == "#defer":
            return DEFER
        if tok.value in ("#authorize", "#authorizeAny"):
            return self._parse_call(tok)
        raise InvalidExpressionError(f"Unknown function '{tok.value}'", tok.line, tok.column)

    def _parse_call(self, name: Token) -> ExpressionNode:
        self._expect("LPAREN", f"Expected '(' after '{name.value}'")

        principal = self._expect("REF", "Expected '#principal'")
        if principal.value != "#principal":
            raise InvalidExpressionError(
                f"First argument must be '#principal', got '{principal.value}'",
                principal.line,
                principal.column,
            )
        self._expect("COMMA", "Expected ','")

        securable = self._expect("REF", "Expected a securable such as '#catalog'")
        try:
            securable_type = securable_type_from_expression_name(securable.value)
        except ValueError as e:
            raise InvalidExpressionError(str(e), securable.line, securable.column) from None

        privileges = []
        while self._check("COMMA"):
            self._advance()
            priv = self._expect("IDENT", "Expected a privilege name")
            try:
                privileges.append(PrivilegeType(priv.value.upper()))
            except ValueError:
                raise InvalidExpressionError(
                    f"Unknown privilege '{priv.value}'", priv.line, priv.column
                ) from None
        if not privileges:
            raise InvalidExpressionError(
                f"'{name.value}' requires at least one privilege", name.line, name.column
            )
        self._expect("RPAREN", "Expected ')'")

        node_cls = Authorize if name.value == "#authorize" else AuthorizeAny
        return node_cls(securable_type=securable_type, privileges=tuple(privileges))

    # -- Utility methods --

    def _current(self) -> Token:
        return self._tokens[self._pos]

    def _advance(self) -> Token:
        tok = self._current()
        if tok.type != "EOF":
            self._pos += 1
        return tok

    def _check(self, token_type: str) -> bool:
        return self._current().type == token_type

    def _expect(self, token_type: str, message: str) -> Token:
        tok = self._current()
        if tok.type != token_type:
            got = "end of input" if tok.type == "EOF" else f"'{tok.value}'"
            raise InvalidExpressionError(f"{message}, but got {got}", tok.line, tok.column)
        return self._advance()


def parse_expression(source: str) -> ExpressionNode:
    """
    Parse expression text into an expression tree.

    Args:
        source: Expression text

    Returns:
        The root expression node

    Raises:
        InvalidExpressionError: When the input is empty or malformed
    """
    if not source or not source.strip():
        raise InvalidExpressionError("Expression is empty", 1, 1)
    expr = _Parser(tokenize(source)).parse()
    logger.debug(f"Parsed expression: {expr.to_text()}")
    return expr
