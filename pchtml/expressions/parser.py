# pchtml — JSX-flavoured HTML templating for static site builds
# Copyright (C) 2024-2026 Dr Horst Herb
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Precedence-climbing parser for the expression language.

The grammar is a restricted JavaScript expression subset: no assignment,
no statements, no ``new``.  Arrow functions take expression bodies only.
"""

from __future__ import annotations

from pchtml.errors import ExpressionError
from pchtml.expressions.lexer import Lexer, TemplatePart, Token, TokenType
from pchtml.expressions.nodes import (
    ArrayLiteral,
    Arrow,
    Binary,
    Call,
    Conditional,
    Identifier,
    Literal,
    Logical,
    MarkupLiteral,
    Member,
    Node,
    ObjectLiteral,
    OptionalChain,
    Property,
    Spread,
    TemplateLiteral,
    Unary,
)
from pchtml.expressions.values import UNDEFINED, format_number

BINARY_PRECEDENCE = {
    "??": 1, "||": 1,
    "&&": 2,
    "==": 3, "!=": 3, "===": 3, "!==": 3,
    "<": 4, ">": 4, "<=": 4, ">=": 4,
    "+": 5, "-": 5,
    "*": 6, "/": 6, "%": 6,
    "**": 7,
}

LOGICAL_OPERATORS = frozenset({"&&", "||", "??"})

UNARY_OPERATORS = frozenset({"!", "-", "+"})

KEYWORD_LITERALS = {"true": True, "false": False, "null": None, "undefined": UNDEFINED}

UNSUPPORTED_KEYWORDS = frozenset({
    "new", "function", "class", "this", "var", "let", "const", "return",
    "delete", "void", "in", "instanceof", "yield", "await", "import",
    "if", "else", "for", "while", "do", "switch", "throw", "try",
})

_OPENERS = ("(", "[", "{")
_CLOSERS = (")", "]", "}")


class Parser:
    def __init__(self, source: str) -> None:
        self.source = source
        self.tokens = Lexer(source).tokenize()
        self.index = 0

    def parse(self) -> Node:
        # "{}" and comment-only regions evaluate to undefined
        if self._peek().type is TokenType.EOF:
            return Literal(UNDEFINED)
        node = self._expression()
        token = self._peek()
        if token.type is not TokenType.EOF:
            raise self._error(f"Unexpected token {token.value!r}", token)
        return node

    # -- token helpers -----------------------------------------------------

    def _peek(self, offset: int = 0) -> Token:
        index = min(self.index + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        if token.type is not TokenType.EOF:
            self.index += 1
        return token

    def _check_punct(self, value: str, offset: int = 0) -> bool:
        token = self._peek(offset)
        return token.type is TokenType.PUNCT and token.value == value

    def _match_punct(self, value: str) -> bool:
        if self._check_punct(value):
            self.index += 1
            return True
        return False

    def _expect_punct(self, value: str) -> None:
        if not self._match_punct(value):
            token = self._peek()
            found = "end of expression" if token.type is TokenType.EOF else repr(token.value)
            raise self._error(f"Expected {value!r} but found {found}", token)

    def _expect_name(self) -> str:
        token = self._advance()
        if token.type is not TokenType.NAME:
            raise self._error("Expected a name", token)
        return token.value

    def _error(self, message: str, token: Token) -> ExpressionError:
        return ExpressionError(message, expression=self.source, position=token.position)

    # -- grammar -----------------------------------------------------------

    def _expression(self) -> Node:
        if self._at_arrow():
            return self._arrow()
        test = self._binary(1)
        if self._match_punct("?"):
            consequent = self._expression()
            self._expect_punct(":")
            alternate = self._expression()
            return Conditional(test, consequent, alternate)
        return test

    def _binary(self, min_precedence: int) -> Node:
        left = self._unary()
        while True:
            token = self._peek()
            if token.type is not TokenType.PUNCT:
                return left
            precedence = BINARY_PRECEDENCE.get(token.value)
            if precedence is None or precedence < min_precedence:
                return left
            self._advance()
            # ** is right-associative
            next_min = precedence if token.value == "**" else precedence + 1
            right = self._binary(next_min)
            if token.value in LOGICAL_OPERATORS:
                left = Logical(token.value, left, right)
            else:
                left = Binary(token.value, left, right)

    def _unary(self) -> Node:
        token = self._peek()
        if token.type is TokenType.PUNCT and token.value in UNARY_OPERATORS:
            self._advance()
            return Unary(token.value, self._unary())
        if token.type is TokenType.NAME and token.value == "typeof":
            self._advance()
            return Unary("typeof", self._unary())
        return self._postfix()

    def _postfix(self) -> Node:
        node = self._primary()
        optional_chain = False
        while True:
            if self._match_punct("."):
                node = Member(node, Literal(self._expect_name()))
            elif self._match_punct("?."):
                optional_chain = True
                if self._match_punct("("):
                    node = Call(node, self._arguments(), optional=True)
                elif self._match_punct("["):
                    key = self._expression()
                    self._expect_punct("]")
                    node = Member(node, key, optional=True)
                else:
                    node = Member(node, Literal(self._expect_name()), optional=True)
            elif self._match_punct("["):
                key = self._expression()
                self._expect_punct("]")
                node = Member(node, key)
            elif self._match_punct("("):
                node = Call(node, self._arguments())
            else:
                break
        return OptionalChain(node) if optional_chain else node

    def _arguments(self) -> list[Node]:
        arguments: list[Node] = []
        while not self._match_punct(")"):
            if self._match_punct("..."):
                arguments.append(Spread(self._expression()))
            else:
                arguments.append(self._expression())
            if not self._match_punct(","):
                self._expect_punct(")")
                break
        return arguments

    def _primary(self) -> Node:
        token = self._advance()
        if token.type in (TokenType.NUMBER, TokenType.STRING):
            return Literal(token.value)
        if token.type is TokenType.TEMPLATE:
            return self._template(token.value)
        if token.type is TokenType.MARKUP:
            return MarkupLiteral(token.value)
        if token.type is TokenType.NAME:
            if token.value in KEYWORD_LITERALS:
                return Literal(KEYWORD_LITERALS[token.value])
            if token.value in UNSUPPORTED_KEYWORDS:
                raise self._error(f"'{token.value}' is not supported in expressions", token)
            return Identifier(token.value)
        if token.type is TokenType.PUNCT:
            if token.value == "(":
                node = self._expression()
                self._expect_punct(")")
                return node
            if token.value == "[":
                return self._array()
            if token.value == "{":
                return self._object()
            raise self._error(f"Unexpected token {token.value!r}", token)
        raise self._error("Unexpected end of expression", token)

    def _array(self) -> ArrayLiteral:
        elements: list[Node] = []
        while not self._match_punct("]"):
            if self._match_punct("..."):
                elements.append(Spread(self._expression()))
            else:
                elements.append(self._expression())
            if not self._match_punct(","):
                self._expect_punct("]")
                break
        return ArrayLiteral(elements)

    def _object(self) -> ObjectLiteral:
        entries: list[Property | Spread] = []
        while not self._match_punct("}"):
            entries.append(self._object_entry())
            if not self._match_punct(","):
                self._expect_punct("}")
                break
        return ObjectLiteral(entries)

    def _object_entry(self) -> Property | Spread:
        if self._match_punct("..."):
            return Spread(self._expression())
        if self._match_punct("["):
            key = self._expression()
            self._expect_punct("]")
            self._expect_punct(":")
            return Property(key, self._expression())

        token = self._advance()
        if token.type is TokenType.NAME or token.type is TokenType.STRING:
            key = token.value
        elif token.type is TokenType.NUMBER:
            key = format_number(token.value)
        else:
            raise self._error("Expected a property name", token)
        if self._match_punct(":"):
            return Property(Literal(key), self._expression())
        if token.type is TokenType.NAME:
            return Property(Literal(key), Identifier(key))
        raise self._error("Expected ':' after property name", self._peek())

    def _template(self, parts: list[str | TemplatePart]) -> TemplateLiteral:
        nodes: list[str | Node] = []
        for part in parts:
            if isinstance(part, str):
                if part:
                    nodes.append(part)
                continue
            try:
                nodes.append(Parser(part.source).parse())
            except ExpressionError as exc:
                raise ExpressionError(
                    exc.message,
                    expression=self.source,
                    position=part.offset + (exc.position or 0),
                ) from None
        return TemplateLiteral(nodes)

    # -- arrow functions ---------------------------------------------------

    def _at_arrow(self) -> bool:
        token = self._peek()
        if token.type is TokenType.NAME:
            return self._check_punct("=>", 1)
        if not self._check_punct("("):
            return False
        depth = 0
        for index in range(self.index, len(self.tokens)):
            candidate = self.tokens[index]
            if candidate.type is TokenType.EOF:
                return False
            if candidate.type is not TokenType.PUNCT:
                continue
            if candidate.value in _OPENERS:
                depth += 1
            elif candidate.value in _CLOSERS:
                depth -= 1
                if not depth:
                    following = self.tokens[index + 1]
                    return following.type is TokenType.PUNCT and following.value == "=>"
        return False

    def _arrow(self) -> Arrow:
        params: list[str] = []
        if self._peek().type is TokenType.NAME:
            params.append(self._expect_name())
        else:
            self._expect_punct("(")
            if not self._match_punct(")"):
                while True:
                    params.append(self._expect_name())
                    if self._match_punct(")"):
                        break
                    self._expect_punct(",")
        self._expect_punct("=>")
        if self._check_punct("{"):
            raise self._error(
                "Arrow functions take expression bodies only; "
                "wrap object literals in parentheses",
                self._peek(),
            )
        return Arrow(params, self._expression())


def parse(source: str) -> Node:
    """Parse expression *source* into a syntax tree."""
    return Parser(source).parse()
