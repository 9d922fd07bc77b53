"""
Parser: recursive-descent parser that builds a Schema from a token stream.
"""

from typing import List, Optional

from .lexer import tokenize, Token, TOK_KEYWORD, TOK_IDENT, TOK_SYMBOL, TOK_DIM, TOK_EOF
from .schema import (
    DIM_CONST,
    DIM_VAR,
    Dimension,
    Member,
    Schema,
    Struct,
    struct_base_hash,
    validate_schema,
)
from .types import is_primitive


# ── Parser ───────────────────────────────────────────────────────────

class Parser:
    """
    Recursive-descent parser for LCM type definitions.

    Expects a token list produced by ``tokenize()``.  Builds a ``Schema``
    whose structs carry fully qualified names and their base hash seeds.
    Member types are not resolved here: structs may refer to types defined
    later in the file or in another file.  Call ``validate_schema()`` once
    every input has been parsed.
    """

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0
        self.package = ""

    # ── Token helpers ────────────────────────────────────────────────

    def peek(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def expect(self, kind: str, value: Optional[str] = None) -> Token:
        tok = self.advance()
        if tok.kind != kind:
            raise SyntaxError(
                f"Line {tok.line}: expected {kind}"
                f"{f' {value!r}' if value else ''}, got {tok.kind} {tok.value!r}")
        if value is not None and tok.value != value:
            raise SyntaxError(
                f"Line {tok.line}: expected {value!r}, got {tok.value!r}")
        return tok

    # ── Top-level ────────────────────────────────────────────────────

    def parse(self) -> Schema:
        schema = Schema()

        while self.peek().kind != TOK_EOF:
            tok = self.peek()
            if tok.kind == TOK_KEYWORD and tok.value == "package":
                self._parse_package(schema)
            elif tok.kind == TOK_KEYWORD and tok.value == "struct":
                schema.structs.append(self._parse_struct())
            else:
                raise SyntaxError(
                    f"Line {tok.line}: expected 'package' or 'struct', "
                    f"got {tok.value!r}")

        return schema

    def _parse_package(self, schema: Schema):
        tok = self.expect(TOK_KEYWORD, "package")
        if self.package or schema.structs:
            raise SyntaxError(
                f"Line {tok.line}: 'package' must come once, before any struct")
        self.package = self.expect(TOK_IDENT).value
        self.expect(TOK_SYMBOL, ";")

    # ── Struct ───────────────────────────────────────────────────────

    def _qualify(self, name: str) -> str:
        if "." in name or not self.package:
            return name
        return f"{self.package}.{name}"

    def _parse_struct(self) -> Struct:
        self.expect(TOK_KEYWORD, "struct")
        name_tok = self.expect(TOK_IDENT)
        if "." in name_tok.value:
            raise SyntaxError(
                f"Line {name_tok.line}: struct name {name_tok.value!r} "
                f"must not be qualified")

        self.expect(TOK_SYMBOL, "{")
        members: List[Member] = []
        while self.peek().value != "}":
            if self.peek().kind == TOK_EOF:
                raise SyntaxError(
                    f"Line {self.peek().line}: unterminated struct "
                    f"{name_tok.value!r}")
            members.append(self._parse_member())
        self.expect(TOK_SYMBOL, "}")
        if self.peek().value == ";":
            self.advance()  # consume optional trailing semicolon

        if not members:
            raise SyntaxError(
                f"Line {name_tok.line}: struct {name_tok.value!r} has no members")

        struct = Struct(name=self._qualify(name_tok.value), members=members)
        struct.base_hash = struct_base_hash(struct)
        return struct

    def _parse_member(self) -> Member:
        type_tok = self.expect(TOK_IDENT)
        type_name = type_tok.value
        if not is_primitive(type_name):
            type_name = self._qualify(type_name)

        name_tok = self.expect(TOK_IDENT)
        if "." in name_tok.value:
            raise SyntaxError(
                f"Line {name_tok.line}: invalid member name {name_tok.value!r}")

        dims: List[Dimension] = []
        while self.peek().kind == TOK_DIM:
            dims.append(self._parse_dimension(self.advance()))
        self.expect(TOK_SYMBOL, ";")

        return Member(name=name_tok.value, type_name=type_name,
                      dimensions=tuple(dims))

    def _parse_dimension(self, tok: Token) -> Dimension:
        text = tok.value
        if text.isdigit():
            return Dimension(DIM_CONST, text)
        if text and (text[0].isalpha() or text[0] == "_") and \
                all(c.isalnum() or c == "_" for c in text):
            return Dimension(DIM_VAR, text)
        raise SyntaxError(f"Line {tok.line}: invalid dimension [{text}]")


def parse_schema(*texts: str) -> Schema:
    """Parse one or more .lcm sources into a single validated Schema."""
    schema = Schema()
    for text in texts:
        schema.structs.extend(Parser(tokenize(text)).parse().structs)
    validate_schema(schema)
    return schema
