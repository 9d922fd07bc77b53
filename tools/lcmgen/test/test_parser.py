"""Tests for the .lcm lexer, parser and schema validation."""

import pytest

from tools.lcmgen.lexer import tokenize, TOK_DIM, TOK_IDENT, TOK_KEYWORD, TOK_EOF
from tools.lcmgen.parser import Parser, parse_schema
from tools.lcmgen.schema import (
    DIM_CONST,
    DIM_VAR,
    Member,
    Struct,
    ValidationError,
    struct_base_hash,
)


# -- Lexer ------------------------------------------------------------------

class TestLexer:
    def test_keywords_and_idents(self):
        toks = tokenize("package geometry; struct point_t { }")
        assert toks[0].kind == TOK_KEYWORD and toks[0].value == "package"
        assert toks[1].kind == TOK_IDENT and toks[1].value == "geometry"
        assert toks[3].kind == TOK_KEYWORD and toks[3].value == "struct"
        assert toks[-1].kind == TOK_EOF

    def test_dotted_identifier(self):
        toks = tokenize("other.pkg.type_t member;")
        assert toks[0].value == "other.pkg.type_t"

    def test_dimension_token(self):
        toks = tokenize("int32_t values[ n ][3];")
        dims = [t for t in toks if t.kind == TOK_DIM]
        assert [d.value for d in dims] == ["n", "3"]

    def test_comments_skipped_and_lines_counted(self):
        toks = tokenize("// one\n/* two\nthree */\nstruct")
        assert toks[0].value == "struct"
        assert toks[0].line == 4

    def test_unterminated_block_comment(self):
        with pytest.raises(SyntaxError, match="unterminated block comment"):
            tokenize("/* never closed")

    def test_unterminated_dimension(self):
        with pytest.raises(SyntaxError, match="unterminated dimension"):
            tokenize("int32_t v[3\n;")

    def test_unexpected_character(self):
        with pytest.raises(SyntaxError, match="Line 2"):
            tokenize("struct a\n{ int32_t x = 1; }")


# -- Parser -----------------------------------------------------------------

class TestParser:
    def test_struct_names_are_qualified(self, geometry):
        names = [s.name for s in geometry]
        assert names == ["geometry.point_t", "geometry.samples_t",
                         "geometry.polygon_t", "geometry.grid_t"]

    def test_short_name_and_package(self, geometry):
        s = geometry.lookup("geometry.polygon_t")
        assert s.short_name == "polygon_t"
        assert s.package == "geometry"

    def test_member_order_kept(self, geometry):
        s = geometry.lookup("geometry.polygon_t")
        assert [m.name for m in s.members] == [
            "name", "npoints", "points", "transform", "closed", "flags"]

    def test_compound_type_resolved_to_package(self, geometry):
        points = geometry.lookup("geometry.polygon_t").member("points")
        assert points.type_name == "geometry.point_t"
        assert not points.is_primitive

    def test_dimensions(self, geometry):
        s = geometry.lookup("geometry.grid_t")
        cells = s.member("cells")
        assert [(d.mode, d.size) for d in cells.dimensions] == [
            (DIM_VAR, "rows"), (DIM_VAR, "cols")]
        mask = s.member("mask")
        assert mask.dimensions[0].mode == DIM_CONST
        assert mask.dimensions[0].extent == 2

    def test_base_hash_filled_in(self, geometry):
        for s in geometry:
            assert s.base_hash == struct_base_hash(s)

    def test_no_package(self):
        schema = parse_schema("struct a_t { int8_t v; }")
        assert schema.lookup("a_t").package == ""

    def test_qualified_reference_kept(self):
        schema = parse_schema(
            "package a; struct x_t { int8_t v; }",
            "package b; struct y_t { a.x_t inner; }")
        assert schema.lookup("b.y_t").member("inner").type_name == "a.x_t"

    def test_forward_reference(self):
        schema = parse_schema("struct a_t { b_t b; } struct b_t { int8_t v; }")
        assert "b_t" in schema

    def test_trailing_semicolon_accepted(self):
        schema = parse_schema("struct a_t { int8_t v; };")
        assert len(schema) == 1

    def test_empty_struct_rejected(self):
        with pytest.raises(SyntaxError, match="has no members"):
            parse_schema("struct a_t { }")

    def test_package_after_struct_rejected(self):
        with pytest.raises(SyntaxError, match="'package' must come once"):
            parse_schema("struct a_t { int8_t v; } package late;")

    def test_invalid_dimension(self):
        with pytest.raises(SyntaxError, match="invalid dimension"):
            parse_schema("struct a_t { int8_t v[-1]; }")

    def test_unterminated_struct(self):
        with pytest.raises(SyntaxError, match="unterminated struct"):
            Parser(tokenize("struct a_t { int8_t v;")).parse()

    def test_missing_semicolon(self):
        with pytest.raises(SyntaxError, match="expected ';'"):
            parse_schema("struct a_t { int8_t v }")


# -- Validation -------------------------------------------------------------

class TestValidation:
    def test_unknown_type(self):
        with pytest.raises(ValidationError, match="unknown type"):
            parse_schema("struct a_t { missing_t m; }")

    def test_duplicate_struct(self):
        with pytest.raises(ValidationError, match="defined twice"):
            parse_schema("struct a_t { int8_t v; }", "struct a_t { int8_t w; }")

    def test_duplicate_member(self):
        with pytest.raises(ValidationError, match="duplicate member"):
            parse_schema("struct a_t { int8_t v; int16_t v; }")

    def test_length_must_precede_array(self):
        with pytest.raises(ValidationError, match="earlier member"):
            parse_schema("struct a_t { int8_t v[n]; int32_t n; }")

    def test_length_must_be_integer(self):
        with pytest.raises(ValidationError, match="scalar integer"):
            parse_schema("struct a_t { double n; int8_t v[n]; }")

    def test_length_must_be_scalar(self):
        with pytest.raises(ValidationError, match="scalar integer"):
            parse_schema("struct a_t { int32_t n[2]; int8_t v[n]; }")

    def test_unsigned_length_accepted(self):
        schema = parse_schema("struct a_t { uint16_t n; uint32_t m; byte v[n][m]; }")
        v = schema.lookup("a_t").member("v")
        assert [d.size for d in v.dimensions] == ["n", "m"]

    def test_unsigned_primitives_known(self):
        schema = parse_schema("struct u_t { uint16_t a; uint32_t b; }")
        assert all(m.is_primitive for m in schema.lookup("u_t").members)


# -- Base hash seed ---------------------------------------------------------

class TestBaseHash:
    def _struct(self, name, members):
        return Struct(name=name, members=members)

    def test_struct_name_not_hashed(self):
        members = [Member("x", "int32_t")]
        a = self._struct("one.a_t", members)
        b = self._struct("two.b_t", members)
        assert struct_base_hash(a) == struct_base_hash(b)

    def test_compound_type_name_not_hashed(self):
        a = self._struct("s", [Member("p", "geometry.point_t")])
        b = self._struct("s", [Member("p", "geometry.pt_t")])
        assert struct_base_hash(a) == struct_base_hash(b)

    def test_primitive_type_hashed(self):
        a = self._struct("s", [Member("x", "int32_t")])
        b = self._struct("s", [Member("x", "int64_t")])
        assert struct_base_hash(a) != struct_base_hash(b)

    def test_dimension_mode_hashed(self):
        const = parse_schema("struct s { int32_t n; int8_t v[3]; }")
        var = parse_schema("struct s { int32_t n; int8_t v[n]; }")
        assert const.lookup("s").base_hash != var.lookup("s").base_hash

    def test_signedness_hashed(self):
        a = self._struct("s", [Member("x", "int16_t")])
        b = self._struct("s", [Member("x", "uint16_t")])
        assert struct_base_hash(a) != struct_base_hash(b)
