"""
Python backend: renders procedure descriptions into a Python module.

The module holds one class per struct.  Every class carries the lazily
cached fingerprint, the two-layer size/encode/decode procedures and
``encode()``/``decode()`` convenience wrappers.  Failures inside the
buffer-level procedures are reported as position -1.
"""

import keyword
import re
from typing import List, Optional

from .procedures import (
    ConstantSize,
    FieldStep,
    TypeProcedures,
    build_procedures,
)
from .schema import Dimension, Member, Schema, ValidationError
from .hashing import ancestry_entry

INDENT = "    "

# Primitive → module-level struct.Struct packer name.
PACKERS = {
    "int8_t":   "_INT8",
    "int16_t":  "_INT16",
    "uint16_t": "_UINT16",
    "int32_t":  "_INT32",
    "uint32_t": "_UINT32",
    "int64_t":  "_INT64",
    "byte":     "_BYTE",
    "float":    "_FLOAT",
    "double":   "_DOUBLE",
    "boolean":  "_BOOLEAN",
}

DEFAULTS = {
    "int8_t":   "0",
    "int16_t":  "0",
    "uint16_t": "0",
    "int32_t":  "0",
    "uint32_t": "0",
    "int64_t":  "0",
    "byte":     "0",
    "float":    "0.0",
    "double":   "0.0",
    "boolean":  "False",
    "string":   '""',
}

# Attributes of every generated class.
RESERVED = {
    "encode", "encode_into", "encoded_size", "decode", "decode_from",
    "_hash", "_get_hash", "_compute_hash",
    "_encode_nohash", "_decode_nohash", "_encoded_size_nohash",
}

# Module globals, builtins and method locals the generated code refers to.
# A class bound to one of these names would shadow it or be shadowed.
SHADOWED = {
    "struct", "_FINGERPRINT", "_MASK64", "__all__",
    "_encode_value", "_decode_value", "_string_size",
    "_encode_string", "_decode_string",
    "buf", "pos", "maxlen", "msg", "msgs", "elems", "ix", "fingerprint", "size",
    "data", "cls", "self", "other", "fields", "s", "parents", "tmphash",
    "_v", "_",
    "object", "range", "len", "min", "all", "bytes", "getattr", "isinstance",
    "type", "staticmethod", "classmethod", "ValueError", "UnicodeDecodeError",
    "NotImplemented",
} | set(PACKERS.values())

# Loop counters d0, d1, ... and decode accumulators _t0, _t1, ...
LOOP_NAME = re.compile(r"(d|_t)\d+$")

RUNTIME = '''\
import struct

_INT8 = struct.Struct(">b")
_INT16 = struct.Struct(">h")
_UINT16 = struct.Struct(">H")
_INT32 = struct.Struct(">i")
_UINT32 = struct.Struct(">I")
_INT64 = struct.Struct(">q")
_BYTE = struct.Struct(">B")
_FLOAT = struct.Struct(">f")
_DOUBLE = struct.Struct(">d")
_BOOLEAN = struct.Struct(">?")
_FINGERPRINT = struct.Struct(">Q")
_MASK64 = 0xffffffffffffffff


def _encode_value(buf, pos, maxlen, packer, value):
    end = pos + packer.size
    if end > maxlen:
        return -1
    packer.pack_into(buf, pos, value)
    return end


def _decode_value(buf, pos, maxlen, packer):
    end = pos + packer.size
    if end > maxlen:
        return -1, None
    return end, packer.unpack_from(buf, pos)[0]


def _string_size(value):
    return 4 + len(value.encode("utf-8")) + 1


def _encode_string(buf, pos, maxlen, value):
    data = value.encode("utf-8") + b"\\0"
    pos = _encode_value(buf, pos, maxlen, _INT32, len(data))
    if pos < 0 or pos + len(data) > maxlen:
        return -1
    buf[pos:pos + len(data)] = data
    return pos + len(data)


def _decode_string(buf, pos, maxlen):
    pos, length = _decode_value(buf, pos, maxlen, _INT32)
    if pos < 0 or length < 1 or pos + length > maxlen or buf[pos + length - 1] != 0:
        return -1, None
    try:
        value = bytes(buf[pos:pos + length - 1]).decode("utf-8")
    except UnicodeDecodeError:
        return -1, None
    return pos + length, value
'''


def class_name(type_name: str) -> str:
    """Python class name for a qualified LCM type name."""
    return type_name.replace(".", "_")


class _Writer:
    """Collects indented source lines."""

    def __init__(self):
        self.lines: List[str] = []

    def __call__(self, depth: int = 0, text: str = ""):
        self.lines.append(INDENT * depth + text if text else "")

    def text(self) -> str:
        return "\n".join(self.lines) + "\n"


# ── Expressions ──────────────────────────────────────────────────────

def _extent(dim: Dimension, owner: str) -> str:
    if dim.is_constant:
        return str(dim.extent)
    return f"{owner}.{dim.size}"


def _element(member: Member, owner: str, depth: int) -> str:
    return f"{owner}.{member.name}" + "".join(f"[d{k}]" for k in range(depth))


def _default(member: Member, dims) -> str:
    if not dims:
        if member.is_primitive:
            return DEFAULTS[member.type_name]
        return f"{class_name(member.type_name)}()"
    if not dims[0].is_constant:
        return "[]"
    return f"[{_default(member, dims[1:])} for _ in range({dims[0].extent})]"


def _encode_call(member: Member, value: str) -> str:
    if member.type_name == "string":
        return f"_encode_string(buf, pos, maxlen, {value})"
    if member.is_primitive:
        return f"_encode_value(buf, pos, maxlen, {PACKERS[member.type_name]}, {value})"
    return f"{class_name(member.type_name)}._encode_nohash(buf, pos, maxlen, [{value}], 1)"


def _decode_call(member: Member) -> str:
    if member.type_name == "string":
        return "_decode_string(buf, pos, maxlen)"
    if member.is_primitive:
        return f"_decode_value(buf, pos, maxlen, {PACKERS[member.type_name]})"
    return f"{class_name(member.type_name)}._decode_nohash(buf, pos, maxlen, 1)"


def _element_size(step, value: str) -> str:
    if step.width > -1:
        return str(step.width)
    if step.member.type_name == "string":
        return f"_string_size({value})"
    return f"{value}._encoded_size_nohash()"


def _open_loops(out: _Writer, member: Member, loops, owner: str, depth: int,
                fail: str) -> int:
    """Open one loop per dimension, each after a check that the list is long enough."""
    for k, dim in enumerate(loops):
        extent = _extent(dim, owner)
        out(depth + k, f"if len({_element(member, owner, k)}) < {extent}:")
        out(depth + k + 1, fail)
        out(depth + k, f"for d{k} in range({extent}):")
    return depth + len(loops)


# ── Procedures ───────────────────────────────────────────────────────

def _emit_hash(out: _Writer, procs: TypeProcedures):
    h = procs.hash
    length, name = ancestry_entry(h.struct.name)
    out(1, "@staticmethod")
    out(1, "def _compute_hash(parents):")
    out(2, f"parents = parents + (({length}, {name!r}),)")
    out(2, f"tmphash = 0x{h.base_hash:016x}")
    for dep in h.dependencies:
        out(2, f"if {ancestry_entry(dep)!r} not in parents:")
        out(3, f"tmphash = (tmphash + {class_name(dep)}._compute_hash(parents)) & _MASK64")
    out(2, "return ((tmphash << 1) & _MASK64) | (tmphash >> 63)")
    out()
    out(1, "@classmethod")
    out(1, "def _get_hash(cls):")
    out(2, "if cls._hash is None:")
    out(3, "cls._hash = cls._compute_hash(())")
    out(2, "return cls._hash")
    out()


def _emit_size(out: _Writer, procs: TypeProcedures):
    size = procs.size
    out(1, "def encoded_size(self):")
    out(2, "return 8 + self._encoded_size_nohash()")
    out()
    out(1, "def _encoded_size_nohash(self):")
    folded = ", ".join(t.member.name for t in size.terms
                       if isinstance(t, ConstantSize))
    if folded:
        out(2, f"size = {size.constant_bytes}  # {folded}")
    else:
        out(2, "size = 0")
    for term in size.element_terms:
        m = term.member
        fail = (f'raise ValueError("{procs.struct.name}.{m.name}: '
                f'fewer elements than its dimensions")')
        inner = _open_loops(out, m, term.loops, "self", 2, fail)
        out(inner, f"size += {_element_size(term, _element(m, 'self', len(term.loops)))}")
    out(2, "return size")
    out()


def _emit_encode_step(out: _Writer, step: FieldStep, depth: int):
    m = step.member
    for length in step.length_members:
        out(depth, f"if msg.{length} < 0:")
        out(depth + 1, "return -1")
    inner = _open_loops(out, m, step.loops, "msg", depth, "return -1")
    out(inner, f"pos = {_encode_call(m, _element(m, 'msg', len(step.loops)))}")
    out(inner, "if pos < 0:")
    out(inner + 1, "return -1")


def _emit_decode_step(out: _Writer, step: FieldStep, depth: int):
    m = step.member
    value = "_v" if m.is_primitive else "_v[0]"
    for length in step.length_members:
        out(depth, f"if msg.{length} < 0:")
        out(depth + 1, "return -1, None")
    if step.bounded_length:
        out(depth, f"if msg.{step.bounded_length} > maxlen - pos:")
        out(depth + 1, "return -1, None")

    if not step.loops:
        out(depth, f"pos, _v = {_decode_call(m)}")
        out(depth, "if pos < 0:")
        out(depth + 1, "return -1, None")
        out(depth, f"msg.{m.name} = {value}")
        return

    n = len(step.loops)
    out(depth, "_t0 = []")
    for k, dim in enumerate(step.loops):
        out(depth + k, f"for d{k} in range({_extent(dim, 'msg')}):")
        if k < n - 1:
            out(depth + k + 1, f"_t{k + 1} = []")
    inner = depth + n
    out(inner, f"pos, _v = {_decode_call(m)}")
    out(inner, "if pos < 0:")
    out(inner + 1, "return -1, None")
    out(inner, f"_t{n - 1}.append({value})")
    for k in range(n - 2, -1, -1):
        out(depth + k + 1, f"_t{k}.append(_t{k + 1})")
    out(depth, f"msg.{m.name} = _t0")


def _emit_codec(out: _Writer, procs: TypeProcedures):
    cls = class_name(procs.struct.name)

    out(1, "def encode(self):")
    out(2, "buf = bytearray(self.encoded_size())")
    out(2, "pos = self.encode_into(buf, 0, len(buf))")
    out(2, "if pos < 0:")
    out(3, f'raise ValueError("{procs.struct.name}: encode failed")')
    out(2, "return bytes(buf[:pos])")
    out()
    out(1, "def encode_into(self, buf, pos, maxlen):")
    out(2, "maxlen = min(maxlen, len(buf))")
    out(2, "if pos < 0:")
    out(3, "return -1")
    out(2, "pos = _encode_value(buf, pos, maxlen, _FINGERPRINT, self._get_hash())")
    out(2, "if pos < 0:")
    out(3, "return -1")
    out(2, f"return {cls}._encode_nohash(buf, pos, maxlen, [self], 1)")
    out()
    out(1, "@staticmethod")
    out(1, "def _encode_nohash(buf, pos, maxlen, msgs, elems):")
    out(2, "for ix in range(elems):")
    out(3, "msg = msgs[ix]")
    for step in procs.encode.steps:
        _emit_encode_step(out, step, 3)
    out(2, "return pos")
    out()

    out(1, "@classmethod")
    out(1, "def decode(cls, data):")
    out(2, "pos, msg = cls.decode_from(data, 0, len(data))")
    out(2, "if pos < 0:")
    out(3, f'raise ValueError("{procs.struct.name}: decode failed")')
    out(2, "return msg")
    out()
    out(1, "@classmethod")
    out(1, "def decode_from(cls, buf, pos, maxlen):")
    out(2, "maxlen = min(maxlen, len(buf))")
    out(2, "if pos < 0:")
    out(3, "return -1, None")
    out(2, "pos, fingerprint = _decode_value(buf, pos, maxlen, _FINGERPRINT)")
    out(2, "if pos < 0 or fingerprint != cls._get_hash():")
    out(3, "return -1, None")
    out(2, "pos, msgs = cls._decode_nohash(buf, pos, maxlen, 1)")
    out(2, "if pos < 0:")
    out(3, "return -1, None")
    out(2, "return pos, msgs[0]")
    out()
    out(1, "@staticmethod")
    out(1, "def _decode_nohash(buf, pos, maxlen, elems):")
    out(2, "msgs = []")
    out(2, "for _ in range(elems):")
    out(3, f"msg = {cls}()")
    for step in procs.decode.steps:
        _emit_decode_step(out, step, 3)
    out(3, "msgs.append(msg)")
    out(2, "return pos, msgs")


def _emit_class(out: _Writer, procs: TypeProcedures):
    s = procs.struct
    cls = class_name(s.name)
    out(0, f"class {cls}(object):")
    out(1, f'"""LCM type {s.name}, fingerprint 0x{procs.fingerprint:016x}."""')
    out()
    slots = ", ".join(f'"{m.name}"' for m in s.members)
    out(1, f"__slots__ = [{slots}]")
    out()
    out(1, "_hash = None")
    out()
    out(1, "def __init__(self):")
    for m in s.members:
        out(2, f"self.{m.name} = {_default(m, m.dimensions)}")
    out()
    out(1, "def __eq__(self, other):")
    out(2, f"if not isinstance(other, {cls}):")
    out(3, "return NotImplemented")
    out(2, "return all(getattr(self, s) == getattr(other, s) for s in self.__slots__)")
    out()
    out(1, "def __repr__(self):")
    out(2, 'fields = ", ".join(f"{s}={getattr(self, s)!r}" for s in self.__slots__)')
    out(2, 'return f"{type(self).__name__}({fields})"')
    out()
    _emit_hash(out, procs)
    _emit_size(out, procs)
    _emit_codec(out, procs)


def _check_names(schema: Schema):
    classes = {}
    for s in schema:
        cls = class_name(s.name)
        if keyword.iskeyword(cls):
            raise ValidationError(f"{s.name}: class name {cls!r} is a Python keyword")
        if cls in SHADOWED or LOOP_NAME.match(cls):
            raise ValidationError(
                f"{s.name}: class name {cls!r} clashes with a name used by generated code")
        if cls in classes:
            raise ValidationError(
                f"{s.name}: class name {cls!r} already used by {classes[cls]}")
        classes[cls] = s.name

        for m in s.members:
            if keyword.iskeyword(m.name):
                raise ValidationError(
                    f"{s.name}.{m.name}: member name is a Python keyword")
            if m.name in RESERVED:
                raise ValidationError(
                    f"{s.name}.{m.name}: member name clashes with a generated method")


def emit_python_module(schema: Schema, source: Optional[str] = None) -> str:
    """Render every struct of ``schema`` into one Python module."""
    _check_names(schema)
    out = _Writer()
    out(0, '"""')
    out(0, "LCM type definitions.")
    out()
    out(0, "THIS IS AN AUTOMATICALLY GENERATED FILE.  DO NOT MODIFY BY HAND!!")
    out()
    out(0, f"Generated by lcmgen{f' from {source}' if source else ''}.")
    out(0, '"""')
    out()
    out.lines.extend(RUNTIME.rstrip("\n").split("\n"))

    all_procs = build_procedures(schema)
    for procs in all_procs:
        out()
        out()
        _emit_class(out, procs)

    out()
    out()
    names = ", ".join(f'"{class_name(p.struct.name)}"' for p in all_procs)
    out(0, f"__all__ = [{names}]")
    return out.text()
