"""
MATLAB backend: renders procedure descriptions as one function per .m file.

The generated functions work together with the lcm-matlab runtime, which
provides the primitive codecs (``int32_encode_nohash``, ...), the 64-bit
helpers ``hex2int64`` and ``add_overflow``, and represents a 64-bit hash
as a pair of uint32 words.  Positions are 1-based; a position below 1
reports a failure.
"""

from typing import Dict, List

from .procedures import (
    FieldStep,
    TypeProcedures,
    build_procedures,
)
from .schema import Dimension, Member, Schema
from .hashing import ancestry_entry

INDENT = "    "

# LCM primitive → MATLAB storage type / runtime prefix.
MATLAB_TYPES = {
    "int8_t":   "int8",
    "int16_t":  "int16",
    "uint16_t": "uint16",
    "int32_t":  "int32",
    "uint32_t": "uint32",
    "int64_t":  "int64",
    "byte":     "uint8",
    "float":    "single",
    "double":   "double",
    "boolean":  "logical",
    "string":   "string",
}

HEADER = (
    "% THIS IS AN AUTOMATICALLY GENERATED FILE.  DO NOT MODIFY\n"
    "% BY HAND!!\n"
    "%\n"
    "% Generated by lcmgen\n"
    "%\n"
    "%#eml\n"
    "%#codegen\n"
)


def matlab_name(type_name: str) -> str:
    if type_name in MATLAB_TYPES:
        return MATLAB_TYPES[type_name]
    return type_name.replace(".", "_")


class _Function:
    """Lines of one generated .m function."""

    def __init__(self, signature: str):
        self.lines: List[str] = [f"function {signature}"]

    def __call__(self, depth: int, text: str):
        self.lines.append(INDENT * depth + text)

    def text(self) -> str:
        return HEADER + "\n".join(self.lines + ["%endfunction", ""]) + "\n"


# ── Expressions ──────────────────────────────────────────────────────

def _extent(dim: Dimension, owner: str) -> str:
    if dim.is_constant:
        return str(dim.extent)
    return f"{owner}.{dim.size}"


def _element(member: Member, owner: str, depth: int) -> str:
    if depth == 0:
        return f"{owner}.{member.name}"
    index = ", ".join(f"dx{k}" for k in range(depth))
    if member.type_name == "string":
        return f"{owner}.{member.name}{{{index}}}"
    return f"{owner}.{member.name}({index})"


def _template(member: Member) -> str:
    """A default scalar value of the member's element type."""
    if member.type_name == "string":
        return "''"
    if member.is_primitive:
        return f"{matlab_name(member.type_name)}(0)"
    return f"{matlab_name(member.type_name)}_new()"


def _default(member: Member) -> str:
    if not member.dimensions:
        return _template(member)
    extents = [d.size if d.is_constant else "0" for d in member.dimensions]
    if len(extents) == 1:
        extents.append("1")
    shape = ", ".join(extents)
    if member.type_name == "string":
        return f"{{repmat( {{''}}, [{shape}] )}}"
    return f"repmat( {_template(member)}, [{shape}] )"


def _open_loops(fn: _Function, loops, owner: str, depth: int) -> int:
    for k, dim in enumerate(loops):
        fn(depth + k, f"for dx{k} = 1:{_extent(dim, owner)}")
    return depth + len(loops)


def _close_loops(fn: _Function, loops, depth: int):
    for k in range(len(loops) - 1, -1, -1):
        fn(depth + k, "end")


def _fail_if(fn: _Function, depth: int, condition: str, fail: bool = False):
    fn(depth, f"if {condition}")
    if fail:
        fn(depth + 1, "pos = -1;")
    fn(depth + 1, "return;")
    fn(depth, "end")


# ── Files ────────────────────────────────────────────────────────────

def _emit_new(sn: str, procs: TypeProcedures) -> str:
    fn = _Function(f"S = {sn}_new()")
    fn(1, "S = struct(...")
    members = procs.struct.members
    for i, m in enumerate(members):
        tail = " );" if i == len(members) - 1 else ",..."
        fn(2, f"'{m.name}', {_default(m)}{tail}")
    return fn.text()


def _emit_encode(sn: str) -> str:
    fn = _Function(f"[buf, pos] = {sn}_encode(buf, pos, maxlen, S)")
    fn(1, f"hash = {sn}_hash();")
    fn(1, "[buf, pos] = int64_encode_nohash(buf, pos, maxlen, hash, 1);")
    _fail_if(fn, 1, "pos < 1")
    fn(1, f"[buf, pos] = {sn}_encode_nohash(buf, pos, maxlen, S, 1);")
    return fn.text()


def _emit_encoded_size(sn: str) -> str:
    fn = _Function(f"bytes = {sn}_encodedSize(S)")
    fn(1, f"bytes = uint32(8) + {sn}_encodedSize_nohash(S);")
    return fn.text()


def _emit_decode(sn: str) -> str:
    fn = _Function(f"[pos, S] = {sn}_decode(buf, pos, maxlen, S)")
    fn(1, "hash = uint32([0, 0]);")
    fn(1, f"hash(1:2) = {sn}_hash();")
    fn(1, "readHash = uint32([0, 0]);")
    fn(1, "[pos, readHash] = int64_decode_nohash(buf, pos, maxlen, readHash, 1);")
    fn(1, "if pos < 1 || readHash(1) ~= hash(1) || readHash(2) ~= hash(2)")
    fn(2, "pos = -1;")
    fn(1, "else")
    fn(2, f"[pos, S] = {sn}_decode_nohash(buf, pos, maxlen, S, 1);")
    fn(1, "end")
    return fn.text()


def _emit_get_hash(sn: str) -> str:
    fn = _Function(f"hash = {sn}_hash()")
    fn(1, f"persistent {sn}_hash_value;")
    fn(1, f"if isempty({sn}_hash_value)")
    fn(2, f"{sn}_hash_value = {sn}_computeHash([]);")
    fn(1, "end")
    fn(1, f"hash = {sn}_hash_value;")
    return fn.text()


def _emit_compute_hash(sn: str, procs: TypeProcedures) -> str:
    h = procs.hash
    length, name = ancestry_entry(h.struct.name)
    fn = _Function(f"hash = {sn}_computeHash(parents)")
    fn(1, f"parents = [parents, {length}, '{name}'];")
    fn(1, "parents_len = length(parents);")
    fn(1, f"hash = hex2int64('{h.base_hash:016x}');")
    for dep in h.dependencies:
        dep_len, dep_name = ancestry_entry(dep)
        fn(1, "visit = true;")
        fn(1, "ix = 1;")
        fn(1, "while ix <= parents_len")
        fn(2, "p_len = double(parents(ix));")
        fn(2, f"if {dep_len} == p_len && strcmp(parents(ix + 1:ix + p_len), '{dep_name}')")
        fn(3, "visit = false;")
        fn(3, "break")
        fn(2, "end")
        fn(2, "ix = ix + p_len + 1;")
        fn(1, "end")
        fn(1, "if visit")
        fn(2, f"hash = add_overflow(hash, {matlab_name(dep)}_computeHash(parents));")
        fn(1, "end")
    fn(1, "%wrap around shift")
    fn(1, "overflowbit = bitshift(hash(2), -31);")
    fn(1, "bigendbit = bitshift(hash(1), -31);")
    fn(1, "hash = bitshift(hash, 1);")
    fn(1, "hash(1) = bitor(hash(1), overflowbit);")
    fn(1, "hash(2) = bitor(hash(2), bigendbit);")
    return fn.text()


def _emit_length_checks(fn: _Function, step: FieldStep, depth: int):
    for length in step.length_members:
        _fail_if(fn, depth, f"S(ix).{length} < 0", fail=True)


def _emit_encode_nohash(sn: str, procs: TypeProcedures) -> str:
    fn = _Function(f"[buf, pos] = {sn}_encode_nohash(buf, pos, maxlen, S, elems)")
    fn(1, "for ix = 1:elems")
    for step in procs.encode.steps:
        m = step.member
        _emit_length_checks(fn, step, 2)
        inner = _open_loops(fn, step.loops, "S(ix)", 2)
        value = _element(m, "S(ix)", len(step.loops))
        fn(inner, f"[buf, pos] = {matlab_name(m.type_name)}_encode_nohash(buf, pos, maxlen, {value}, 1);")
        _fail_if(fn, inner, "pos < 1")
        _close_loops(fn, step.loops, 2)
    fn(1, "end")
    return fn.text()


def _emit_decode_nohash(sn: str, procs: TypeProcedures) -> str:
    fn = _Function(f"[pos, S] = {sn}_decode_nohash(buf, pos, maxlen, S, elems)")
    fn(1, "for ix = 1:elems")
    for step in procs.decode.steps:
        m = step.member
        _emit_length_checks(fn, step, 2)
        inner = _open_loops(fn, step.loops, "S(ix)", 2)
        target = _element(m, "S(ix)", len(step.loops))
        fn(inner, f"[pos, t] = {matlab_name(m.type_name)}_decode_nohash(buf, pos, maxlen, {_template(m)}, 1);")
        _fail_if(fn, inner, "pos < 1")
        fn(inner, f"{target} = {'t' if m.type_name == 'string' else 't(1)'};")
        _close_loops(fn, step.loops, 2)
    fn(1, "end")
    return fn.text()


def _emit_encoded_size_nohash(sn: str, procs: TypeProcedures) -> str:
    size = procs.size
    fn = _Function(f"s = {sn}_encodedSize_nohash(S)")
    fn(1, f"s = uint32({size.constant_bytes});")
    for term in size.element_terms:
        m = term.member
        inner = _open_loops(fn, term.loops, "S", 1)
        if term.width > -1:
            fn(inner, f"s = s + {term.width};")
        else:
            value = _element(m, "S", len(term.loops))
            fn(inner, f"s = s + {matlab_name(m.type_name)}_encodedSize_nohash({value});")
        _close_loops(fn, term.loops, 1)
    return fn.text()


def emit_matlab_files(schema: Schema) -> Dict[str, str]:
    """Render every struct of ``schema`` as a set of .m files.

    Returns:
        Mapping of file name to file contents, nine files per struct.
    """
    files: Dict[str, str] = {}
    for procs in build_procedures(schema):
        sn = matlab_name(procs.struct.name)
        files[f"{sn}_new.m"] = _emit_new(sn, procs)
        files[f"{sn}_encode.m"] = _emit_encode(sn)
        files[f"{sn}_decode.m"] = _emit_decode(sn)
        files[f"{sn}_encodedSize.m"] = _emit_encoded_size(sn)
        files[f"{sn}_hash.m"] = _emit_get_hash(sn)
        files[f"{sn}_encode_nohash.m"] = _emit_encode_nohash(sn, procs)
        files[f"{sn}_decode_nohash.m"] = _emit_decode_nohash(sn, procs)
        files[f"{sn}_encodedSize_nohash.m"] = _emit_encoded_size_nohash(sn, procs)
        files[f"{sn}_computeHash.m"] = _emit_compute_hash(sn, procs)
    return files
