"""
Backend-neutral procedure descriptions for each struct.

Emitters render these into a target language.  They describe what every
backend has to do and in which order: which members are folded into a
constant size, which need a per-element loop nest, and the member and
dimension order shared by the encoder and the decoder.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from .hashing import fingerprint
from .schema import Dimension, Member, Schema, Struct
from .types import encoded_size

ENCODE = "encode"
DECODE = "decode"


# ── Hash ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class HashProcedure:
    struct: Struct
    base_hash: int
    # Compound member types in declaration order, duplicates kept.
    dependencies: Tuple[str, ...]


# ── Size ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ConstantSize:
    """Fixed-width primitive with only constant dimensions."""
    member: Member
    width: int
    extents: Tuple[int, ...]

    @property
    def nbytes(self) -> int:
        total = self.width
        for extent in self.extents:
            total *= extent
        return total


@dataclass(frozen=True)
class ElementSize:
    """Member whose size is summed element by element at run time."""
    member: Member
    loops: Tuple[Dimension, ...]
    width: int   # fixed primitive width, or -1 (string or compound)


SizeTerm = Union[ConstantSize, ElementSize]


@dataclass(frozen=True)
class SizeProcedure:
    struct: Struct
    terms: Tuple[SizeTerm, ...]

    @property
    def constant_bytes(self) -> int:
        return sum(t.nbytes for t in self.terms if isinstance(t, ConstantSize))

    @property
    def element_terms(self) -> Tuple[ElementSize, ...]:
        return tuple(t for t in self.terms if isinstance(t, ElementSize))

    @property
    def is_constant(self) -> bool:
        return not self.element_terms


# ── Encode / decode ──────────────────────────────────────────────────

@dataclass(frozen=True)
class FieldStep:
    member: Member
    loops: Tuple[Dimension, ...]   # outer to inner
    width: int                     # fixed primitive width, or -1

    @property
    def is_primitive(self) -> bool:
        return self.member.is_primitive

    @property
    def length_members(self) -> Tuple[str, ...]:
        """Names of the members supplying dynamic extents, outer first."""
        names: List[str] = []
        for dim in self.loops:
            if not dim.is_constant and dim.size not in names:
                names.append(dim.size)
        return tuple(names)

    @property
    def bounded_length(self) -> Optional[str]:
        """Dynamic innermost extent of a primitive array.

        Every element of such an array takes at least one byte, so its
        decoded length can be checked against the bytes left in the buffer
        before the loop starts.
        """
        if not self.is_primitive or not self.loops:
            return None
        inner = self.loops[-1]
        return None if inner.is_constant else inner.size


@dataclass(frozen=True)
class CodecProcedure:
    struct: Struct
    direction: str   # ENCODE or DECODE
    steps: Tuple[FieldStep, ...]


@dataclass(frozen=True)
class TypeProcedures:
    struct: Struct
    fingerprint: int
    hash: HashProcedure
    size: SizeProcedure
    encode: CodecProcedure
    decode: CodecProcedure


# ── Builders ─────────────────────────────────────────────────────────

def hash_procedure(struct: Struct) -> HashProcedure:
    deps = tuple(m.type_name for m in struct.members if not m.is_primitive)
    return HashProcedure(struct=struct, base_hash=struct.base_hash,
                         dependencies=deps)


def size_procedure(struct: Struct) -> SizeProcedure:
    terms: List[SizeTerm] = []
    for m in struct.members:
        width = encoded_size(m.type_name)
        if width > -1 and all(d.is_constant for d in m.dimensions):
            terms.append(ConstantSize(
                member=m, width=width,
                extents=tuple(d.extent for d in m.dimensions)))
        else:
            terms.append(ElementSize(member=m, loops=m.dimensions,
                                     width=width))
    return SizeProcedure(struct=struct, terms=tuple(terms))


def _field_steps(struct: Struct) -> Tuple[FieldStep, ...]:
    return tuple(FieldStep(member=m, loops=m.dimensions,
                           width=encoded_size(m.type_name))
                 for m in struct.members)


def codec_procedures(struct: Struct) -> Tuple[CodecProcedure, CodecProcedure]:
    """Encoder and decoder descriptions sharing one step sequence."""
    steps = _field_steps(struct)
    return (CodecProcedure(struct=struct, direction=ENCODE, steps=steps),
            CodecProcedure(struct=struct, direction=DECODE, steps=steps))


def type_procedures(schema: Schema, struct: Struct) -> TypeProcedures:
    encode, decode = codec_procedures(struct)
    return TypeProcedures(
        struct=struct,
        fingerprint=fingerprint(schema, struct),
        hash=hash_procedure(struct),
        size=size_procedure(struct),
        encode=encode,
        decode=decode,
    )


def build_procedures(schema: Schema) -> List[TypeProcedures]:
    """One ``TypeProcedures`` per struct, in schema order."""
    return [type_procedures(schema, s) for s in schema]
