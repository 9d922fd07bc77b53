"""
Schema model for lcmgen: structs, members and dimensions.

The parser builds a ``Schema`` once; everything downstream (hash engine,
procedure builders, emitters) only reads it.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from .types import hash_string_update, hash_update, is_integer, is_primitive


# Dimension modes. The numeric values are folded into the base hash.
DIM_CONST = 0
DIM_VAR = 1

BASE_HASH_SEED = 0x12345678


class ValidationError(Exception):
    """Raised when a schema or an options file fails validation."""
    pass


@dataclass(frozen=True)
class Dimension:
    mode: int   # DIM_CONST or DIM_VAR
    size: str   # literal extent, or the name of the length member

    @property
    def is_constant(self) -> bool:
        return self.mode == DIM_CONST

    @property
    def extent(self) -> int:
        """Constant extent. Only meaningful for DIM_CONST."""
        return int(self.size)


@dataclass(frozen=True)
class Member:
    name: str
    type_name: str   # primitive name or fully qualified struct name
    dimensions: Tuple[Dimension, ...] = ()

    @property
    def is_primitive(self) -> bool:
        return is_primitive(self.type_name)

    @property
    def is_array(self) -> bool:
        return len(self.dimensions) > 0


@dataclass
class Struct:
    name: str   # fully qualified, e.g. "geometry.point_t"
    members: List[Member]
    base_hash: int = 0

    @property
    def short_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    @property
    def package(self) -> str:
        return self.name.rpartition(".")[0]

    def member(self, name: str) -> Optional[Member]:
        for m in self.members:
            if m.name == name:
                return m
        return None


@dataclass
class Schema:
    structs: List[Struct] = field(default_factory=list)
    # Top-level fingerprints, filled lazily by hashing.fingerprint().
    fingerprints: Dict[str, int] = field(default_factory=dict, repr=False,
                                         compare=False)

    def __iter__(self) -> Iterator[Struct]:
        return iter(self.structs)

    def __len__(self) -> int:
        return len(self.structs)

    def lookup(self, name: str) -> Struct:
        for s in self.structs:
            if s.name == name:
                return s
        raise KeyError(name)

    def __contains__(self, name: str) -> bool:
        return any(s.name == name for s in self.structs)


def struct_base_hash(struct: Struct) -> int:
    """Compute the base hash seed of a struct from its member signatures.

    The struct name is not hashed, and neither are the type names of
    compound members: their contents are folded in by the structural hash.
    """
    v = BASE_HASH_SEED
    for m in struct.members:
        v = hash_string_update(v, m.name)
        if m.is_primitive:
            v = hash_string_update(v, m.type_name)
        v = hash_update(v, len(m.dimensions))
        for dim in m.dimensions:
            v = hash_update(v, dim.mode)
            v = hash_string_update(v, dim.size)
    return v


def validate_schema(schema: Schema) -> None:
    """Check a fully parsed schema.

    Raises:
        ValidationError: on duplicate names, unresolved member types, or
            dynamic dimensions that do not name an earlier scalar integer
            member of the same struct.
    """
    seen = set()
    for s in schema:
        if s.name in seen:
            raise ValidationError(f"struct {s.name!r} defined twice")
        seen.add(s.name)

    for s in schema:
        declared: Dict[str, Member] = {}
        for m in s.members:
            if m.name in declared:
                raise ValidationError(
                    f"{s.name}: duplicate member {m.name!r}")
            if not m.is_primitive and m.type_name not in seen:
                raise ValidationError(
                    f"{s.name}.{m.name}: unknown type {m.type_name!r}")
            for dim in m.dimensions:
                if dim.is_constant:
                    continue
                length = declared.get(dim.size)
                if length is None:
                    raise ValidationError(
                        f"{s.name}.{m.name}: dimension {dim.size!r} must "
                        f"name an earlier member")
                if length.is_array or not is_integer(length.type_name):
                    raise ValidationError(
                        f"{s.name}.{m.name}: dimension {dim.size!r} must be "
                        f"a scalar integer")
            declared[m.name] = m
