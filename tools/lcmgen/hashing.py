"""
Structural hash engine.

A struct's fingerprint is its base hash seed plus the fingerprints of every
struct it references, rotated left by one bit per nesting level.  Types
already on the current recursion path are skipped, so cyclic type graphs
terminate.  The result only depends on the schema, which is what lets two
independently generated codecs agree on it.
"""

from typing import Tuple

from .schema import Schema, Struct
from .types import MASK64

Ancestry = Tuple[Tuple[int, str], ...]


def ancestry_entry(name: str) -> Tuple[int, str]:
    return (len(name), name)


def rotate_left_1(value: int) -> int:
    """Rotate a 64-bit value left by one bit."""
    return ((value << 1) & MASK64) | ((value >> 63) & 1)


def compute_hash(struct: Struct, schema: Schema, ancestry: Ancestry = ()) -> int:
    """Compute the structural hash of ``struct``.

    Args:
        struct: the struct to hash.
        schema: used to resolve compound member types.
        ancestry: ``(len(name), name)`` pairs of the structs on the current
            call path.  Not a cache: callers at the top level pass ``()``.

    Returns:
        The unsigned 64-bit hash.
    """
    parents = ancestry + (ancestry_entry(struct.name),)
    value = struct.base_hash

    for m in struct.members:
        if m.is_primitive:
            continue
        if ancestry_entry(m.type_name) in parents:
            continue
        child = schema.lookup(m.type_name)
        value = (value + compute_hash(child, schema, parents)) & MASK64

    return rotate_left_1(value)


def fingerprint(schema: Schema, struct: Struct) -> int:
    """Top-level fingerprint of ``struct``, computed once per schema."""
    cached = schema.fingerprints.get(struct.name)
    if cached is None:
        cached = compute_hash(struct, schema)
        schema.fingerprints[struct.name] = cached
    return cached
