"""
Type system: LCM primitive table and the byte-wise hash used for base seeds.
"""

# LCM primitive name → (encoded width in bytes, struct format).
# Width -1 means the encoded size depends on the value.
PRIMITIVE_TYPES = {
    "int8_t":   (1, ">b"),
    "int16_t":  (2, ">h"),
    "uint16_t": (2, ">H"),
    "int32_t":  (4, ">i"),
    "uint32_t": (4, ">I"),
    "int64_t":  (8, ">q"),
    "byte":     (1, ">B"),
    "float":    (4, ">f"),
    "double":   (8, ">d"),
    "boolean":  (1, ">?"),
    "string":   (-1, None),
}

# Types allowed as the length of a dynamic dimension.
INTEGER_TYPES = {"int8_t", "int16_t", "uint16_t", "int32_t", "uint32_t", "int64_t"}

MASK64 = 0xFFFFFFFFFFFFFFFF


def is_primitive(type_name: str) -> bool:
    return type_name in PRIMITIVE_TYPES


def is_integer(type_name: str) -> bool:
    return type_name in INTEGER_TYPES


def encoded_size(type_name: str) -> int:
    """Fixed encoded width of a primitive, or -1 if unknown."""
    if type_name not in PRIMITIVE_TYPES:
        return -1
    return PRIMITIVE_TYPES[type_name][0]


def struct_format(type_name: str) -> str:
    return PRIMITIVE_TYPES[type_name][1]


def _signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    if value >> (bits - 1):
        value -= 1 << bits
    return value


def hash_update(v: int, c: int) -> int:
    """Fold one signed char into a 64-bit hash. Returns the unsigned result."""
    v = _signed(v, 64)
    return (((v << 8) ^ (v >> 55)) + _signed(c, 8)) & MASK64


def hash_string_update(v: int, s: str) -> int:
    """Fold a length-prefixed string into a 64-bit hash."""
    data = s.encode("utf-8")
    v = hash_update(v, len(data))
    for b in data:
        v = hash_update(v, b)
    return v
