# Copyright 2023 Brian T. Park
#
# MIT License
"""
Utils for writing integers to byte arrays in big endian (network) order, as
required by the TZif format. For negative integers, use 2's complement.
"""


def write_u8(data: bytearray, x: int) -> None:
    if x > 255:
        raise ValueError(f"x={x} > 255, cannot write into uint8")
    if x < 0:
        raise ValueError(f"x={x} < 0, cannot write into uint8")
    data.append(x & 0xff)


def write_u32(data: bytearray, x: int) -> None:
    if x > 4294967295:
        raise ValueError(f"x={x} > 4294967295, cannot write into uint32")
    if x < 0:
        raise ValueError(f"x={x} < 0, cannot write into uint32")

    b0 = x & 0xff
    x >>= 8
    b1 = x & 0xff
    x >>= 8
    b2 = x & 0xff
    x >>= 8
    b3 = x & 0xff
    data.append(b3)
    data.append(b2)
    data.append(b1)
    data.append(b0)


def write_i32(data: bytearray, x: int) -> None:
    if x > (1 << 31) - 1:
        raise ValueError(f"x={x} > {(1 << 31) - 1}, cannot write into int32")
    if x < -(1 << 31):
        raise ValueError(f"x={x} < {-(1 << 31)}, cannot write into int32")
    if x < 0:
        x += (1 << 32)
    write_u32(data, x)


def write_i64(data: bytearray, x: int) -> None:
    if x > (1 << 63) - 1:
        raise ValueError(f"x={x} > {(1 << 63) - 1}, cannot write into int64")
    if x < -(1 << 63):
        raise ValueError(f"x={x} < {-(1 << 63)}, cannot write into int64")
    if x < 0:
        x += (1 << 64)
    write_u32(data, x >> 32)
    write_u32(data, x & 0xffffffff)


def is_i32(x: int) -> bool:
    """Return True if x fits into an int32."""
    return -(1 << 31) <= x <= (1 << 31) - 1


def hex_encode(data: bytearray) -> str:
    """Convert byte array to hex escape (\\xhh) string. Even printable ASCII
    characters [32,127] are converted to hex escape for consistency.
    """
    s = ''
    for b in data:
        s += f'\\x{b:02x}'
    return s
