"""
Формат контейнера .huff: таблица частот и упакованный битовый поток.
Само дерево не сохраняется, при разжатии оно строится заново по таблице.

    entry_count     u32
    entries         entry_count * (u8 symbol, u32 frequency)
    number_of_bits  u32
    payload         ceil(number_of_bits / 8) байт, старший бит первым
"""

import io
import struct
from dataclasses import dataclass
from typing import Dict, Tuple

from errors import (
    ContainerOverflowError,
    CorruptStreamError,
    EmptyTableError,
    TruncatedStreamError,
)


U32 = struct.Struct('>I')
ENTRY = struct.Struct('>BI')
U32_MAX = 0xFFFFFFFF
MAX_SYMBOLS = 256


def payload_size_for(number_of_bits: int) -> int:
    return (number_of_bits + 7) // 8


@dataclass
class Container:
    frequencies: Dict[int, int]
    number_of_bits: int
    payload: bytes

    @property
    def entry_count(self) -> int:
        return len(self.frequencies)

    @property
    def original_size(self) -> int:
        return sum(self.frequencies.values())

    @property
    def serialized_size(self) -> int:
        return U32.size * 2 + ENTRY.size * self.entry_count + len(self.payload)

    def serialize(self) -> bytes:
        if self.number_of_bits > U32_MAX:
            raise ContainerOverflowError(
                f"Encoded stream has {self.number_of_bits} bits, "
                f"the container holds at most {U32_MAX}")

        output = io.BytesIO()
        output.write(U32.pack(len(self.frequencies)))

        for symbol, freq in self.frequencies.items():
            if freq > U32_MAX:
                raise ContainerOverflowError(
                    f"Frequency {freq} of byte 0x{symbol:02x} does not fit in 32 bits")
            output.write(ENTRY.pack(symbol, freq))

        output.write(U32.pack(self.number_of_bits))
        output.write(self.payload)

        return output.getvalue()

    @staticmethod
    def deserialize(data: bytes) -> 'Container':
        pos = 0

        entry_count, pos = _read_u32(data, pos, "entry count")

        if entry_count == 0:
            raise EmptyTableError("Container has an empty frequency table")
        if entry_count > MAX_SYMBOLS:
            raise CorruptStreamError(
                f"Container declares {entry_count} symbols, at most {MAX_SYMBOLS} are possible")

        if pos + entry_count * ENTRY.size > len(data):
            raise TruncatedStreamError(
                f"Frequency table truncated: expected {entry_count} entries")

        frequencies: Dict[int, int] = {}
        for _ in range(entry_count):
            symbol, freq = ENTRY.unpack_from(data, pos)
            pos += ENTRY.size

            if symbol in frequencies:
                raise CorruptStreamError(f"Duplicate byte 0x{symbol:02x} in frequency table")
            frequencies[symbol] = freq

        number_of_bits, pos = _read_u32(data, pos, "bit count")
        payload_size = payload_size_for(number_of_bits)

        if pos + payload_size > len(data):
            raise TruncatedStreamError(
                f"Payload truncated: expected {payload_size} bytes, "
                f"got {len(data) - pos}")
        if pos + payload_size < len(data):
            raise CorruptStreamError(
                f"{len(data) - pos - payload_size} unexpected bytes after payload")

        payload = bytes(data[pos:pos + payload_size])

        return Container(
            frequencies=frequencies,
            number_of_bits=number_of_bits,
            payload=payload
        )


def _read_u32(data: bytes, pos: int, what: str) -> Tuple[int, int]:
    if pos + U32.size > len(data):
        raise TruncatedStreamError(f"Container truncated: cannot read {what}")
    return U32.unpack_from(data, pos)[0], pos + U32.size


def read_container(data: bytes) -> Container:
    return Container.deserialize(data)
