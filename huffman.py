"""
Реализует кодирование Хаффмана для произвольного потока байтов.
Частые байты получают более короткие коды.

Порядок при равных весах фиксирован: листья добавляются в очередь по
возрастанию значения байта, а узлы с одинаковым весом извлекаются в порядке
добавления. Поэтому дерево зависит только от содержимого таблицы частот,
и при разжатии получается то же дерево, что и при сжатии.
"""

import heapq
import itertools
import logging
from typing import Dict, Iterable, List, Optional, Tuple
from collections import Counter

from container import Container, read_container
from errors import (
    CorruptStreamError,
    EmptyInputError,
    EmptyQueueError,
    InvalidBitError,
    UnmappedSymbolError,
)


logger = logging.getLogger(__name__)

_BIT_VALUES = {0: 0, 1: 1, '0': 0, '1': 1}


def _to_bit(token) -> int:
    # Допустимы только 0, 1, True, False, '0' и '1'; 1.0 и прочие числа - нет
    if not isinstance(token, (int, str)):
        raise InvalidBitError(token)
    try:
        return _BIT_VALUES[token]
    except (KeyError, TypeError):
        raise InvalidBitError(token) from None


class HuffmanNode:
    def __init__(self, symbol: Optional[int] = None, freq: int = 0,
                 left: Optional['HuffmanNode'] = None,
                 right: Optional['HuffmanNode'] = None):
        self.symbol = symbol
        self.freq = freq
        self.left = left
        self.right = right

    @property
    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def __repr__(self):
        if self.is_leaf:
            return f"Leaf(0x{self.symbol:02x}, freq={self.freq})"
        return f"Internal(freq={self.freq})"


class PriorityQueue:
    """Min-куча узлов по весу; при равном весе раньше выходит добавленный раньше."""

    def __init__(self):
        self._heap: List[Tuple[int, int, HuffmanNode]] = []
        self._counter = itertools.count()

    def push(self, node: HuffmanNode, weight: int):
        heapq.heappush(self._heap, (weight, next(self._counter), node))

    def pop_min(self) -> HuffmanNode:
        if not self._heap:
            raise EmptyQueueError("pop_min() on an empty priority queue")
        return heapq.heappop(self._heap)[2]

    def __len__(self):
        return len(self._heap)


class HuffmanTree:
    def __init__(self):
        self.root: Optional[HuffmanNode] = None
        self.codes: Dict[int, str] = {}

    @classmethod
    def from_frequencies(cls, frequencies: Dict[int, int]) -> 'HuffmanTree':
        tree = cls()
        tree.build(frequencies)
        return tree

    def build(self, frequencies: Dict[int, int]):
        if not frequencies:
            raise EmptyInputError("Cannot build a Huffman tree from an empty frequency table")

        queue = PriorityQueue()
        for symbol in sorted(frequencies):
            freq = frequencies[symbol]
            queue.push(HuffmanNode(symbol=symbol, freq=freq), freq)

        # Один символ: слияний нет, лист сам становится корнем
        while len(queue) > 1:
            left = queue.pop_min()
            right = queue.pop_min()

            parent = HuffmanNode(freq=left.freq + right.freq,
                                 left=left, right=right)
            queue.push(parent, parent.freq)

        self.root = queue.pop_min()
        self._generate_codes()

    def _generate_codes(self):
        self.codes.clear()

        if self.root.is_leaf:
            self.codes[self.root.symbol] = '0'
            return

        stack = [(self.root, '')]
        while stack:
            node, code = stack.pop()

            if node.is_leaf:
                self.codes[node.symbol] = code
                continue

            stack.append((node.right, code + '1'))
            stack.append((node.left, code + '0'))


class BitStream:
    """Последовательность битов с явным счётчиком; хвост последнего байта не значим."""

    def __init__(self, bits: str = ''):
        self._chunks: List[str] = [bits] if bits else []
        self._length = len(bits)

    def write_bit(self, bit):
        self._chunks.append('1' if _to_bit(bit) else '0')
        self._length += 1

    def write_bits(self, code: str):
        if code.strip('01'):
            raise InvalidBitError(next(token for token in code if token not in '01'))
        self._chunks.append(code)
        self._length += len(code)

    @property
    def bits(self) -> str:
        if len(self._chunks) > 1:
            self._chunks = [''.join(self._chunks)]
        return self._chunks[0] if self._chunks else ''

    def __len__(self):
        return self._length

    def to_bytes(self) -> bytes:
        bits = self.bits
        if not bits:
            return b''

        padding = (8 - len(bits) % 8) % 8
        padded = bits + '0' * padding
        return int(padded, 2).to_bytes(len(padded) // 8, 'big')

    @staticmethod
    def from_bytes(data: bytes, number_of_bits: int) -> 'BitStream':
        if len(data) * 8 < number_of_bits:
            raise CorruptStreamError(
                f"{len(data)} bytes cannot hold {number_of_bits} bits")

        bits = ''.join(format(byte, '08b') for byte in data)
        return BitStream(bits[:number_of_bits])


def decode_bits(root: HuffmanNode, bits: Iterable,
                expected_count: Optional[int] = None) -> bytes:
    """
    Проходит по дереву от корня: 0 - влево, 1 - вправо, на листе выдаёт байт
    и возвращается к корню. Останавливается, когда биты закончились.
    """
    output = bytearray()

    if root.is_leaf:
        # Ветвлений нет: каждый бит означает одно вхождение символа
        for token in bits:
            _to_bit(token)
            output.append(root.symbol)
    else:
        node = root
        for token in bits:
            node = node.right if _to_bit(token) else node.left

            if node.is_leaf:
                output.append(node.symbol)
                node = root

        if node is not root:
            raise CorruptStreamError("Bitstream ends in the middle of a code")

    if expected_count is not None and len(output) != expected_count:
        raise CorruptStreamError(
            f"Decoded {len(output)} bytes, frequency table promises {expected_count}")

    return bytes(output)


class HuffmanEncoder:
    @staticmethod
    def encode(data: bytes) -> Container:
        if not data:
            raise EmptyInputError("Nothing to compress: input is empty")

        frequencies = dict(Counter(data))
        tree = HuffmanTree.from_frequencies(frequencies)

        bitstream = BitStream()
        for byte in data:
            code = tree.codes.get(byte)
            if code is None:
                raise UnmappedSymbolError(byte)
            bitstream.write_bits(code)

        return Container(
            frequencies=frequencies,
            number_of_bits=len(bitstream),
            payload=bitstream.to_bytes()
        )

    @staticmethod
    def decode(container: Container) -> bytes:
        tree = HuffmanTree.from_frequencies(container.frequencies)
        bitstream = BitStream.from_bytes(container.payload, container.number_of_bits)

        return decode_bits(tree.root, bitstream.bits,
                           expected_count=container.original_size)


def compress(data: bytes) -> bytes:
    container = HuffmanEncoder.encode(data)
    logger.debug("compress: %d bytes, %d symbols, %d bits",
                 len(data), container.entry_count, container.number_of_bits)
    return container.serialize()


def decompress(data: bytes) -> bytes:
    container = read_container(data)
    logger.debug("decompress: %d symbols, %d bits",
                 container.entry_count, container.number_of_bits)
    return HuffmanEncoder.decode(container)
