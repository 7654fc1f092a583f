import unittest
import tempfile
import os
import io
import random
import shutil
import sys
from contextlib import redirect_stdout, redirect_stderr
from unittest import mock

from huffman import (
    BitStream, HuffmanEncoder, HuffmanNode, HuffmanTree, PriorityQueue,
    compress, decode_bits, decompress,
)
from container import Container, read_container, ENTRY, U32, U32_MAX
from archiver import Archiver, compare_files, compare_trees
from errors import (
    ContainerError, ContainerOverflowError, CorruptStreamError, EmptyInputError,
    EmptyQueueError, EmptyTableError, InvalidBitError, TruncatedStreamError,
    UnmappedSymbolError,
)
import main


SAMPLE = b"aaaabbbccd"


class TestPriorityQueue(unittest.TestCase):
    def test_pops_in_weight_order(self):
        queue = PriorityQueue()
        for symbol, weight in [(1, 5), (2, 1), (3, 3)]:
            queue.push(HuffmanNode(symbol=symbol, freq=weight), weight)

        order = [queue.pop_min().symbol for _ in range(3)]
        self.assertEqual(order, [2, 3, 1])
        self.assertEqual(len(queue), 0)

    def test_equal_weights_pop_in_insertion_order(self):
        queue = PriorityQueue()
        for symbol in (9, 4, 7):
            queue.push(HuffmanNode(symbol=symbol, freq=2), 2)

        order = [queue.pop_min().symbol for _ in range(3)]
        self.assertEqual(order, [9, 4, 7])

    def test_pop_empty(self):
        with self.assertRaises(EmptyQueueError):
            PriorityQueue().pop_min()


class TestHuffmanTree(unittest.TestCase):
    def test_empty_table(self):
        with self.assertRaises(EmptyInputError):
            HuffmanTree.from_frequencies({})

    def test_single_symbol(self):
        tree = HuffmanTree.from_frequencies({0x41: 1000})
        self.assertTrue(tree.root.is_leaf)
        self.assertEqual(tree.root.symbol, 0x41)
        self.assertEqual(tree.codes, {0x41: '0'})

    def test_zero_byte_is_a_symbol(self):
        tree = HuffmanTree.from_frequencies({0: 3, 1: 1})
        self.assertEqual(set(tree.codes), {0, 1})

    def test_sample_codes(self):
        tree = HuffmanTree.from_frequencies({ord('a'): 4, ord('b'): 3, ord('c'): 2, ord('d'): 1})
        self.assertEqual(tree.root.freq, 10)
        self.assertEqual(tree.codes, {
            ord('a'): '0',
            ord('b'): '10',
            ord('d'): '110',
            ord('c'): '111',
        })

    def test_key_order_does_not_change_tree(self):
        forward = HuffmanTree.from_frequencies({1: 5, 2: 5, 3: 5, 4: 5})
        backward = HuffmanTree.from_frequencies({4: 5, 3: 5, 2: 5, 1: 5})
        self.assertEqual(forward.codes, backward.codes)

    def test_prefix_property(self):
        rng = random.Random(1234)
        data = bytes(rng.choice(b"etaoinshrdlu \n0123456789") for _ in range(5000))
        data += bytes(range(256))
        frequencies = {}
        for byte in data:
            frequencies[byte] = frequencies.get(byte, 0) + 1

        codes = HuffmanTree.from_frequencies(frequencies).codes
        self.assertEqual(set(codes), set(frequencies))

        for symbol, code in codes.items():
            for other, other_code in codes.items():
                if symbol != other:
                    self.assertFalse(other_code.startswith(code),
                                     f"{code} is a prefix of {other_code}")

    def test_most_frequent_gets_shortest_code(self):
        codes = HuffmanTree.from_frequencies({10: 50, 20: 5, 30: 4, 40: 1}).codes
        self.assertEqual(min(len(code) for code in codes.values()), len(codes[10]))


class TestBitStream(unittest.TestCase):
    def test_pack_msb_first_with_zero_padding(self):
        stream = BitStream()
        stream.write_bits('101')
        self.assertEqual(len(stream), 3)
        self.assertEqual(stream.to_bytes(), b'\xa0')

    def test_full_bytes_have_no_extra_padding(self):
        stream = BitStream()
        stream.write_bits('11111111')
        stream.write_bits('00000001')
        self.assertEqual(stream.to_bytes(), b'\xff\x01')

    def test_write_bit_tokens(self):
        stream = BitStream()
        for token in (1, '0', True, 0):
            stream.write_bit(token)
        self.assertEqual(stream.bits, '1010')

    def test_invalid_code(self):
        with self.assertRaises(InvalidBitError):
            BitStream().write_bits('0x1')
        with self.assertRaises(InvalidBitError):
            BitStream().write_bit(2)

    def test_from_bytes_drops_padding(self):
        stream = BitStream.from_bytes(b'\xa0', 3)
        self.assertEqual(stream.bits, '101')

    def test_from_bytes_short_payload(self):
        with self.assertRaises(CorruptStreamError):
            BitStream.from_bytes(b'\x00', 9)


class TestDecoder(unittest.TestCase):
    def setUp(self):
        self.tree = HuffmanTree.from_frequencies({ord('a'): 4, ord('b'): 3, ord('c'): 2, ord('d'): 1})

    def test_walk(self):
        self.assertEqual(decode_bits(self.tree.root, '0101100111'), b"abdac")
        self.assertEqual(decode_bits(self.tree.root, [1, 1, 1, 0]), b"ca")

    def test_invalid_token(self):
        with self.assertRaises(InvalidBitError):
            decode_bits(self.tree.root, '0120')

    def test_ends_inside_code(self):
        with self.assertRaises(CorruptStreamError):
            decode_bits(self.tree.root, '011')

    def test_expected_count_mismatch(self):
        with self.assertRaises(CorruptStreamError):
            decode_bits(self.tree.root, '000', expected_count=4)

    def test_single_leaf_emits_once_per_bit(self):
        root = HuffmanTree.from_frequencies({0x7a: 5}).root
        self.assertEqual(decode_bits(root, '01101', expected_count=5), b"zzzzz")

    def test_single_leaf_invalid_token(self):
        root = HuffmanTree.from_frequencies({0x7a: 2}).root
        with self.assertRaises(InvalidBitError):
            decode_bits(root, '0a')

    def test_float_tokens_are_not_bits(self):
        with self.assertRaises(InvalidBitError):
            decode_bits(self.tree.root, [0, 1.0])
        with self.assertRaises(InvalidBitError):
            decode_bits(HuffmanTree.from_frequencies({0x7a: 1}).root, [0.0])
        with self.assertRaises(InvalidBitError):
            BitStream().write_bit(1.0)


class TestCodec(unittest.TestCase):
    def test_sample_round_trip(self):
        compressed = compress(SAMPLE)
        self.assertEqual(decompress(compressed), SAMPLE)

    def test_sample_container(self):
        compressed = compress(SAMPLE)
        container = read_container(compressed)

        self.assertEqual(compressed[:4], b'\x00\x00\x00\x04')
        self.assertEqual(container.entry_count, 4)
        self.assertEqual(container.frequencies,
                         {ord('a'): 4, ord('b'): 3, ord('c'): 2, ord('d'): 1})
        self.assertEqual(container.number_of_bits, 19)
        self.assertEqual(container.payload, b'\x0a\xbf\xc0')
        self.assertEqual(len(compressed), 4 + 4 * ENTRY.size + 4 + 3)

    def test_single_symbol(self):
        data = b'A' * 1000
        compressed = compress(data)
        container = read_container(compressed)

        self.assertEqual(container.entry_count, 1)
        self.assertEqual(container.number_of_bits, 1000)
        self.assertEqual(container.payload, b'\x00' * 125)
        self.assertEqual(decompress(compressed), data)

    def test_single_byte(self):
        self.assertEqual(decompress(compress(b'\x00')), b'\x00')

    def test_single_symbol_with_set_bits(self):
        payload = b'\xff'
        compressed = U32.pack(1) + ENTRY.pack(0x41, 8) + U32.pack(8) + payload
        self.assertEqual(decompress(compressed), b'A' * 8)

    def test_empty_input(self):
        with self.assertRaises(EmptyInputError):
            compress(b'')
        with self.assertRaises(EmptyInputError):
            HuffmanEncoder.encode(b'')

    def test_all_byte_values(self):
        data = bytes(range(256)) * 3
        self.assertEqual(decompress(compress(data)), data)

    def test_random_data(self):
        rng = random.Random(42)
        data = bytes(rng.getrandbits(8) for _ in range(10 * 1024))
        self.assertEqual(decompress(compress(data)), data)

    def test_skewed_data(self):
        data = b"Lorem ipsum dolor sit amet " * 200
        compressed = compress(data)
        self.assertLess(len(compressed), len(data))
        self.assertEqual(decompress(compressed), data)

    def test_multibyte_text_is_treated_as_bytes(self):
        data = "Привет, мир! Hello, world!".encode('utf-8')
        self.assertEqual(decompress(compress(data)), data)

    def test_small_inputs(self):
        rng = random.Random(7)
        for n in (1, 2, 3, 9):
            data = bytes(rng.getrandbits(8) for _ in range(n))
            self.assertEqual(decompress(compress(data)), data)

    def test_bytearray_input(self):
        data = bytearray(b"abracadabra")
        self.assertEqual(decompress(compress(data)), bytes(data))

    def test_payload_length_matches_bit_count(self):
        for data in (b"a", b"ab", b"abcdefgh" * 3, b"hello huffman"):
            container = read_container(compress(data))
            self.assertEqual(len(container.payload), (container.number_of_bits + 7) // 8)


class TestContainer(unittest.TestCase):
    def test_truncated_payload(self):
        compressed = compress(SAMPLE)
        with self.assertRaises(TruncatedStreamError):
            decompress(compressed[:-1])

    def test_truncated_header(self):
        compressed = compress(SAMPLE)
        for size in (0, 2, 4, 10, 24, 26):
            with self.assertRaises(TruncatedStreamError):
                decompress(compressed[:size])

    def test_empty_table(self):
        with self.assertRaises(EmptyTableError):
            decompress(U32.pack(0) + U32.pack(0))

    def test_too_many_entries(self):
        with self.assertRaises(CorruptStreamError):
            decompress(U32.pack(300))

    def test_duplicate_symbol(self):
        data = U32.pack(2) + ENTRY.pack(1, 1) + ENTRY.pack(1, 1) + U32.pack(2) + b'\x40'
        with self.assertRaises(CorruptStreamError):
            decompress(data)

    def test_trailing_bytes(self):
        with self.assertRaises(CorruptStreamError):
            decompress(compress(SAMPLE) + b'\x00')

    def test_frequency_mismatch(self):
        container = read_container(compress(SAMPLE))
        container.frequencies[ord('a')] = 5
        with self.assertRaises(CorruptStreamError):
            decompress(container.serialize())

    def test_container_errors_are_value_errors(self):
        with self.assertRaises(ValueError):
            decompress(b'\x00')
        self.assertTrue(issubclass(EmptyTableError, ContainerError))

    def test_frequency_overflow(self):
        container = Container(frequencies={0x41: U32_MAX + 1}, number_of_bits=1, payload=b'\x00')
        with self.assertRaises(ContainerOverflowError):
            container.serialize()

    def test_bit_count_overflow(self):
        container = Container(frequencies={0x41: 1}, number_of_bits=U32_MAX + 1, payload=b'')
        with self.assertRaises(ContainerOverflowError):
            container.serialize()

    def test_entry_order_round_trips(self):
        container = Container(frequencies={3: 1, 1: 2, 2: 1}, number_of_bits=5, payload=b'\x00')
        restored = Container.deserialize(container.serialize())
        self.assertEqual(list(restored.frequencies), [3, 1, 2])

    def test_unmapped_symbol_error(self):
        error = UnmappedSymbolError(0x41)
        self.assertEqual(error.symbol, 0x41)
        self.assertIn('0x41', str(error))

    def test_encoder_rejects_byte_without_code(self):
        build = HuffmanTree.from_frequencies

        def without_b(frequencies):
            tree = build(frequencies)
            del tree.codes[ord('b')]
            return tree

        with mock.patch.object(HuffmanTree, 'from_frequencies', side_effect=without_b):
            with self.assertRaises(UnmappedSymbolError) as ctx:
                HuffmanEncoder.encode(b"ab")

        self.assertEqual(ctx.exception.symbol, ord('b'))


class TestArchiver(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.archiver = Archiver(verbose=False)
        self.source = os.path.join(self.temp_dir, "source")
        os.makedirs(os.path.join(self.source, "nested"))

        self._write(os.path.join(self.source, "file1.txt"), b"Hello World! " * 100)
        self._write(os.path.join(self.source, "nested", "file2.bin"), bytes(range(256)) * 4)
        self._write(os.path.join(self.source, "nested", "same.txt"), b"z" * 50)

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _write(self, path, data):
        with open(path, 'wb') as f:
            f.write(data)

    def test_compress_decompress_file(self):
        packed_dir = os.path.join(self.temp_dir, "packed")
        source_file = os.path.join(self.source, "file1.txt")

        packed = self.archiver.compress_file(source_file, packed_dir)
        self.assertEqual(os.path.basename(packed), "file1.txt.huff")
        self.assertLess(os.path.getsize(packed), os.path.getsize(source_file))

        restored = self.archiver.decompress_file(packed, os.path.join(self.temp_dir, "out"))
        self.assertEqual(os.path.basename(restored), "file1.txt")
        self.assertTrue(compare_files(source_file, restored))

    def test_tree_round_trip(self):
        packed_dir = os.path.join(self.temp_dir, "packed")
        restored_dir = os.path.join(self.temp_dir, "restored")

        report = self.archiver.compress_tree(self.source, packed_dir)
        self.assertTrue(report.ok)
        self.assertEqual(len(report.processed), 3)
        self.assertTrue(os.path.isfile(os.path.join(packed_dir, "nested", "file2.bin.huff")))

        report = self.archiver.decompress_tree(packed_dir, restored_dir)
        self.assertTrue(report.ok)
        self.assertEqual(len(report.processed), 3)

        with redirect_stdout(io.StringIO()):
            self.assertTrue(compare_trees(self.source, restored_dir, verbose=False))

    def test_custom_suffix(self):
        archiver = Archiver(suffix='.hf', verbose=False)
        packed_dir = os.path.join(self.temp_dir, "packed")
        archiver.compress_tree(self.source, packed_dir)
        self.assertTrue(os.path.isfile(os.path.join(packed_dir, "file1.txt.hf")))

        report = archiver.decompress_tree(packed_dir, os.path.join(self.temp_dir, "restored"))
        self.assertEqual(len(report.processed), 3)

    def test_decompress_ignores_other_files(self):
        packed_dir = os.path.join(self.temp_dir, "packed")
        self.archiver.compress_tree(self.source, packed_dir)
        self._write(os.path.join(packed_dir, "notes.txt"), b"not compressed")

        report = self.archiver.decompress_tree(packed_dir, os.path.join(self.temp_dir, "restored"))
        self.assertEqual(len(report.processed), 3)
        self.assertTrue(report.ok)

    def test_empty_file_is_reported(self):
        self._write(os.path.join(self.source, "empty.txt"), b"")

        with redirect_stdout(io.StringIO()) as out:
            report = self.archiver.compress_tree(self.source, os.path.join(self.temp_dir, "packed"))

        self.assertFalse(report.ok)
        self.assertEqual(len(report.processed), 3)
        self.assertEqual(report.failed[0][0], os.path.join(self.source, "empty.txt"))
        self.assertIn("empty.txt", out.getvalue())

    def test_corrupt_file_is_reported(self):
        packed_dir = os.path.join(self.temp_dir, "packed")
        os.makedirs(packed_dir)
        self._write(os.path.join(packed_dir, "broken.huff"), compress(SAMPLE)[:-2])

        with redirect_stdout(io.StringIO()):
            report = self.archiver.decompress_tree(packed_dir, os.path.join(self.temp_dir, "restored"))

        self.assertEqual(report.processed, [])
        self.assertEqual(len(report.failed), 1)

    def test_output_inside_source_is_not_compressed_again(self):
        packed_dir = os.path.join(self.source, "packed")

        first = self.archiver.compress_tree(self.source, packed_dir)
        second = self.archiver.compress_tree(self.source, packed_dir)

        self.assertEqual(len(first.processed), 3)
        self.assertEqual(sorted(second.processed), sorted(first.processed))
        self.assertFalse(os.path.exists(os.path.join(packed_dir, "packed")))

    def test_bare_suffix_name(self):
        with self.assertRaises(ValueError):
            self.archiver.restored_name(".huff")

        packed_dir = os.path.join(self.temp_dir, "packed")
        os.makedirs(packed_dir)
        self._write(os.path.join(packed_dir, ".huff"), compress(SAMPLE))

        with redirect_stdout(io.StringIO()):
            report = self.archiver.decompress_tree(packed_dir, os.path.join(self.temp_dir, "restored"))

        self.assertEqual(report.processed, [])
        self.assertIn("Cannot restore", report.failed[0][1])

    def test_compare_trees_missing_restored_dir(self):
        with redirect_stdout(io.StringIO()) as out, redirect_stderr(io.StringIO()) as err:
            self.assertFalse(compare_trees(self.source, os.path.join(self.temp_dir, "nope")))

        self.assertEqual(out.getvalue(), "")
        self.assertIn("is not a directory", err.getvalue())

    def test_missing_source(self):
        with self.assertRaises(FileNotFoundError):
            self.archiver.compress_tree(os.path.join(self.temp_dir, "nope"), self.temp_dir)

    def test_compare_files(self):
        first = os.path.join(self.temp_dir, "a")
        second = os.path.join(self.temp_dir, "b")
        self._write(first, b"abc")
        self._write(second, b"abd")
        self.assertFalse(compare_files(first, second))
        self._write(second, b"abc")
        self.assertTrue(compare_files(first, second))

    def test_compare_trees_detects_difference(self):
        restored_dir = os.path.join(self.temp_dir, "restored")
        shutil.copytree(self.source, restored_dir)
        self._write(os.path.join(restored_dir, "nested", "same.txt"), b"y" * 50)
        os.remove(os.path.join(restored_dir, "file1.txt"))

        with redirect_stdout(io.StringIO()) as out:
            self.assertFalse(compare_trees(self.source, restored_dir))
        self.assertIn("Missing", out.getvalue())
        self.assertIn("Differs", out.getvalue())

    def test_describe(self):
        packed = self.archiver.compress_file(os.path.join(self.source, "nested", "same.txt"),
                                             os.path.join(self.temp_dir, "packed"))
        info = self.archiver.describe(packed)
        self.assertEqual(info['entries'], 1)
        self.assertEqual(info['bits'], 50)
        self.assertEqual(info['payload'], 7)
        self.assertEqual(info['original'], 50)
        self.assertEqual(info['compressed'], os.path.getsize(packed))


class TestCommandLine(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.source = os.path.join(self.temp_dir, "docs")
        os.makedirs(self.source)
        with open(os.path.join(self.source, "readme.txt"), 'wb') as f:
            f.write(b"Content of file 1\n" * 50)

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def _run(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main.main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def test_compress_decompress_verify(self):
        packed = os.path.join(self.temp_dir, "packed")
        restored = os.path.join(self.temp_dir, "restored")

        code, _, _ = self._run('compress', self.source, '-o', packed)
        self.assertEqual(code, 0)

        code, out, _ = self._run('decompress', packed, '-o', restored, '--verify', self.source)
        self.assertEqual(code, 0)
        self.assertIn("All files restored correctly", out)

        code, _, _ = self._run('verify', self.source, restored)
        self.assertEqual(code, 0)

    def test_single_file_verify(self):
        source_file = os.path.join(self.source, "readme.txt")
        packed = os.path.join(self.temp_dir, "packed")
        restored = os.path.join(self.temp_dir, "restored")

        self._run('compress', source_file, '-o', packed)
        code, out, _ = self._run('decompress', os.path.join(packed, "readme.txt.huff"),
                                 '-o', restored, '--verify', source_file)
        self.assertEqual(code, 0)
        self.assertIn("OK", out)

    def test_info(self):
        packed = os.path.join(self.temp_dir, "packed")
        self._run('compress', self.source, '-o', packed)

        code, out, _ = self._run('info', os.path.join(packed, "readme.txt.huff"))
        self.assertEqual(code, 0)
        self.assertIn("Original:      900 bytes", out)

    def test_info_on_corrupt_file(self):
        broken = os.path.join(self.temp_dir, "broken.huff")
        with open(broken, 'wb') as f:
            f.write(b'\x00\x00')

        code, _, err = self._run('info', broken)
        self.assertEqual(code, 1)
        self.assertIn("Error:", err)

    def test_no_command(self):
        code, out, _ = self._run()
        self.assertEqual(code, 0)
        self.assertIn("usage", out)


def run_tests():
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestPriorityQueue))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffmanTree))
    suite.addTests(loader.loadTestsFromTestCase(TestBitStream))
    suite.addTests(loader.loadTestsFromTestCase(TestDecoder))
    suite.addTests(loader.loadTestsFromTestCase(TestCodec))
    suite.addTests(loader.loadTestsFromTestCase(TestContainer))
    suite.addTests(loader.loadTestsFromTestCase(TestArchiver))
    suite.addTests(loader.loadTestsFromTestCase(TestCommandLine))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
