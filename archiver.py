"""
Сжатие и разжатие файлов и каталогов поверх кодека Хаффмана.
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

from huffman import compress, decompress
from container import read_container
from errors import HuffmanError


HUFF_SUFFIX = '.huff'
COMPARE_CHUNK_SIZE = 64 * 1024


@dataclass
class TreeReport:
    processed: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class Archiver:
    def __init__(self, suffix: str = HUFF_SUFFIX, verbose: bool = True):
        if not suffix:
            raise ValueError("Suffix must not be empty")
        self.suffix = suffix
        self.verbose = verbose

    def _say(self, message: str):
        if self.verbose:
            print(message)

    def compressed_name(self, filename: str) -> str:
        return filename + self.suffix

    def restored_name(self, filename: str) -> str:
        if filename.endswith(self.suffix):
            restored = filename[:-len(self.suffix)]
            if not restored:
                raise ValueError(f"Cannot restore a name from {filename!r}")
            return restored
        return filename

    def compress_file(self, file_path: str, output_dir: str = '.') -> str:
        with open(file_path, 'rb') as f:
            data = f.read()

        compressed = compress(data)

        os.makedirs(output_dir, exist_ok=True)
        output_path = os.path.join(output_dir, self.compressed_name(Path(file_path).name))

        with open(output_path, 'wb') as f:
            f.write(compressed)

        ratio = len(compressed) / len(data) * 100
        self._say(f"Compressed {file_path} -> {output_path} "
                  f"({len(data)} -> {len(compressed)} bytes, {ratio:.1f}%)")

        return output_path

    def decompress_file(self, file_path: str, output_dir: str = '.') -> str:
        with open(file_path, 'rb') as f:
            data = f.read()

        decompressed = decompress(data)

        os.makedirs(output_dir, exist_ok=True)
        output_path = os.path.join(output_dir, self.restored_name(Path(file_path).name))

        with open(output_path, 'wb') as f:
            f.write(decompressed)

        self._say(f"Decompressed {file_path} -> {output_path} ({len(decompressed)} bytes)")

        return output_path

    def compress_tree(self, source: str, output_dir: str) -> TreeReport:
        return self._walk(source, output_dir, self.compress_file,
                          lambda name: True)

    def decompress_tree(self, source: str, output_dir: str) -> TreeReport:
        return self._walk(source, output_dir, self.decompress_file,
                          lambda name: name.endswith(self.suffix))

    def _walk(self, source: str, output_dir: str, action, accepts) -> TreeReport:
        report = TreeReport()

        if os.path.isfile(source):
            self._apply(action, source, output_dir, report)
            return report

        if not os.path.isdir(source):
            raise FileNotFoundError(f"{source} does not exist")

        output_real = os.path.realpath(output_dir)

        for dirpath, dirnames, filenames in os.walk(source):
            # Не заходим в каталог вывода, если он лежит внутри исходного
            dirnames[:] = sorted(
                name for name in dirnames
                if os.path.realpath(os.path.join(dirpath, name)) != output_real
            )
            relative = os.path.relpath(dirpath, source)
            target_dir = output_dir if relative == '.' else os.path.join(output_dir, relative)

            for filename in sorted(filenames):
                if not accepts(filename):
                    continue
                self._apply(action, os.path.join(dirpath, filename), target_dir, report)

        return report

    def _apply(self, action, file_path: str, target_dir: str, report: TreeReport):
        try:
            report.processed.append(action(file_path, target_dir))
        except (HuffmanError, ValueError, OSError) as e:
            print(f"Warning: {file_path} skipped: {e}")
            report.failed.append((file_path, str(e)))

    def describe(self, file_path: str) -> dict:
        with open(file_path, 'rb') as f:
            container = read_container(f.read())

        original = container.original_size
        stored = container.serialized_size
        return {
            'entries': container.entry_count,
            'bits': container.number_of_bits,
            'payload': len(container.payload),
            'original': original,
            'compressed': stored,
            'ratio': stored / original * 100 if original > 0 else 0,
        }


def compare_files(first: str, second: str) -> bool:
    if os.path.getsize(first) != os.path.getsize(second):
        return False

    with open(first, 'rb') as a, open(second, 'rb') as b:
        while True:
            chunk_a = a.read(COMPARE_CHUNK_SIZE)
            chunk_b = b.read(COMPARE_CHUNK_SIZE)
            if chunk_a != chunk_b:
                return False
            if not chunk_a:
                return True


def compare_trees(original_dir: str, restored_dir: str, verbose: bool = True) -> bool:
    if not os.path.isdir(restored_dir):
        print(f"Error: {restored_dir} is not a directory", file=sys.stderr)
        return False

    all_match = True

    for dirpath, dirnames, filenames in os.walk(original_dir):
        dirnames.sort()
        relative = os.path.relpath(dirpath, original_dir)

        for filename in sorted(filenames):
            original = os.path.join(dirpath, filename)
            restored = os.path.normpath(os.path.join(restored_dir, relative, filename))

            if not os.path.isfile(restored):
                print(f"Missing: {restored}")
                all_match = False
            elif compare_files(original, restored):
                if verbose:
                    print(f"OK: {original}")
            else:
                print(f"Differs: {original}")
                all_match = False

    return all_match
