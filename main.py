"""
Командная строка для кодека Хаффмана.
"""

import argparse
import logging
import os
import sys
from archiver import Archiver, HUFF_SUFFIX, compare_files, compare_trees


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Huffman file compressor',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py compress docs -o packed
  python main.py decompress packed -o restored --verify docs
  python main.py verify docs restored
  python main.py info packed/readme.txt.huff
        """
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Command')

    compress_parser = subparsers.add_parser('compress', help='Compress a file or directory')
    compress_parser.add_argument('path', help='File or directory to compress')
    compress_parser.add_argument('-o', '--output', required=True, help='Output directory')
    compress_parser.add_argument('--suffix', default=HUFF_SUFFIX, help='Compressed file suffix')

    decompress_parser = subparsers.add_parser('decompress', help='Decompress a file or directory')
    decompress_parser.add_argument('path', help='File or directory to decompress')
    decompress_parser.add_argument('-o', '--output', required=True, help='Output directory')
    decompress_parser.add_argument('--suffix', default=HUFF_SUFFIX, help='Compressed file suffix')
    decompress_parser.add_argument('--verify', metavar='ORIGINAL',
                                   help='Compare the result with the original file or directory')

    verify_parser = subparsers.add_parser('verify', help='Compare original and restored data')
    verify_parser.add_argument('original', help='Original file or directory')
    verify_parser.add_argument('restored', help='Restored file or directory')

    info_parser = subparsers.add_parser('info', help='Show compressed file details')
    info_parser.add_argument('file', help='Compressed file')

    return parser


def verify(original: str, restored: str) -> bool:
    if os.path.isdir(original):
        return compare_trees(original, restored)

    if not os.path.isfile(restored):
        print(f"Missing: {restored}")
        return False

    same = compare_files(original, restored)
    print(f"{'OK' if same else 'Differs'}: {original}")
    return same


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if not args.command:
        parser.print_help()
        return 0

    try:
        if args.command == 'compress':
            report = Archiver(suffix=args.suffix).compress_tree(args.path, args.output)
            print(f"\n{len(report.processed)} compressed, {len(report.failed)} failed")
            return 0 if report.ok else 1

        elif args.command == 'decompress':
            report = Archiver(suffix=args.suffix).decompress_tree(args.path, args.output)
            print(f"\n{len(report.processed)} decompressed, {len(report.failed)} failed")
            if not report.ok:
                return 1

            if args.verify:
                restored = args.output
                if os.path.isfile(args.verify) and report.processed:
                    restored = report.processed[0]
                if not verify(args.verify, restored):
                    print("Some files differ from the originals", file=sys.stderr)
                    return 1
                print("All files restored correctly")
            return 0

        elif args.command == 'verify':
            return 0 if verify(args.original, args.restored) else 1

        elif args.command == 'info':
            info = Archiver().describe(args.file)
            print(f"Symbols:       {info['entries']}")
            print(f"Encoded bits:  {info['bits']}")
            print(f"Payload:       {info['payload']} bytes")
            print(f"Original:      {info['original']} bytes")
            print(f"Compressed:    {info['compressed']} bytes ({info['ratio']:.1f}%)")
            return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
