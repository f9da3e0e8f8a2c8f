#!/usr/bin/env python3
"""
Px24 Disassembler

Usage: python disasm.py <program.png|program.bin> [--count N]
"""

import sys
from typing import List, Optional
from executable import Executable, disassemble
from image import load_image


def load_words(path: str, count: Optional[int] = None) -> List[int]:
    """Load words from an image or a binary executable."""
    if count is not None and count < 0:
        raise ValueError(f"Word count must not be negative: {count}")
    if path.endswith('.bin'):
        with open(path, 'rb') as f:
            words = Executable.decode(f.read()).words
        return words if count is None else words[:count]
    return load_image(path, count)


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Px24 Arch Disassembler')
    parser.add_argument('program', help='Program image (.png) or binary (.bin)')
    parser.add_argument('--count', '-n', type=int, default=None,
                        help='Number of words to read (default: all, trailing zero pixels dropped)')

    args = parser.parse_args()

    if args.count is not None and args.count < 0:
        parser.error(f"--count must not be negative: {args.count}")

    try:
        words = load_words(args.program, args.count)
    except FileNotFoundError:
        print(f"Error: File not found: {args.program}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error loading program: {e}", file=sys.stderr)
        sys.exit(1)

    print(disassemble(words))


if __name__ == '__main__':
    main()
