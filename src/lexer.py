"""
Tokenizer for Px24 Arch assembly.

Tokens:
    Identifier   letter followed by letters/digits     add, r1, start
    Number       decimal digits                        10, 255
    Period       .                                     .start
    BracketLeft  [
    BracketRight ]

Each line is tokenized on its own by greedy longest-prefix matching.
Characters that cannot start a token (whitespace, commas, ...) are skipped,
so `add r1, r2, r3` and `add r1 r2 r3` give the same tokens.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from errors import LexError


class TokenKind(Enum):
    IDENTIFIER = 'Identifier'
    NUMBER = 'Number'
    BRACKET_LEFT = 'BracketLeft'
    BRACKET_RIGHT = 'BracketRight'
    PERIOD = 'Period'
    INVALID = 'Invalid'
    EMPTY = 'end of line'

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str

    def __str__(self) -> str:
        return f"{self.kind}({self.text})"


IDENTIFIER_RE = re.compile(r'[A-Za-z][A-Za-z0-9]*')
NUMBER_RE = re.compile(r'[0-9]+')

SINGLE_CHAR_TOKENS = {
    '.': TokenKind.PERIOD,
    '[': TokenKind.BRACKET_LEFT,
    ']': TokenKind.BRACKET_RIGHT,
}

# Skipped silently even in strict mode
SEPARATORS = ' \t\r\f\v,'


def classify(text: str) -> TokenKind:
    """Return the kind of token `text` is (or is a prefix of)."""
    if not text:
        return TokenKind.EMPTY
    if text in SINGLE_CHAR_TOKENS:
        return SINGLE_CHAR_TOKENS[text]
    if IDENTIFIER_RE.fullmatch(text):
        return TokenKind.IDENTIFIER
    if NUMBER_RE.fullmatch(text):
        return TokenKind.NUMBER
    return TokenKind.INVALID


def tokenize(line: str, strict: bool = False, line_num: int = 0) -> Iterator[Token]:
    """Yield the tokens of a single source line.

    With `strict`, a character other than whitespace or ',' that starts no
    token raises LexError instead of being dropped.
    """
    current = ""
    for column, ch in enumerate(line, 1):
        candidate = current + ch
        if classify(candidate) is not TokenKind.INVALID:
            current = candidate
            continue

        if current:
            yield Token(classify(current), current)

        if classify(ch) is TokenKind.INVALID:
            if strict and ch not in SEPARATORS:
                raise LexError(ch, column, line_num, line)
            current = ""
        else:
            current = ch

    if current:
        yield Token(classify(current), current)
