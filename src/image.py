"""
Raster image output for Px24 Arch.

One instruction word per RGB pixel: red = low byte, green = middle byte,
blue = high byte. Pixels are filled left to right starting from the bottom
row; unused pixels stay black.
"""

import os

os.environ['PYGAME_HIDE_SUPPORT_PROMPT'] = '1'

import pygame
from typing import List, Optional, Sequence, Tuple

IMAGE_SIZE = 256


def word_to_pixel(word: int) -> Tuple[int, int, int]:
    return (word & 0xFF, (word >> 8) & 0xFF, (word >> 16) & 0xFF)


def pixel_to_word(r: int, g: int, b: int) -> int:
    return r | (g << 8) | (b << 16)


def pixel_position(index: int, size: int = IMAGE_SIZE) -> Tuple[int, int]:
    """Return (x, y) of the pixel holding word `index`."""
    return index % size, size - 1 - index // size


def save_image(words: Sequence[int], path: str, size: int = IMAGE_SIZE):
    """Write words to a PNG file, whatever the suffix of `path`."""
    if len(words) > size * size:
        raise ValueError(f"{len(words)} words do not fit in a {size}x{size} image")

    surface = pygame.Surface((size, size))
    surface.fill((0, 0, 0))
    for i, word in enumerate(words):
        if not 0 <= word < 1 << 24:
            raise ValueError(f"Not a 24-bit word: {word}")
        surface.set_at(pixel_position(i, size), word_to_pixel(word))

    # pygame falls back to TGA for unknown suffixes unless given a namehint
    with open(path, 'wb') as f:
        pygame.image.save(surface, f, 'png')


def load_image(path: str, count: Optional[int] = None) -> List[int]:
    """Read words back from an image.

    Without `count`, trailing black pixels are dropped.
    """
    surface = pygame.image.load(path)
    width, height = surface.get_size()
    if width != height:
        raise ValueError(f"Image is not square: {width}x{height}")

    total = width * width if count is None else count
    if total > width * width:
        raise ValueError(f"Image holds at most {width * width} words")

    words = []
    for i in range(total):
        color = surface.get_at(pixel_position(i, width))
        words.append(pixel_to_word(color.r, color.g, color.b))

    if count is None:
        while words and words[-1] == 0:
            words.pop()
    return words
