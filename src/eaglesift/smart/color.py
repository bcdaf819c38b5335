"""Colour rules: grayscale detection and perceptual similarity.

Similarity is judged in CIE Lab space with two distance metrics. CIE76 is the
plain Euclidean distance; CIEDE2000 corrects for hue, chroma and lightness
non-uniformities. A palette colour is similar to the target when the
CIEDE2000 distance is under the threshold and the CIE76 distance is under the
threshold plus a fixed slack.
"""
from __future__ import annotations

import re
import threading
from collections import OrderedDict
from typing import Optional, Sequence, Tuple

import numpy as np

from .constants import (
    ACCURATE_THRESHOLD,
    CHANNEL_MAX_DIFF,
    CIE76_SLACK,
    COLOR_METHODS,
    DOMINANT_MIN_RATIO,
    GRAYSCALE_CHANNEL_TOLERANCE,
    GRAYSCALE_MIN_RATIO,
    SIMILAR_THRESHOLD,
)
from .model import Palette

__all__ = [
    "RGB",
    "parse_hex",
    "ColorCache",
    "rgb_to_lab",
    "delta_e76",
    "delta_e2000",
    "color_distance",
    "is_grayscale",
    "match_color",
]

RGB = Tuple[int, int, int]

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})$")

# sRGB -> XYZ (D65)
_RGB_TO_XYZ = np.array(
    [
        [0.4124564, 0.3575761, 0.1804375],
        [0.2126729, 0.7151522, 0.0721750],
        [0.0193339, 0.1191920, 0.9503041],
    ]
)
_WHITE_D65 = np.array([95.047, 100.0, 108.883])
_EPSILON = 0.008856
_KAPPA_SLOPE = 7.787
_POW25_7 = 25.0 ** 7


def parse_hex(value: object) -> Optional[RGB]:
    """``"#ff8800"`` (or ``"f80"``) -> ``(255, 136, 0)``; ``None`` if invalid."""
    if not isinstance(value, str):
        return None
    found = _HEX_COLOR.match(value.strip())
    if not found:
        return None
    digits = found.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


class ColorCache:
    """Bounded, thread-safe memo of hex literal -> RGB.

    Entries depend only on the literal, so concurrent readers may share one
    cache. The least recently used literal is evicted once ``maxsize`` is hit.
    """

    _MISSING = object()

    def __init__(self, maxsize: int = 256) -> None:
        self._maxsize = max(1, int(maxsize))
        self._entries: "OrderedDict[str, Optional[RGB]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, value: object) -> Optional[RGB]:
        if not isinstance(value, str):
            return None
        with self._lock:
            cached = self._entries.get(value, self._MISSING)
            if cached is not self._MISSING:
                self._entries.move_to_end(value)
                return cached  # type: ignore[return-value]
        rgb = parse_hex(value)
        with self._lock:
            self._entries[value] = rgb
            self._entries.move_to_end(value)
            while len(self._entries) > self._maxsize:
                self._entries.popitem(last=False)
        return rgb

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, value: object) -> bool:
        with self._lock:
            return value in self._entries

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def rgb_to_lab(rgb: Sequence[float]) -> np.ndarray:
    """Convert 8-bit sRGB (last axis of length 3) to CIE Lab under D65."""
    channels = np.asarray(rgb, dtype=float) / 255.0
    linear = np.where(channels > 0.04045, ((channels + 0.055) / 1.055) ** 2.4, channels / 12.92)
    xyz = linear @ _RGB_TO_XYZ.T * 100.0
    scaled = xyz / _WHITE_D65
    f = np.where(scaled > _EPSILON, np.cbrt(scaled), _KAPPA_SLOPE * scaled + 16.0 / 116.0)
    fx, fy, fz = f[..., 0], f[..., 1], f[..., 2]
    return np.stack([116.0 * fy - 16.0, 500.0 * (fx - fy), 200.0 * (fy - fz)], axis=-1)


def delta_e76(lab1: Sequence[float], lab2: Sequence[float]) -> float:
    diff = np.asarray(lab1, dtype=float) - np.asarray(lab2, dtype=float)
    return float(np.sqrt(np.sum(diff ** 2, axis=-1)))


def delta_e2000(lab1: Sequence[float], lab2: Sequence[float]) -> float:
    """CIEDE2000 colour difference with unit weighting factors."""
    L1, a1, b1 = (float(v) for v in lab1)
    L2, a2, b2 = (float(v) for v in lab2)

    c_bar = (np.hypot(a1, b1) + np.hypot(a2, b2)) / 2.0
    g = 0.5 * (1.0 - np.sqrt(c_bar ** 7 / (c_bar ** 7 + _POW25_7)))
    a1p, a2p = (1.0 + g) * a1, (1.0 + g) * a2
    c1p, c2p = np.hypot(a1p, b1), np.hypot(a2p, b2)
    h1p = np.degrees(np.arctan2(b1, a1p)) % 360.0 if c1p else 0.0
    h2p = np.degrees(np.arctan2(b2, a2p)) % 360.0 if c2p else 0.0

    delta_lp = L2 - L1
    delta_cp = c2p - c1p
    chroma_product = c1p * c2p
    if chroma_product == 0:
        delta_hp = 0.0
    else:
        delta_hp = h2p - h1p
        if delta_hp > 180.0:
            delta_hp -= 360.0
        elif delta_hp < -180.0:
            delta_hp += 360.0
    delta_big_hp = 2.0 * np.sqrt(chroma_product) * np.sin(np.radians(delta_hp) / 2.0)

    l_bar_p = (L1 + L2) / 2.0
    c_bar_p = (c1p + c2p) / 2.0
    if chroma_product == 0:
        h_bar_p = h1p + h2p
    elif abs(h1p - h2p) <= 180.0:
        h_bar_p = (h1p + h2p) / 2.0
    elif h1p + h2p < 360.0:
        h_bar_p = (h1p + h2p + 360.0) / 2.0
    else:
        h_bar_p = (h1p + h2p - 360.0) / 2.0

    t = (
        1.0
        - 0.17 * np.cos(np.radians(h_bar_p - 30.0))
        + 0.24 * np.cos(np.radians(2.0 * h_bar_p))
        + 0.32 * np.cos(np.radians(3.0 * h_bar_p + 6.0))
        - 0.20 * np.cos(np.radians(4.0 * h_bar_p - 63.0))
    )
    delta_theta = 30.0 * np.exp(-(((h_bar_p - 275.0) / 25.0) ** 2))
    r_c = 2.0 * np.sqrt(c_bar_p ** 7 / (c_bar_p ** 7 + _POW25_7))
    s_l = 1.0 + (0.015 * (l_bar_p - 50.0) ** 2) / np.sqrt(20.0 + (l_bar_p - 50.0) ** 2)
    s_c = 1.0 + 0.045 * c_bar_p
    s_h = 1.0 + 0.015 * c_bar_p * t
    r_t = -np.sin(np.radians(2.0 * delta_theta)) * r_c

    term_l = delta_lp / s_l
    term_c = delta_cp / s_c
    term_h = delta_big_hp / s_h
    return float(np.sqrt(term_l ** 2 + term_c ** 2 + term_h ** 2 + r_t * term_c * term_h))


def color_distance(rgb1: Sequence[int], rgb2: Sequence[int]) -> Tuple[float, float]:
    """Return ``(cie76, ciede2000)`` between two sRGB colours."""
    labs = rgb_to_lab([rgb1, rgb2])
    return delta_e76(labs[0], labs[1]), delta_e2000(labs[0], labs[1])


def is_grayscale(palettes: Sequence[Palette]) -> bool:
    if not palettes:
        return False
    for palette in palettes:
        if palette.ratio < GRAYSCALE_MIN_RATIO:
            continue
        r, g, b = palette.color
        if (
            abs(r - g) >= GRAYSCALE_CHANNEL_TOLERANCE
            or abs(r - b) >= GRAYSCALE_CHANNEL_TOLERANCE
            or abs(g - b) >= GRAYSCALE_CHANNEL_TOLERANCE
        ):
            return False
    return True


def match_color(palettes: Sequence[Palette], target: Optional[RGB], method: str) -> bool:
    """Colour rule against an item palette sorted by descending ratio.

    Checks run in a fixed order: a dominant colour too small to count, any
    channel too far from the target, an exact hit in the two leading colours,
    then the Lab distance test on each leading colour large enough to count.
    """
    if method not in COLOR_METHODS:
        return False
    if method == "grayscale":
        return is_grayscale(palettes)
    if target is None or not palettes:
        return False

    dominant = palettes[0]
    if dominant.ratio < DOMINANT_MIN_RATIO:
        return False
    if any(abs(c - t) > CHANNEL_MAX_DIFF for c, t in zip(dominant.color, target)):
        return False

    leading = palettes[:2]
    if any(tuple(p.color) == tuple(target) for p in leading):
        return True

    threshold = ACCURATE_THRESHOLD if method == "accuracy" else SIMILAR_THRESHOLD
    for palette in leading:
        if palette.ratio <= DOMINANT_MIN_RATIO:
            continue
        d76, d2000 = color_distance(target, palette.color)
        if d2000 < threshold and d76 < threshold + CIE76_SLACK:
            return True
    return False
