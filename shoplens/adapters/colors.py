from __future__ import annotations

import unicodedata
from typing import Dict, Optional, Tuple

# Colour names seen on swatches without an explicit swatch colour.
# Turkish and Spanish storefronts label colours in their own language.
_PALETTE: Dict[str, Tuple[int, int, int]] = {
    # English
    "black": (0, 0, 0),
    "white": (255, 255, 255),
    "ecru": (240, 234, 214),
    "off white": (250, 249, 246),
    "beige": (222, 205, 176),
    "camel": (193, 154, 107),
    "brown": (121, 85, 61),
    "grey": (128, 128, 128),
    "gray": (128, 128, 128),
    "navy": (0, 0, 128),
    "navy blue": (0, 0, 128),
    "blue": (33, 82, 165),
    "light blue": (173, 216, 230),
    "green": (46, 125, 50),
    "khaki": (128, 118, 78),
    "red": (200, 30, 45),
    "burgundy": (128, 0, 32),
    "pink": (245, 182, 193),
    "purple": (110, 60, 140),
    "yellow": (245, 215, 66),
    "orange": (240, 130, 40),
    "silver": (192, 192, 192),
    "gold": (212, 175, 55),
    # Turkish
    "siyah": (0, 0, 0),
    "beyaz": (255, 255, 255),
    "kirik beyaz": (250, 249, 246),
    "ekru": (240, 234, 214),
    "bej": (222, 205, 176),
    "kahverengi": (121, 85, 61),
    "kahve": (121, 85, 61),
    "gri": (128, 128, 128),
    "lacivert": (0, 0, 128),
    "mavi": (33, 82, 165),
    "acik mavi": (173, 216, 230),
    "yesil": (46, 125, 50),
    "haki": (128, 118, 78),
    "kirmizi": (200, 30, 45),
    "bordo": (128, 0, 32),
    "pembe": (245, 182, 193),
    "mor": (110, 60, 140),
    "sari": (245, 215, 66),
    "turuncu": (240, 130, 40),
    "gumus": (192, 192, 192),
    "altin": (212, 175, 55),
    # Spanish
    "negro": (0, 0, 0),
    "blanco": (255, 255, 255),
    "crudo": (240, 234, 214),
    "marron": (121, 85, 61),
    "gris": (128, 128, 128),
    "marino": (0, 0, 128),
    "azul": (33, 82, 165),
    "verde": (46, 125, 50),
    "rojo": (200, 30, 45),
    "rosa": (245, 182, 193),
    "amarillo": (245, 215, 66),
    "naranja": (240, 130, 40),
}

# Turkish letters that NFKD does not decompose to ASCII.
_TRANSLIT = str.maketrans({"ı": "i", "İ": "i", "ş": "s", "Ş": "s", "ğ": "g", "Ğ": "g"})


def _fold(name: str) -> str:
    name = name.translate(_TRANSLIT)
    decomposed = unicodedata.normalize("NFKD", name)
    ascii_only = "".join(c for c in decomposed if not unicodedata.combining(c))
    return " ".join(ascii_only.casefold().replace("-", " ").split())


def color_to_rgb(name: Optional[str]) -> Optional[str]:
    """
    Map a colour label to an ``rgb(r, g, b)`` literal.

    Tries the whole label first, then its last word ("Dark Navy" -> "navy"),
    then its first word ("Siyah / Beyaz" -> "siyah").
    """
    if not name:
        return None
    folded = _fold(name)
    candidates = [folded]
    words = folded.replace("/", " ").split()
    if words:
        candidates.extend([words[-1], words[0]])
    for candidate in candidates:
        rgb = _PALETTE.get(candidate)
        if rgb:
            return "rgb({}, {}, {})".format(*rgb)
    return None
