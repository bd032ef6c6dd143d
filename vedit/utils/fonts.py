"""
Font lookup for text overlays.

drawtext needs a font file path; this module resolves a family name to a
file in the project fonts directory or the usual system locations.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from PIL import ImageFont

logger = logging.getLogger(__name__)

# Default fonts directory in the project
DEFAULT_FONTS_DIR = Path(__file__).parent.parent.parent / "fonts"

FONT_SUFFIXES = ('.ttf', '.otf', '.ttc')

SYSTEM_FONT_DIRS = [
    Path("/System/Library/Fonts"),
    Path("/System/Library/Fonts/Supplemental"),
    Path.home() / "Library/Fonts",
    Path("/usr/share/fonts/truetype"),
    Path("/usr/share/fonts"),
    Path("C:/Windows/Fonts"),
]


def normalize_font_name(font_name: str) -> str:
    """Normalize font name for lookup."""
    return font_name.lower().strip()


def is_loadable_font(path: Path) -> bool:
    """Check that Pillow can open the font file."""
    try:
        ImageFont.truetype(str(path), size=12)
        return True
    except OSError:
        logger.debug(f"Font file could not be loaded: {path}")
        return False


def find_font_file(font_name: str, search_dirs: Optional[list[Path]] = None) -> Optional[Path]:
    """
    Find a font file by name in various locations.

    Args:
        font_name: Font name or path
        search_dirs: Additional directories to search

    Returns:
        Path to font file if found, None otherwise
    """
    font_path = Path(font_name)
    if font_path.exists() and font_path.suffix.lower() in FONT_SUFFIXES:
        return font_path

    normalized = normalize_font_name(font_name)
    base = normalized.replace(" ", "")
    patterns = [
        f"{font_name}*.ttf",
        f"{font_name}*.otf",
        f"{base}*.ttf",
        f"{base}*.otf",
        f"{font_name.replace(' ', '-')}*.ttf",
        f"{font_name.replace(' ', '-')}*.otf",
    ]

    # Project fonts first, then caller-supplied, then system directories
    dirs = [DEFAULT_FONTS_DIR] + list(search_dirs or []) + SYSTEM_FONT_DIRS

    for search_dir in dirs:
        if not search_dir.exists():
            continue
        for pattern in patterns:
            matches = sorted(search_dir.rglob(pattern))
            if not matches:
                continue
            for match in matches:
                if 'regular' in match.stem.lower() or match.stem.lower() == base:
                    return match
            return matches[0]

    return None


@lru_cache(maxsize=32)
def resolve_font(
    font_name: Optional[str],
    font_file: Optional[Path] = None,
) -> Optional[Path]:
    """
    Resolve the font file to hand to drawtext.

    An explicitly configured font file wins; otherwise the family name is
    searched for. Returns None when nothing usable is found, in which case
    the renderer falls back to its own default font.
    """
    if font_file is not None and Path(font_file).exists():
        return Path(font_file)

    if not font_name:
        return None

    path = find_font_file(font_name)
    if path and is_loadable_font(path):
        logger.debug(f"Found font '{font_name}' at: {path}")
        return path

    logger.debug(f"Font '{font_name}' not found locally")
    return None
