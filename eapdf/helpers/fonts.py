"""Unicode script detection and font-family selection for the FO stage."""
from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from lxml import etree

from eapdf.config import BASE_SCRIPT, AppConfig, FontSet

logger = logging.getLogger(__name__)

# Leading word of the Unicode character name -> ISO 15924 script code.
_NAME_PREFIXES = {
    "LATIN": "Latn",
    "GREEK": "Grek",
    "COPTIC": "Copt",
    "CYRILLIC": "Cyrl",
    "ARMENIAN": "Armn",
    "HEBREW": "Hebr",
    "ARABIC": "Arab",
    "SYRIAC": "Syrc",
    "THAANA": "Thaa",
    "DEVANAGARI": "Deva",
    "BENGALI": "Beng",
    "GURMUKHI": "Guru",
    "GUJARATI": "Gujr",
    "TAMIL": "Taml",
    "TELUGU": "Telu",
    "KANNADA": "Knda",
    "MALAYALAM": "Mlym",
    "THAI": "Thai",
    "LAO": "Laoo",
    "TIBETAN": "Tibt",
    "GEORGIAN": "Geor",
    "HANGUL": "Hang",
    "ETHIOPIC": "Ethi",
    "CHEROKEE": "Cher",
    "KHMER": "Khmr",
    "MONGOLIAN": "Mong",
    "HIRAGANA": "Jpan",
    "KATAKANA": "Jpan",
    "CJK": "Hani",
    "BOPOMOFO": "Bopo",
}


@dataclass(frozen=True)
class BaseFonts:
    serif: str
    sans: str
    mono: str


@lru_cache(maxsize=4096)
def script_of(char: str) -> Optional[str]:
    """Return the script code of ``char`` or ``None`` for script-neutral characters."""
    if not char.isalpha():
        return None
    name = unicodedata.name(char, "")
    if not name:
        return None
    return _NAME_PREFIXES.get(name.split(" ", 1)[0])


def detect_scripts(text: str) -> Set[str]:
    return {script for script in map(script_of, text) if script}


def split_script_runs(text: str) -> List[Tuple[Optional[str], str]]:
    """Split ``text`` into ``(script, run)`` pairs.

    Script-neutral characters (spaces, digits, punctuation) stay with the run
    they follow; a leading neutral prefix joins the first scripted run.
    """
    runs: List[Tuple[Optional[str], str]] = []
    current_script: Optional[str] = None
    buffer: List[str] = []
    for char in text:
        script = script_of(char)
        if script is None or script == current_script or current_script is None:
            if current_script is None and script is not None:
                current_script = script
            buffer.append(char)
            continue
        runs.append((current_script, "".join(buffer)))
        current_script = script
        buffer = [char]
    if buffer:
        runs.append((current_script, "".join(buffer)))
    return runs


def iter_eaxs_text(eaxs_path: Path | str) -> Iterable[str]:
    for _, element in etree.iterparse(str(eaxs_path), events=("end",)):
        if element.text:
            yield element.text
        element.clear(keep_tail=True)


def scripts_in_eaxs(eaxs_path: Path | str) -> Set[str]:
    scripts: Set[str] = set()
    for text in iter_eaxs_text(eaxs_path):
        scripts.update(detect_scripts(text))
    return scripts


def _join_fonts(fonts: Iterable[str]) -> str:
    seen: List[str] = []
    for font in fonts:
        if font and font not in seen:
            seen.append(font)
    return ", ".join(seen)


def select_base_fonts(scripts: Iterable[str], script_fonts: Dict[str, FontSet]) -> BaseFonts:
    base = script_fonts.get(BASE_SCRIPT) or FontSet("serif", "sans-serif", "monospace")
    ordered = [base] + [
        script_fonts[script]
        for script in sorted(scripts)
        if script != BASE_SCRIPT and script in script_fonts
    ]
    return BaseFonts(
        serif=_join_fonts(fs.serif for fs in ordered),
        sans=_join_fonts(fs.sans for fs in ordered),
        mono=_join_fonts(fs.mono for fs in ordered),
    )


def get_base_fonts(eaxs_path: Path | str, settings: AppConfig) -> BaseFonts:
    """Choose serif/sans/mono font lists covering every script used in the archive."""
    scripts = scripts_in_eaxs(eaxs_path)
    missing = sorted(s for s in scripts if s not in settings.script_fonts)
    if missing:
        logger.warning("No fonts configured for script(s) %s; glyphs may be missing", ", ".join(missing))
    fonts = select_base_fonts(scripts, settings.script_fonts)
    logger.debug("Base fonts for %s: %s", eaxs_path, fonts)
    return fonts
