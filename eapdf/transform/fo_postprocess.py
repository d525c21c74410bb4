"""In-place edits of the XSL-FO artifact between the two transform stages."""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from lxml import etree

from eapdf.config import BASE_SCRIPT, AppConfig, FontSet
from eapdf.errors import PostProcessingError
from eapdf.helpers.fonts import split_script_runs

logger = logging.getLogger(__name__)

FO_NS = "http://www.w3.org/1999/XSL/Format"
ZWNJ = "\u200c"

# Characters that commonly form a ligature with a preceding "f".
_LIGATURE_PATTERN = re.compile(r"f(?=[filt])")

_SKIPPED = {f"{{{FO_NS}}}declarations", f"{{{FO_NS}}}instream-foreign-object"}


def _fo(name: str) -> str:
    return f"{{{FO_NS}}}{name}"


class FoPostProcessor:
    """Load an FO file, rewrite it in memory and save it atomically.

    Nothing is written to disk until :meth:`save`; a failure at any point
    leaves the original file as it was.
    """

    def __init__(self, fo_path: Path | str) -> None:
        self.fo_path = Path(fo_path)
        try:
            self.tree = etree.parse(str(self.fo_path))
        except (OSError, etree.XMLSyntaxError) as exc:
            raise PostProcessingError(f"Cannot load FO file {self.fo_path}: {exc}") from exc
        self.root = self.tree.getroot()
        if self.root.tag != _fo("root"):
            raise PostProcessingError(f"{self.fo_path} is not an XSL-FO document")

    def _text_slots(self) -> List[Tuple[etree._Element, bool]]:
        """Return (element, is_tail) for every FO text node outside skipped subtrees."""
        slots: List[Tuple[etree._Element, bool]] = []

        def visit(element: etree._Element) -> None:
            if element.tag in _SKIPPED or not isinstance(element.tag, str):
                return
            if not element.tag.startswith(f"{{{FO_NS}}}"):
                return
            if element.text:
                slots.append((element, False))
            for child in element:
                visit(child)
                if child.tail:
                    slots.append((child, True))

        visit(self.root)
        return slots

    def prevent_ligatures(self) -> int:
        """Insert ZERO WIDTH NON-JOINER where "f" would form a ligature."""
        changed = 0
        for element, is_tail in self._text_slots():
            text = element.tail if is_tail else element.text
            updated, count = _LIGATURE_PATTERN.subn(f"f{ZWNJ}", text)
            if not count:
                continue
            changed += count
            if is_tail:
                element.tail = updated
            else:
                element.text = updated
        logger.debug("Prevented %s ligature(s) in %s", changed, self.fo_path)
        return changed

    def wrap_languages_in_font_family(self, settings: AppConfig) -> int:
        """Wrap runs of non-base scripts in ``fo:inline`` with that script's fonts."""
        script_fonts = {
            script: fonts
            for script, fonts in settings.script_fonts.items()
            if script != BASE_SCRIPT
        }
        if not script_fonts:
            return 0
        families = _families(settings.script_fonts)
        wrapped = 0
        for element, is_tail in self._text_slots():
            text = element.tail if is_tail else element.text
            runs = split_script_runs(text)
            if not any(script in script_fonts for script, _ in runs):
                continue
            context = element.getparent() if is_tail else element
            family = _generic_family(context, families)
            leading, inlines = _build_runs(runs, script_fonts, family)
            wrapped += len(inlines)
            if is_tail:
                element.tail = leading
                parent = element.getparent()
                index = parent.index(element)
                for offset, inline in enumerate(inlines, start=1):
                    parent.insert(index + offset, inline)
            else:
                element.text = leading
                for offset, inline in enumerate(inlines):
                    element.insert(offset, inline)
        logger.debug("Wrapped %s script run(s) in %s", wrapped, self.fo_path)
        return wrapped

    def save(self) -> None:
        temp_path = self.fo_path.with_name(f"{self.fo_path.name}.tmp")
        try:
            self.tree.write(str(temp_path), encoding="utf-8", xml_declaration=True)
            os.replace(temp_path, self.fo_path)
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise PostProcessingError(f"Cannot save FO file {self.fo_path}: {exc}") from exc


def _families(script_fonts: Dict[str, FontSet]) -> Dict[str, set]:
    families: Dict[str, set] = {"serif": set(), "sans": set(), "mono": set()}
    for fonts in script_fonts.values():
        families["serif"].add(fonts.serif.lower())
        families["sans"].add(fonts.sans.lower())
        families["mono"].add(fonts.mono.lower())
    families["sans"].update({"sans-serif", "sans"})
    families["mono"].update({"monospace"})
    return families


def _generic_family(element: Optional[etree._Element], families: Dict[str, set]) -> str:
    """Classify the nearest inherited font-family as serif, sans or mono."""
    while element is not None:
        value = element.get("font-family")
        if value:
            names = [name.strip().strip("'\"").lower() for name in value.split(",")]
            for name in names:
                if name in families["mono"]:
                    return "mono"
                if name in families["sans"]:
                    return "sans"
                if name in families["serif"]:
                    return "serif"
            return "serif"
        element = element.getparent()
    return "serif"


def _build_runs(
    runs: List[Tuple[Optional[str], str]],
    script_fonts: Dict[str, FontSet],
    family: str,
) -> Tuple[str, List[etree._Element]]:
    """Turn script runs into leading text plus wrapped ``fo:inline`` elements.

    Unwrapped runs after a wrapped one become the tail of the preceding inline.
    """
    leading = ""
    inlines: List[etree._Element] = []
    for script, text in runs:
        fonts = script_fonts.get(script) if script else None
        if fonts is None:
            if inlines:
                inlines[-1].tail = (inlines[-1].tail or "") + text
            else:
                leading += text
            continue
        inline = etree.Element(_fo("inline"), nsmap={"fo": FO_NS})
        inline.set("font-family", getattr(fonts, family))
        inline.text = text
        inlines.append(inline)
    return leading, inlines
