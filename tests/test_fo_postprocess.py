from __future__ import annotations

import pytest
from lxml import etree

from eapdf.config import AppConfig, FontSet, default_script_fonts
from eapdf.errors import PostProcessingError, TransformError
from eapdf.transform.fo_postprocess import FO_NS, ZWNJ, FoPostProcessor

CYRILLIC = "\u041c\u0438\u0440"

FO_DOCUMENT = f"""<?xml version="1.0" encoding="UTF-8"?>
<fo:root xmlns:fo="{FO_NS}" font-family="serif">
  <fo:declarations><fo:title>office files</fo:title></fo:declarations>
  <fo:page-sequence master-reference="page">
    <fo:flow flow-name="xsl-region-body">
      <fo:block>office affiliation <fo:inline>fifty</fo:inline> after</fo:block>
      <fo:block font-family="monospace">Hello {CYRILLIC} world</fo:block>
    </fo:flow>
  </fo:page-sequence>
</fo:root>
"""


@pytest.fixture
def fo_file(tmp_path):
    path = tmp_path / "account.fo"
    path.write_text(FO_DOCUMENT, encoding="utf-8")
    return path


def _blocks(path):
    return list(etree.parse(str(path)).getroot().iter(f"{{{FO_NS}}}block"))


def test_prevent_ligatures_inserts_zwnj(fo_file):
    processor = FoPostProcessor(fo_file)
    changed = processor.prevent_ligatures()
    processor.save()

    first = _blocks(fo_file)[0]
    assert first.text == f"of{ZWNJ}f{ZWNJ}ice af{ZWNJ}f{ZWNJ}iliation "
    assert first[0].text == f"f{ZWNJ}if{ZWNJ}ty"
    assert first[0].tail == f" af{ZWNJ}ter"
    assert changed == 7


def test_declarations_are_left_alone(fo_file):
    processor = FoPostProcessor(fo_file)
    processor.prevent_ligatures()
    processor.save()
    title = etree.parse(str(fo_file)).getroot().find(f".//{{{FO_NS}}}title")
    assert title.text == "office files"


def test_wrap_languages_uses_inherited_family(fo_file):
    fonts = default_script_fonts()
    fonts["Cyrl"] = FontSet("PT Serif", "PT Sans", "PT Mono")
    processor = FoPostProcessor(fo_file)
    wrapped = processor.wrap_languages_in_font_family(AppConfig(script_fonts=fonts))
    processor.save()

    block = _blocks(fo_file)[1]
    assert wrapped == 1
    assert block.text == "Hello "
    inline = block[0]
    assert inline.tag == f"{{{FO_NS}}}inline"
    assert inline.get("font-family") == "PT Mono"
    assert inline.text == f"{CYRILLIC} "
    assert inline.tail == "world"


def test_wrap_languages_is_noop_without_extra_fonts(fo_file):
    processor = FoPostProcessor(fo_file)
    assert processor.wrap_languages_in_font_family(AppConfig()) == 0


def test_unparseable_fo_raises_and_keeps_file(tmp_path):
    path = tmp_path / "broken.fo"
    path.write_text("<fo:root", encoding="utf-8")
    with pytest.raises(PostProcessingError) as excinfo:
        FoPostProcessor(path)
    assert isinstance(excinfo.value, TransformError)
    assert path.read_text(encoding="utf-8") == "<fo:root"


def test_non_fo_document_is_rejected(tmp_path):
    path = tmp_path / "other.fo"
    path.write_text("<html/>", encoding="utf-8")
    with pytest.raises(PostProcessingError):
        FoPostProcessor(path)
