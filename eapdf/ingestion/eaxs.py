"""EAXS vocabulary: element builders and schema validation."""
from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from lxml import etree

from eapdf.config import EAXS_SCHEMA
from eapdf.ingestion.models import BodyPart, MboxFile, Message

XM = "xm"
XM_NS = "https://github.com/StateArchivesOfNorthCarolina/tomes-eaxs-2"
NSMAP = {None: XM_NS}
XPATH_NS = {XM: XM_NS}

_INVALID_XML_CHARS = re.compile(
    r"[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]"
)


def q(name: str) -> str:
    return f"{{{XM_NS}}}{name}"


def xml_safe(text: str) -> str:
    """Drop characters XML 1.0 cannot carry (control chars, lone surrogates)."""
    return _INVALID_XML_CHARS.sub("", text)


def text_element(name: str, value: str) -> etree._Element:
    element = etree.Element(q(name), nsmap=NSMAP)
    element.text = xml_safe(value)
    return element


def _sub(parent: etree._Element, name: str, value: Optional[str]) -> None:
    if value is None or value == "":
        return
    etree.SubElement(parent, q(name)).text = xml_safe(str(value))


def _mime_fields(element: etree._Element, part: BodyPart) -> None:
    _sub(element, "ContentType", part.content_type)
    _sub(element, "Charset", part.charset)
    _sub(element, "ContentName", part.content_name)
    _sub(element, "TransferEncoding", part.transfer_encoding)
    _sub(element, "ContentId", part.content_id)
    _sub(element, "ContentDescription", part.content_description)
    _sub(element, "ContentDisposition", part.disposition)
    _sub(element, "DispositionFileName", part.disposition_filename)


def body_element(parent: etree._Element, part: BodyPart) -> etree._Element:
    if part.is_multipart:
        element = etree.SubElement(parent, q("MultiBody"))
        _mime_fields(element, part)
        _sub(element, "BoundaryString", part.boundary)
        _sub(element, "Preamble", part.preamble)
        for child in part.parts:
            body_element(element, child)
        _sub(element, "Epilogue", part.epilogue)
        return element

    element = etree.SubElement(parent, q("SingleBody"))
    _mime_fields(element, part)
    if part.content is not None:
        content = etree.SubElement(element, q("BodyContent"))
        etree.SubElement(content, q("Content")).text = xml_safe(part.content)
        _sub(content, "TransferEncoding", part.content_encoding)
    return element


def message_element(message: Message) -> etree._Element:
    element = etree.Element(q("Message"), nsmap=NSMAP)
    _sub(element, "LocalId", str(message.local_id))
    _sub(element, "MessageId", message.message_id)
    _sub(element, "MimeVersion", message.mime_version)
    if message.orig_date is not None:
        _sub(element, "OrigDate", message.orig_date.isoformat())
    _sub(element, "From", message.from_)
    _sub(element, "Sender", message.sender)
    _sub(element, "To", message.to)
    _sub(element, "Cc", message.cc)
    _sub(element, "Bcc", message.bcc)
    _sub(element, "InReplyTo", message.in_reply_to)
    _sub(element, "Subject", message.subject)
    for name, value in message.headers:
        header = etree.SubElement(element, q("Header"))
        etree.SubElement(header, q("Name")).text = xml_safe(name)
        etree.SubElement(header, q("Value")).text = xml_safe(value)
    for flag in message.status_flags:
        _sub(element, "StatusFlag", flag)
    body_element(element, message.body)
    for error_type, location in message.incomplete:
        incomplete = etree.SubElement(element, q("Incomplete"))
        _sub(incomplete, "ErrorType", error_type)
        _sub(incomplete, "ErrorLocation", location)
    return element


def mbox_element(mbox: MboxFile) -> etree._Element:
    element = etree.Element(q("Mbox"), nsmap=NSMAP)
    _sub(element, "RelPath", mbox.rel_path)
    _sub(element, "Eol", mbox.eol)
    hash_element = etree.SubElement(element, q("Hash"))
    _sub(hash_element, "Value", mbox.hash_value)
    _sub(hash_element, "Function", mbox.hash_function)
    return element


@lru_cache(maxsize=1)
def _schema() -> etree.XMLSchema:
    return etree.XMLSchema(etree.parse(str(EAXS_SCHEMA)))


def validate_eaxs(path: Path | str) -> List[str]:
    """Validate an EAXS file against the bundled schema; return the errors found."""
    schema = _schema()
    document = etree.parse(str(path))
    if schema.validate(document):
        return []
    return [f"Line {error.line}: {error.message}" for error in schema.error_log]
