"""Attach a DPart tree with XMP metadata to a rendered PDF using pypdf."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple

from pypdf import PdfReader, PdfWriter
from pypdf.generic import (
    ArrayObject,
    DecodedStreamObject,
    DictionaryObject,
    IndirectObject,
    NameObject,
    TextStringObject,
)

from eapdf.pdf.dparts import DPartInternalNode, DPartLeafNode, DPartNode

MESSAGE_DESTINATION_PREFIX = "MESSAGE_"


class DocumentEnhancer(Protocol):
    def add_xmp_to_dparts(self, root: DPartInternalNode) -> None:
        ...

    def __enter__(self) -> "DocumentEnhancer":
        ...

    def __exit__(self, exc_type, exc, traceback) -> None:
        ...


class DocumentEnhancerFactory(Protocol):
    def create(
        self,
        logger: logging.Logger,
        input_path: Path | str,
        output_path: Path | str,
    ) -> DocumentEnhancer:
        ...


class PdfEnhancer:
    """Edit ``input_path`` in memory and write the result to ``output_path`` on close.

    Use as a context manager: the output is written only when the block exits
    without an exception, and the reader/writer are released either way.
    """

    def __init__(self, logger: logging.Logger, input_path: Path | str, output_path: Path | str) -> None:
        self.logger = logger
        self.input_path = Path(input_path)
        self.output_path = Path(output_path)
        self._reader: Optional[PdfReader] = PdfReader(str(self.input_path))
        self._writer: Optional[PdfWriter] = PdfWriter(clone_from=self._reader)
        # Last page covered by a message so far; empty folders point here.
        self._last_page = 0

    def __enter__(self) -> "PdfEnhancer":
        return self

    def __exit__(self, exc_type, exc, traceback) -> None:
        self.close(save=exc_type is None)

    @property
    def reader(self) -> PdfReader:
        if self._reader is None:
            raise RuntimeError("PdfEnhancer is closed")
        return self._reader

    @property
    def writer(self) -> PdfWriter:
        if self._writer is None:
            raise RuntimeError("PdfEnhancer is closed")
        return self._writer

    def close(self, save: bool = True) -> None:
        if self._writer is None:
            return
        try:
            if save:
                self._writer.write(str(self.output_path))
                self.logger.debug("Wrote enhanced PDF %s", self.output_path)
        finally:
            self._writer.close()
            self._writer = None
            self._reader = None

    def add_xmp_to_dparts(self, root: DPartInternalNode) -> None:
        writer = self.writer
        pages = self._leaf_pages(root)
        self._last_page = 0
        dpart_root = DictionaryObject({NameObject("/Type"): NameObject("/DPartRoot")})
        dpart_root_ref = writer._add_object(dpart_root)
        dpart_root[NameObject("/DPartRootNode")] = self._add_node(root, dpart_root_ref, pages)
        writer.root_object[NameObject("/DPartRoot")] = dpart_root_ref
        self.logger.info(
            "Attached DPart metadata for %s message(s) to %s",
            len(pages),
            self.output_path,
        )

    def _leaf_pages(self, root: DPartInternalNode) -> Dict[str, Tuple[int, int]]:
        """Resolve each message's page range from the MESSAGE_<LocalId> destinations."""
        reader = self.reader
        destinations = reader.named_destinations
        page_count = len(reader.pages)
        starts: List[Tuple[str, int]] = []
        previous = 0
        for leaf in root.iter_leaves():
            destination = destinations.get(f"{MESSAGE_DESTINATION_PREFIX}{leaf.local_id}")
            page = reader.get_destination_page_number(destination) if destination is not None else None
            if page is None or page < 0:
                self.logger.warning(
                    "No destination for message %s in %s; assuming page %s",
                    leaf.local_id,
                    self.input_path,
                    previous + 1,
                )
                page = previous
            starts.append((leaf.local_id, page))
            previous = page

        ranges: Dict[str, Tuple[int, int]] = {}
        for index, (local_id, start) in enumerate(starts):
            next_start = starts[index + 1][1] if index + 1 < len(starts) else page_count
            end = min(max(start, next_start - 1), page_count - 1)
            ranges[local_id] = (start, end)
        return ranges

    def _metadata_stream(self, xmp: str) -> IndirectObject:
        stream = DecodedStreamObject()
        stream.set_data(xmp.encode("utf-8"))
        stream[NameObject("/Type")] = NameObject("/Metadata")
        stream[NameObject("/Subtype")] = NameObject("/XML")
        return self.writer._add_object(stream)

    def _add_node(
        self,
        node: DPartNode,
        parent_ref: IndirectObject,
        pages: Dict[str, Tuple[int, int]],
    ) -> IndirectObject:
        writer = self.writer
        dpart = DictionaryObject(
            {
                NameObject("/Type"): NameObject("/DPart"),
                NameObject("/Parent"): parent_ref,
            }
        )
        ref = writer._add_object(dpart)
        if isinstance(node, DPartLeafNode):
            start, end = pages[node.local_id]
            dpart[NameObject("/Start")] = writer.pages[start].indirect_reference
            dpart[NameObject("/End")] = writer.pages[end].indirect_reference
            self._last_page = end
            dpart[NameObject("/DPM")] = DictionaryObject(
                {NameObject("/LocalId"): TextStringObject(node.local_id)}
            )
            metadata = node.xmp
        else:
            children = ArrayObject(self._add_node(child, ref, pages) for child in node.children)
            if children:
                dpart[NameObject("/DParts")] = ArrayObject([children])
            else:
                # A DPart needs either children or a page range.
                page = writer.pages[self._last_page].indirect_reference
                dpart[NameObject("/Start")] = page
                dpart[NameObject("/End")] = page
            dpart[NameObject("/DPM")] = DictionaryObject(
                {NameObject("/Name"): TextStringObject(node.name)}
            )
            metadata = node.dpm_xmp
        if metadata:
            dpart[NameObject("/Metadata")] = self._metadata_stream(metadata)
        return ref


class PdfEnhancerFactory:
    def create(
        self,
        logger: logging.Logger,
        input_path: Path | str,
        output_path: Path | str,
    ) -> PdfEnhancer:
        return PdfEnhancer(logger, input_path, output_path)
