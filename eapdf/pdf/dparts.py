"""DPart metadata tree mirroring an EAXS account's folders and messages."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from lxml import etree

from eapdf.errors import MetadataTreeError
from eapdf.ingestion.eaxs import XM_NS

logger = logging.getLogger(__name__)

EABCC = "eabcc"
EABCC_NS = "http://emailarchivesgrant.library.illinois.edu/ns/"
X_NS = "adobe:ns:meta/"

XPACKET_BEGIN = '<?xpacket begin="\ufeff" id="W5M0MpCehiHzreSzNTczkc9d"?>'
XPACKET_END = '<?xpacket end="w"?>'


def _xm(name: str) -> str:
    return f"{{{XM_NS}}}{name}"


@dataclass
class DPartLeafNode:
    """One message: its LocalId and the XMP packet read from the fragment file."""

    local_id: str
    xmp_path: Path
    xmp: str
    parent: Optional["DPartInternalNode"] = field(default=None, repr=False, compare=False)


@dataclass
class DPartInternalNode:
    """The account root or one folder."""

    name: str = ""
    children: List["DPartNode"] = field(default_factory=list)
    dpm_xmp: Optional[str] = None
    parent: Optional["DPartInternalNode"] = field(default=None, repr=False, compare=False)

    def add(self, node: "DPartNode") -> "DPartNode":
        node.parent = self
        self.children.append(node)
        return node

    def iter_leaves(self) -> Iterator[DPartLeafNode]:
        for child in self.children:
            if isinstance(child, DPartLeafNode):
                yield child
            else:
                yield from child.iter_leaves()

    def iter_internal(self) -> Iterator["DPartInternalNode"]:
        yield self
        for child in self.children:
            if isinstance(child, DPartInternalNode):
                yield from child.iter_internal()


DPartNode = Union[DPartInternalNode, DPartLeafNode]


def count_nodes(root: DPartInternalNode) -> tuple[int, int]:
    """Return (internal node count, leaf count), the root included."""
    return sum(1 for _ in root.iter_internal()), sum(1 for _ in root.iter_leaves())


def wrap_xmp_packet(xmpmeta: str) -> str:
    return f"{XPACKET_BEGIN}\n{xmpmeta}\n{XPACKET_END}"


def load_xmp_fragments(xmp_fragment_path: Path | str) -> Dict[str, str]:
    """Read the per-message XMP file into ``{LocalId: xmp packet}``.

    Fragments appear as ``eabcc:DPart[@LocalId]`` elements each holding one
    ``x:xmpmeta`` element.
    """
    document = etree.parse(str(xmp_fragment_path))
    fragments: Dict[str, str] = {}
    for dpart in document.iter(f"{{{EABCC_NS}}}DPart"):
        local_id = (dpart.get("LocalId") or "").strip()
        xmpmeta = dpart.find(f"{{{X_NS}}}xmpmeta")
        if not local_id or xmpmeta is None:
            raise MetadataTreeError(f"Malformed XMP fragment in {xmp_fragment_path} (LocalId={local_id!r})")
        if local_id in fragments:
            raise MetadataTreeError(f"Duplicate XMP fragment for message {local_id}")
        fragments[local_id] = wrap_xmp_packet(etree.tostring(xmpmeta, encoding="unicode"))
    return fragments


def _build_folder(
    folder: etree._Element,
    node: DPartInternalNode,
    fragments: Dict[str, str],
    xmp_fragment_path: Path,
) -> None:
    for message in folder.iterfind(_xm("Message")):
        local_id = (message.findtext(_xm("LocalId")) or "").strip()
        xmp = fragments.pop(local_id, None)
        if xmp is None:
            raise MetadataTreeError(f"No XMP metadata for message {local_id} in {xmp_fragment_path}")
        node.add(DPartLeafNode(local_id=local_id, xmp_path=xmp_fragment_path, xmp=xmp))
    for child in folder.iterfind(_xm("Folder")):
        child_node = DPartInternalNode(name=child.findtext(_xm("Name")) or "")
        node.add(child_node)
        _build_folder(child, child_node, fragments, xmp_fragment_path)


def build_dpart_tree(eaxs_path: Path | str, xmp_fragment_path: Path | str) -> DPartInternalNode:
    """Build the DPart tree for an EAXS file, depth-first in document order.

    A folder's messages come before its sub-folders, as in EAXS. Every
    message must have exactly one fragment and vice versa.
    """
    xmp_fragment_path = Path(xmp_fragment_path)
    fragments = load_xmp_fragments(xmp_fragment_path)
    account = etree.parse(str(eaxs_path)).getroot()
    if account.tag != _xm("Account"):
        raise MetadataTreeError(f"{eaxs_path} is not an EAXS Account document")

    root = DPartInternalNode(name=account.findtext(_xm("GlobalId")) or "")
    for folder in account.iterfind(_xm("Folder")):
        folder_node = DPartInternalNode(name=folder.findtext(_xm("Name")) or "")
        root.add(folder_node)
        _build_folder(folder, folder_node, fragments, xmp_fragment_path)

    if fragments:
        raise MetadataTreeError(
            f"XMP fragments without a matching message: {', '.join(sorted(fragments))}"
        )
    internal, leaves = count_nodes(root)
    logger.debug("Built DPart tree for %s: %s folder node(s), %s message node(s)", eaxs_path, internal - 1, leaves)
    return root
