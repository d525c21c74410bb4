"""EA-PDF metadata: DPart trees, the pypdf enhancer and output reconciliation."""

from eapdf.pdf.dparts import (
    DPartInternalNode,
    DPartLeafNode,
    build_dpart_tree,
    count_nodes,
    load_xmp_fragments,
)
from eapdf.pdf.enhancer import PdfEnhancer, PdfEnhancerFactory
from eapdf.pdf.reconcile import reconcile_output

__all__ = [
    "DPartInternalNode",
    "DPartLeafNode",
    "PdfEnhancer",
    "PdfEnhancerFactory",
    "build_dpart_tree",
    "count_nodes",
    "load_xmp_fragments",
    "reconcile_output",
]
