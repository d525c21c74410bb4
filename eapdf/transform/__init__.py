"""Transform stages: EAXS -> XSL-FO -> PDF."""

from eapdf.transform.base import PipelineMessage, XslFoTransformer, XsltTransformer, log_messages
from eapdf.transform.fo_postprocess import FoPostProcessor
from eapdf.transform.fop import FopTransformer
from eapdf.transform.xslt import LxmlXsltTransformer

__all__ = [
    "FoPostProcessor",
    "FopTransformer",
    "LxmlXsltTransformer",
    "PipelineMessage",
    "XslFoTransformer",
    "XsltTransformer",
    "log_messages",
]
