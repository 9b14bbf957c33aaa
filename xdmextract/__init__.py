# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
xdmextract - XDM depth photo extractor

Reads JPEG files carrying XDM (eXtensible Device Metadata) content:
reassembles standard and extended XMP split across APP1 segments, and
decodes the color images and depth maps stored in the extended XMP as
base64 attributes.

Copyright 2025 DNAi inc.
"""

__version__ = "0.1.0"
__author__ = "DNAi inc."

from xdmextract.core import ExtractionConfig, ExtractionSummary, XDMExtractor
from xdmextract.exceptions import (
    XDMExtractError,
    FileAccessError,
    MalformedSegmentError,
    GuidNotFoundError,
    Base64DecodeError,
    XmlParseError,
)
from xdmextract.segment_scanner import (
    Namespace,
    ReassemblyResult,
    classify,
    find_marker,
    locate_guid_end,
    reassemble,
)
from xdmextract.attribute_processor import (
    AttributeEvent,
    AttributeProcessor,
    iter_attributes,
    process_attributes,
)
from xdmextract.output_paths import OutputPaths

__all__ = [
    "XDMExtractor",
    "ExtractionConfig",
    "ExtractionSummary",
    "XDMExtractError",
    "FileAccessError",
    "MalformedSegmentError",
    "GuidNotFoundError",
    "Base64DecodeError",
    "XmlParseError",
    "Namespace",
    "ReassemblyResult",
    "classify",
    "find_marker",
    "locate_guid_end",
    "reassemble",
    "AttributeEvent",
    "AttributeProcessor",
    "iter_attributes",
    "process_attributes",
    "OutputPaths",
]
