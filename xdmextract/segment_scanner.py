# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
APP1 segment scanner for standard and extended XMP

This module walks a raw JPEG buffer marker by marker, recognizes APP1
segments carrying standard XMP (http://ns.adobe.com/xap/1.0/) or extended
XMP (http://ns.adobe.com/xmp/extension/), and reassembles their payloads
into two byte streams.

Segment layout, as written by XDM cameras:

    FF E1 | length (2, big-endian) | namespace URI | 00 | payload

The length field counts itself, the URI, the terminator and the payload,
but not the two marker bytes.

Copyright 2025 DNAi inc.
"""

import logging
import struct
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional

from xdmextract.exceptions import GuidNotFoundError, MalformedSegmentError

logger = logging.getLogger(__name__)

# JPEG APP1 marker
APP1_MARKER = b'\xff\xe1'

# Adobe XMP namespace URIs
STANDARD_XMP_NAMESPACE = "http://ns.adobe.com/xap/1.0/"
EXTENDED_XMP_NAMESPACE = "http://ns.adobe.com/xmp/extension/"

# Length field (2) plus the null byte after the namespace URI
SEGMENT_OVERHEAD = 2 + 1

# Key in the standard packet that announces extended XMP; the GUID follows
# in quotes.
GUID_KEY = "xmpNote:HasExtendedXMP="
GUID_LENGTH = 32

# Adobe XMP Specification Part 3, 1.1.3.1: a 32-character hex MD5 GUID
# opens the standard payload region copied out of the segment.
STANDARD_GUID_SKIP = 32

# Adobe XMP Specification Part 3, 1.1.3.1: every extended chunk starts with
# GUID (32) + full extended length (4, big-endian) + chunk offset (4).
EXTENDED_HEADER_SKIP = 40


class Namespace(Enum):
    """XMP variant identified by the URI following an APP1 length field."""
    STANDARD = STANDARD_XMP_NAMESPACE
    EXTENDED = EXTENDED_XMP_NAMESPACE
    NONE = ""

    @property
    def identifier(self) -> bytes:
        return self.value.encode('ascii')


@dataclass
class SegmentMatch:
    marker_offset: int
    namespace: Namespace


@dataclass
class SegmentBounds:
    payload_start: int
    payload_length: int

    @property
    def payload_end(self) -> int:
        return self.payload_start + self.payload_length


@dataclass
class SegmentRecord:
    """Diagnostics for one APP1 segment consumed by the reassembler."""
    marker_offset: int
    namespace: Namespace
    declared_length: int
    appended: int
    guid: Optional[str] = None
    # Extended segments only: values from the 40-byte chunk header
    full_length: Optional[int] = None
    chunk_offset: Optional[int] = None


@dataclass
class ReassemblyResult:
    """
    Output of one reassembly pass.

    Unpacks as ``(standard, extended)``.
    """
    standard: bytes = b''
    extended: bytes = b''
    extended_length: int = 0
    segments: List[SegmentRecord] = field(default_factory=list)
    skipped: List[MalformedSegmentError] = field(default_factory=list)
    referenced_guid: Optional[str] = None

    def __iter__(self) -> Iterator[bytes]:
        return iter((self.standard, self.extended))


def find_marker(buffer: bytes, start: int = 0) -> int:
    """
    Find the next APP1 marker.

    Args:
        buffer: Raw JPEG bytes
        start: Offset to start searching from

    Returns:
        Offset of the 0xFF byte of the first 0xFFE1 pair at or after
        ``start``, or -1 if there is none
    """
    return buffer.find(APP1_MARKER, max(start, 0))


def classify(buffer: bytes, marker_offset: int) -> Namespace:
    """
    Identify the XMP namespace of the segment at ``marker_offset``.

    The URI is read 4 bytes after the marker (past the marker itself and the
    length field) and must match byte for byte over its full length.

    Args:
        buffer: Raw JPEG bytes
        marker_offset: Offset of an APP1 marker

    Returns:
        Namespace.STANDARD, Namespace.EXTENDED, or Namespace.NONE
    """
    header_start = marker_offset + 4
    for namespace in (Namespace.STANDARD, Namespace.EXTENDED):
        identifier = namespace.identifier
        if buffer[header_start:header_start + len(identifier)] == identifier:
            return namespace
    return Namespace.NONE


def declared_length(buffer: bytes, marker_offset: int) -> int:
    """Read the big-endian segment length following the marker."""
    if marker_offset + 4 > len(buffer):
        raise MalformedSegmentError(
            f"Segment at offset {marker_offset}: length field is truncated",
            offset=marker_offset
        )
    return struct.unpack('>H', buffer[marker_offset + 2:marker_offset + 4])[0]


def segment_bounds(buffer: bytes, marker_offset: int, namespace: Namespace) -> SegmentBounds:
    """
    Compute where a matched segment's payload starts and how long it is.

    Args:
        buffer: Raw JPEG bytes
        marker_offset: Offset of the APP1 marker
        namespace: Namespace returned by classify()

    Returns:
        SegmentBounds for the payload after the namespace terminator

    Raises:
        MalformedSegmentError: If the length is too small for the header or
            the payload runs past the end of the buffer
    """
    length = declared_length(buffer, marker_offset)
    namespace_length = len(namespace.identifier)
    payload_length = length - (namespace_length + SEGMENT_OVERHEAD)
    # 2 (marker) + 2 (length field) + 1 (terminator)
    payload_start = marker_offset + namespace_length + 2 + 2 + 1

    if payload_length < 0:
        raise MalformedSegmentError(
            f"Segment at offset {marker_offset}: declared length {length} is "
            f"smaller than its {namespace.name.lower()} XMP header",
            offset=marker_offset
        )
    if payload_start + payload_length > len(buffer):
        raise MalformedSegmentError(
            f"Segment at offset {marker_offset}: declared length {length} runs "
            f"{payload_start + payload_length - len(buffer)} bytes past the end of the file",
            offset=marker_offset
        )
    return SegmentBounds(payload_start, payload_length)


def locate_guid_end(buffer: bytes, segment_start: int, segment_size: int) -> int:
    """
    Find the GUID announced by xmpNote:HasExtendedXMP in a standard packet.

    Searches ``buffer[segment_start:segment_start + segment_size - 1]`` as
    ASCII text for the key.

    Args:
        buffer: Raw JPEG bytes
        segment_start: Payload start of a standard XMP segment
        segment_size: Payload length of that segment

    Returns:
        Offset of the first GUID character (just past the key and its
        opening quote)

    Raises:
        GuidNotFoundError: If the key is absent
    """
    text = buffer[segment_start:segment_start + segment_size - 1].decode('ascii', errors='replace')
    hit = text.find(GUID_KEY)
    if hit < 0:
        raise GuidNotFoundError(
            f"No {GUID_KEY} key in standard XMP segment at offset {segment_start}"
        )
    return segment_start + (hit + len(GUID_KEY) + 1)


class SegmentScanner:
    """
    Single forward pass over a JPEG buffer collecting XMP payloads.

    Standard payloads are appended after their 32-byte GUID region, extended
    payloads after their 40-byte chunk header. Segments with any other
    namespace are passed over without reading their length.
    """

    def __init__(self, buffer: bytes, strict: bool = False):
        """
        Args:
            buffer: Raw JPEG bytes
            strict: If True, a malformed segment aborts the scan instead of
                being skipped
        """
        self.buffer = buffer
        self.strict = strict

    def scan(self) -> ReassemblyResult:
        """
        Run the pass.

        Returns:
            ReassemblyResult with both streams and per-segment diagnostics

        Raises:
            MalformedSegmentError: Only in strict mode
        """
        standard = bytearray()
        extended = bytearray()
        result = ReassemblyResult()

        position = 0
        while True:
            marker_offset = find_marker(self.buffer, position)
            if marker_offset < 0:
                break

            match = SegmentMatch(marker_offset, classify(self.buffer, marker_offset))
            if match.namespace is Namespace.NONE:
                position = marker_offset + 2
                continue

            try:
                if match.namespace is Namespace.STANDARD:
                    record = self._consume_standard(marker_offset, standard)
                    if record.guid and result.referenced_guid is None:
                        result.referenced_guid = record.guid
                else:
                    record = self._consume_extended(marker_offset, extended)
                    result.extended_length += record.appended
            except MalformedSegmentError as e:
                if self.strict:
                    raise
                logger.warning("Skipping malformed segment: %s", e.message)
                result.skipped.append(e)
                position = marker_offset + 2
                continue

            result.segments.append(record)
            position = marker_offset + record.declared_length

        result.standard = bytes(standard)
        result.extended = bytes(extended)
        self._check_guids(result)
        return result

    def _consume_standard(self, marker_offset: int, out: bytearray) -> SegmentRecord:
        bounds = segment_bounds(self.buffer, marker_offset, Namespace.STANDARD)
        if bounds.payload_length < STANDARD_GUID_SKIP:
            raise MalformedSegmentError(
                f"Segment at offset {marker_offset}: standard XMP payload of "
                f"{bounds.payload_length} bytes is shorter than its GUID field",
                offset=marker_offset
            )

        guid = None
        try:
            guid_start = locate_guid_end(self.buffer, bounds.payload_start, bounds.payload_length)
            guid = self.buffer[guid_start:guid_start + GUID_LENGTH].decode('ascii', errors='replace')
        except GuidNotFoundError:
            logger.debug("Standard XMP at offset %d references no extended XMP", marker_offset)

        chunk = self.buffer[bounds.payload_start + STANDARD_GUID_SKIP:bounds.payload_end]
        out.extend(chunk)
        logger.debug(
            "Standard XMP segment at offset %d: %d bytes appended", marker_offset, len(chunk)
        )
        return SegmentRecord(
            marker_offset=marker_offset,
            namespace=Namespace.STANDARD,
            declared_length=declared_length(self.buffer, marker_offset),
            appended=len(chunk),
            guid=guid,
        )

    def _consume_extended(self, marker_offset: int, out: bytearray) -> SegmentRecord:
        bounds = segment_bounds(self.buffer, marker_offset, Namespace.EXTENDED)
        if bounds.payload_length < EXTENDED_HEADER_SKIP:
            raise MalformedSegmentError(
                f"Segment at offset {marker_offset}: extended XMP payload of "
                f"{bounds.payload_length} bytes is shorter than its chunk header",
                offset=marker_offset
            )

        start = bounds.payload_start
        guid = self.buffer[start:start + GUID_LENGTH].decode('ascii', errors='replace')
        full_length, chunk_offset = struct.unpack(
            '>II', self.buffer[start + GUID_LENGTH:start + EXTENDED_HEADER_SKIP]
        )

        chunk = self.buffer[start + EXTENDED_HEADER_SKIP:bounds.payload_end]
        out.extend(chunk)
        logger.debug(
            "Extended XMP segment at offset %d: chunk offset %d of %d, %d bytes appended",
            marker_offset, chunk_offset, full_length, len(chunk)
        )
        return SegmentRecord(
            marker_offset=marker_offset,
            namespace=Namespace.EXTENDED,
            declared_length=declared_length(self.buffer, marker_offset),
            appended=len(chunk),
            guid=guid,
            full_length=full_length,
            chunk_offset=chunk_offset,
        )

    @staticmethod
    def _check_guids(result: ReassemblyResult) -> None:
        if result.referenced_guid is None:
            return
        for record in result.segments:
            if record.namespace is Namespace.EXTENDED and record.guid != result.referenced_guid:
                logger.warning(
                    "Extended XMP segment at offset %d has GUID %s, standard XMP references %s",
                    record.marker_offset, record.guid, result.referenced_guid
                )


def reassemble(buffer: bytes, strict: bool = False) -> ReassemblyResult:
    """
    Reassemble standard and extended XMP from a JPEG buffer.

    Args:
        buffer: Raw JPEG bytes
        strict: If True, raise on the first malformed segment

    Returns:
        ReassemblyResult; ``standard, extended = reassemble(data)`` also works
    """
    return SegmentScanner(buffer, strict=strict).scan()
