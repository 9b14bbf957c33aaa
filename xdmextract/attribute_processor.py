# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Attribute stream processor for extended XMP

XDM cameras store their color images and depth maps inside the extended
XMP packet as base64 attribute values (Image:Data / GImage:Data,
DepthMap:Data / GDepth:Data). This module streams the packet, yields every
attribute in document order, and writes the recognized payloads to
numbered files.

The packet is tokenized with the SAX (expat) reader in non-namespace mode:
attribute names are reported exactly as written, and a prefix without an
xmlns declaration is not an error. Recognized names are matched
case-insensitively, the way a non-strict SAX reader upper-cases them.

Copyright 2025 DNAi inc.
"""

import base64
import binascii
import contextlib
import io
import logging
import xml.sax
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Iterator, List, NamedTuple, Union

from xml.sax.handler import ContentHandler, feature_external_ges, feature_namespaces

from xdmextract.exceptions import Base64DecodeError, FileAccessError, XmlParseError
from xdmextract.output_paths import OutputPaths

logger = logging.getLogger(__name__)

# Attribute names carrying base64 payloads, compared after upper-casing
# the name as written (GImage:Data matches GIMAGE:DATA)
IMAGE_ATTRIBUTES = ('IMAGE:DATA', 'GIMAGE:DATA')
DEPTH_ATTRIBUTES = ('DEPTHMAP:DATA', 'GDEPTH:DATA')

DEFAULT_CHUNK_SIZE = 64 * 1024

Source = Union[str, Path, bytes, BinaryIO]


class AttributeEvent(NamedTuple):
    name: str
    value: str


class _AttributeCollector(ContentHandler):
    """Queues attributes of every start tag until the reader drains them."""

    def __init__(self):
        super().__init__()
        self.events = deque()

    def startElement(self, name, attrs):
        for qname in attrs.getNames():
            self.events.append(AttributeEvent(qname, attrs.getValue(qname)))


def _open_source(source: Source):
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(bytes(source))
    if isinstance(source, (str, Path)):
        try:
            return open(source, 'rb')
        except OSError as e:
            raise FileAccessError(f"Cannot open XMP input {source}: {e}", path=source) from e
    return contextlib.nullcontext(source)


def _parse_error(exc: xml.sax.SAXParseException) -> XmlParseError:
    line = exc.getLineNumber()
    column = exc.getColumnNumber()
    return XmlParseError(
        f"Malformed XML at line {line}, column {column}: {exc.getMessage()}",
        line=line,
        column=column
    )


def iter_attributes(source: Source, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[AttributeEvent]:
    """
    Yield every attribute of an XML document in document order.

    The generator reads ``source`` lazily, ``chunk_size`` bytes at a time.
    It cannot be restarted; call it again to re-read the source.

    Args:
        source: Path to an XML file, the document as bytes, or an open
            binary file object (left open)
        chunk_size: Bytes fed to the tokenizer per read

    Yields:
        AttributeEvent(name, value)

    Raises:
        FileAccessError: If the path cannot be opened
        XmlParseError: If the document is not well-formed; attributes
            before the fault have already been yielded
    """
    parser = xml.sax.make_parser()
    parser.setFeature(feature_namespaces, False)
    parser.setFeature(feature_external_ges, False)
    handler = _AttributeCollector()
    parser.setContentHandler(handler)

    with _open_source(source) as stream:
        finished = False
        while not finished:
            data = stream.read(chunk_size)
            error = None
            try:
                parser.feed(data)
                if not data:
                    finished = True
                    parser.close()
            except xml.sax.SAXParseException as e:
                error = e

            while handler.events:
                yield handler.events.popleft()
            if error is not None:
                raise _parse_error(error) from error


def decode_base64(value: str, name: str = "", ordinal: int = 0) -> bytes:
    """
    Decode a base64 attribute value.

    Whitespace (line-wrapped payloads) is ignored; anything else outside
    the base64 alphabet is an error.

    Raises:
        Base64DecodeError: If the value is not valid base64
    """
    compact = ''.join(value.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise Base64DecodeError(
            f"{name} (attribute #{ordinal}): invalid base64: {e}",
            name=name,
            ordinal=ordinal
        ) from e


@dataclass
class ProcessingResult:
    """Files written by one pass over an attribute stream."""
    written: List[Path] = field(default_factory=list)
    images: List[Path] = field(default_factory=list)
    depth_maps: List[Path] = field(default_factory=list)
    failures: List[Base64DecodeError] = field(default_factory=list)
    attributes_seen: int = 0


class AttributeProcessor:
    """
    Decodes image and depth attributes into numbered files.

    Counters belong to the instance: they start at 0 and keep counting
    across calls to process(), so one instance numbers every file of a run.
    """

    def __init__(self, paths: OutputPaths, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Args:
            paths: Output naming for the current input
            chunk_size: Bytes fed to the tokenizer per read
        """
        self.paths = paths
        self.chunk_size = chunk_size
        self.image_counter = 0
        self.depth_counter = 0

    def process(self, source: Source) -> ProcessingResult:
        """
        Stream ``source`` and write every recognized payload.

        Args:
            source: Extended XMP as a path, bytes, or binary file object

        Returns:
            ProcessingResult listing written files in document order

        Raises:
            FileAccessError: If the input cannot be read or an output
                cannot be written
            XmlParseError: If the XML is malformed (earlier files are kept)
        """
        result = ProcessingResult()
        for ordinal, event in enumerate(iter_attributes(source, self.chunk_size)):
            result.attributes_seen += 1
            key = event.name.upper()
            if key in IMAGE_ATTRIBUTES:
                target = self.paths.image(self.image_counter)
                bucket = result.images
            elif key in DEPTH_ATTRIBUTES:
                target = self.paths.depth(self.depth_counter)
                bucket = result.depth_maps
            else:
                continue

            try:
                data = decode_base64(event.value, event.name, ordinal)
            except Base64DecodeError as e:
                logger.warning("Skipping attribute: %s", e.message)
                result.failures.append(e)
                continue

            self._write(target, data)
            if bucket is result.images:
                self.image_counter += 1
            else:
                self.depth_counter += 1
            bucket.append(target)
            result.written.append(target)
            logger.debug("%s -> %s (%d bytes)", event.name, target, len(data))

        logger.info(
            "Attribute stream finished: %d image(s), %d depth map(s), %d failed attribute(s)",
            len(result.images), len(result.depth_maps), len(result.failures)
        )
        return result

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        try:
            target.write_bytes(data)
        except OSError as e:
            raise FileAccessError(f"Cannot write {target}: {e}", path=target) from e


def process_attributes(source: Source, paths: OutputPaths) -> List[Path]:
    """
    Decode every image and depth attribute of ``source`` with fresh counters.

    Returns:
        Written file paths in document order
    """
    return AttributeProcessor(paths).process(source).written
