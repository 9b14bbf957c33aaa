# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Core extraction session

XDMExtractor runs both stages over one XDM JPEG:

1. Reassemble standard and extended XMP from APP1 segments and append them
   to ``<base>_xap.xml`` and ``<base>_xmp.xml``.
2. Stream the extended XMP and decode its image and depth attributes into
   ``<base>_<n>.jpg`` and ``<base>_depth_<n>.png``.

Each instance owns its counters and accumulators, so several files can be
processed one after another in the same process.

Copyright 2025 DNAi inc.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from xdmextract.attribute_processor import (
    DEFAULT_CHUNK_SIZE,
    AttributeProcessor,
    ProcessingResult,
)
from xdmextract.exceptions import FileAccessError
from xdmextract.output_paths import OutputPaths
from xdmextract.segment_scanner import ReassemblyResult, reassemble

logger = logging.getLogger(__name__)


@dataclass
class ExtractionConfig:
    """
    Options for one extraction run.

    Attributes:
        output_dir: Directory for outputs (default: beside the input)
        xmp_input: Extended XMP read by stage 2 instead of stage 1's output
        fresh: Delete existing XMP/XAP outputs before appending to them
        strict: Abort on the first malformed segment instead of skipping it
        extract_images: Run stage 2
        chunk_size: Bytes fed to the XML tokenizer per read
    """
    output_dir: Optional[Path] = None
    xmp_input: Optional[Path] = None
    fresh: bool = False
    strict: bool = False
    extract_images: bool = True
    chunk_size: int = DEFAULT_CHUNK_SIZE


@dataclass
class ExtractionSummary:
    """Everything one run produced, for reporting."""
    input_path: Path
    xmp_path: Path
    xap_path: Path
    reassembly: ReassemblyResult
    processing: Optional[ProcessingResult] = None
    stage2_input: Optional[Path] = None
    written: List[Path] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        reassembly = self.reassembly
        processing = self.processing
        return {
            "input": str(self.input_path),
            "xmp": str(self.xmp_path),
            "xap": str(self.xap_path),
            "standard_bytes": len(reassembly.standard),
            "extended_bytes": reassembly.extended_length,
            "referenced_guid": reassembly.referenced_guid,
            "segments": [
                {
                    "offset": record.marker_offset,
                    "namespace": record.namespace.name.lower(),
                    "declared_length": record.declared_length,
                    "appended": record.appended,
                    "guid": record.guid,
                }
                for record in reassembly.segments
            ],
            "skipped_segments": [
                {"offset": error.offset, "reason": error.message}
                for error in reassembly.skipped
            ],
            "stage2_input": str(self.stage2_input) if self.stage2_input else None,
            "images": [str(p) for p in processing.images] if processing else [],
            "depth_maps": [str(p) for p in processing.depth_maps] if processing else [],
            "failed_attributes": [
                {"name": error.name, "ordinal": error.ordinal, "reason": error.message}
                for error in processing.failures
            ] if processing else [],
        }


class XDMExtractor:
    """
    Extraction session for one XDM JPEG file.

    Example:
        >>> with XDMExtractor("photo.jpg") as session:
        ...     summary = session.run()
        >>> summary.written
        [PosixPath('photo_0.jpg'), PosixPath('photo_depth_0.png')]
    """

    def __init__(
        self,
        file_path: Union[str, Path],
        config: Optional[ExtractionConfig] = None
    ):
        """
        Args:
            file_path: Path to the XDM JPEG
            config: Run options (defaults to ExtractionConfig())

        Raises:
            FileAccessError: If the file does not exist
        """
        self.file_path = Path(file_path)
        self.config = config or ExtractionConfig()

        if not self.file_path.is_file():
            raise FileAccessError(f"File not found: {file_path}", path=self.file_path)

        self.paths = OutputPaths.from_input(self.file_path, self.config.output_dir)
        self.processor = AttributeProcessor(self.paths, chunk_size=self.config.chunk_size)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        # Files are opened and closed per write; nothing stays open
        pass

    @property
    def image_counter(self) -> int:
        return self.processor.image_counter

    @property
    def depth_counter(self) -> int:
        return self.processor.depth_counter

    def read_buffer(self) -> bytes:
        """Read the whole input file."""
        try:
            return self.file_path.read_bytes()
        except OSError as e:
            raise FileAccessError(f"Cannot read {self.file_path}: {e}", path=self.file_path) from e

    def extract_xmp(self) -> ReassemblyResult:
        """
        Stage 1: reassemble XMP and append it to the XAP/XMP outputs.

        Raises:
            FileAccessError: If the input cannot be read or outputs written
            MalformedSegmentError: Only with ``strict``
        """
        if self.config.fresh:
            for stale in (self.paths.xmp, self.paths.xap):
                try:
                    stale.unlink(missing_ok=True)
                except OSError as e:
                    raise FileAccessError(f"Cannot remove {stale}: {e}", path=stale) from e

        logger.info("Parsing XDM file %s", self.file_path)
        result = reassemble(self.read_buffer(), strict=self.config.strict)

        self._append(self.paths.xap, result.standard)
        self._append(self.paths.xmp, result.extended)
        logger.info(
            "Stage 1 finished: %d segment(s), %d standard byte(s), %d extended byte(s), %d skipped",
            len(result.segments), len(result.standard), result.extended_length, len(result.skipped)
        )
        return result

    def extract_images(self, source: Optional[Union[str, Path]] = None) -> ProcessingResult:
        """
        Stage 2: decode image and depth attributes from extended XMP.

        Args:
            source: Extended XMP file (default: config.xmp_input, then this
                session's ``_xmp.xml`` output)

        Raises:
            FileAccessError: If the source is missing or an output cannot be
                written
            XmlParseError: If the extended XMP is malformed
        """
        source = Path(source or self.config.xmp_input or self.paths.xmp)
        logger.info("Decoding attributes from %s", source)
        return self.processor.process(source)

    def run(self) -> ExtractionSummary:
        """
        Run both stages.

        Stage 2 is skipped when stage 1 found no extended XMP and no
        ``xmp_input`` override is configured.

        Returns:
            ExtractionSummary
        """
        reassembly = self.extract_xmp()
        summary = ExtractionSummary(
            input_path=self.file_path,
            xmp_path=self.paths.xmp,
            xap_path=self.paths.xap,
            reassembly=reassembly,
        )

        if not self.config.extract_images:
            return summary
        if not reassembly.extended and self.config.xmp_input is None:
            logger.info("No extended XMP in %s; nothing to decode", self.file_path)
            return summary

        summary.stage2_input = Path(self.config.xmp_input or self.paths.xmp)
        summary.processing = self.extract_images(summary.stage2_input)
        summary.written = list(summary.processing.written)
        return summary

    @staticmethod
    def _append(path: Path, data: bytes) -> None:
        try:
            with open(path, 'ab') as f:
                f.write(data)
        except OSError as e:
            raise FileAccessError(f"Cannot write {path}: {e}", path=path) from e
