# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Command-line interface for xdmextract

Usage:
    xdmextract photo.jpg

Writes photo_xap.xml, photo_xmp.xml, photo_<n>.jpg and photo_depth_<n>.png
next to the input.

Exit codes:
    0  success
    1  input or output file could not be accessed
    2  malformed APP1 segment(s) (skipped, or fatal with --strict)
    3  extended XMP is not well-formed XML
    4  one or more image/depth attributes were not valid base64

Copyright 2025 DNAi inc.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from xdmextract import __version__
from xdmextract.core import ExtractionConfig, ExtractionSummary, XDMExtractor
from xdmextract.exceptions import (
    FileAccessError,
    MalformedSegmentError,
    XDMExtractError,
    XmlParseError,
)

EXIT_OK = 0
EXIT_FILE_ACCESS = 1
EXIT_MALFORMED_SEGMENT = 2
EXIT_XML_PARSE = 3
EXIT_BASE64 = 4


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xdmextract",
        description="Extract XMP metadata, color images and depth maps from XDM JPEG files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Extract everything next to the input
  xdmextract photo.jpg

  # Start over, discarding XMP/XAP output from an earlier run
  xdmextract --fresh photo.jpg

  # Decode images from an extended XMP file written earlier
  xdmextract --xmp-input old_xmp.xml photo.jpg

  # Print a JSON summary including image sizes
  xdmextract -j --describe photo.jpg
        """
    )
    parser.add_argument('file', help='XDM JPEG file to process')
    parser.add_argument('-o', '--output-dir', type=Path, help='Write outputs to this directory')
    parser.add_argument('--xmp-input', type=Path, help='Read extended XMP for image decoding from this file')
    parser.add_argument('--fresh', action='store_true', help='Delete existing _xmp.xml/_xap.xml outputs first')
    parser.add_argument('--strict', action='store_true', help='Abort on the first malformed APP1 segment')
    parser.add_argument('--xmp-only', action='store_true', help='Only extract XMP; do not decode images')
    parser.add_argument('--describe', action='store_true', help='Report size and mode of decoded images (needs Pillow)')
    parser.add_argument('-j', '--json', action='store_true', help='Print the run summary as JSON')
    parser.add_argument('-v', '--verbose', action='count', default=0, help='More logging (-vv for debug)')
    parser.add_argument('-q', '--quiet', action='store_true', help='Only log errors')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def configure_logging(verbose: int, quiet: bool) -> None:
    if quiet:
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr
    )


def exit_code_for(summary: ExtractionSummary) -> int:
    """Exit code of a run that completed."""
    if summary.reassembly.skipped:
        return EXIT_MALFORMED_SEGMENT
    if summary.processing is not None and summary.processing.failures:
        return EXIT_BASE64
    return EXIT_OK


def format_summary(summary: ExtractionSummary) -> str:
    reassembly = summary.reassembly
    lines = [
        f"Standard XMP: {len(reassembly.standard)} bytes -> {summary.xap_path}",
        f"Extended XMP: {reassembly.extended_length} bytes -> {summary.xmp_path}",
    ]
    if reassembly.referenced_guid:
        lines.append(f"Extended XMP GUID: {reassembly.referenced_guid}")
    for error in reassembly.skipped:
        lines.append(f"Skipped segment: {error.message}")
    if summary.processing is not None:
        for path in summary.processing.images:
            lines.append(f"Color image: {path}")
        for path in summary.processing.depth_maps:
            lines.append(f"Depth map: {path}")
        for error in summary.processing.failures:
            lines.append(f"Failed attribute: {error.message}")
    lines.append("All done!")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the extractor from the command line.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    config = ExtractionConfig(
        output_dir=args.output_dir,
        xmp_input=args.xmp_input,
        fresh=args.fresh,
        strict=args.strict,
        extract_images=not args.xmp_only,
    )

    try:
        with XDMExtractor(args.file, config) as session:
            summary = session.run()
    except FileAccessError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_FILE_ACCESS
    except MalformedSegmentError as e:
        print(f"Error: segment scan aborted: {e.message}", file=sys.stderr)
        return EXIT_MALFORMED_SEGMENT
    except XmlParseError as e:
        print(f"Error: attribute decoding aborted: {e.message}", file=sys.stderr)
        return EXIT_XML_PARSE
    except XDMExtractError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_FILE_ACCESS

    descriptions = None
    if args.describe:
        from xdmextract.image_info import describe_images
        try:
            descriptions = describe_images(summary.written)
        except NotImplementedError as e:
            print(f"Error: {e}", file=sys.stderr)

    if args.json:
        output = summary.to_dict()
        if descriptions is not None:
            output["descriptions"] = descriptions
        print(json.dumps(output, indent=2, ensure_ascii=False))
    else:
        print(format_summary(summary))
        for info in descriptions or []:
            if info["readable"]:
                print(f"{info['path']}: {info['format']} {info['width']}x{info['height']} {info['mode']}")
            else:
                print(f"{info['path']}: unreadable ({info['error']})")

    return exit_code_for(summary)


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
