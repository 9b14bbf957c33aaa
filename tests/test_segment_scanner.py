import logging
import struct

import pytest

from xdmextract.exceptions import GuidNotFoundError, MalformedSegmentError
from xdmextract.segment_scanner import (
    EXTENDED_HEADER_SKIP,
    STANDARD_GUID_SKIP,
    Namespace,
    classify,
    find_marker,
    locate_guid_end,
    reassemble,
)

from builders import (
    EXTENDED_NS,
    GUID,
    STANDARD_NS,
    app1_segment,
    extended_segment,
    jpeg,
    standard_segment,
)


class TestFindMarker:
    def test_finds_first_marker(self):
        assert find_marker(b"\x00\xff\xe1\x00\xff\xe1", 0) == 1

    def test_starts_at_position(self):
        assert find_marker(b"\x00\xff\xe1\x00\xff\xe1", 2) == 4

    def test_not_found(self):
        assert find_marker(b"\xff\xd8\xff\xe0\x00\x10", 0) == -1

    def test_marker_in_last_window(self):
        assert find_marker(b"\x00\x00\xff\xe1", 0) == 2

    def test_trailing_ff_is_not_a_marker(self):
        assert find_marker(b"\x00\x00\xff", 0) == -1

    def test_empty_buffer(self):
        assert find_marker(b"", 0) == -1


class TestClassify:
    def test_standard(self):
        assert classify(standard_segment(b"x"), 0) is Namespace.STANDARD

    def test_extended(self):
        assert classify(extended_segment(b"x"), 0) is Namespace.EXTENDED

    def test_unknown_namespace(self):
        assert classify(app1_segment(b"Exif\x00", b"data"), 0) is Namespace.NONE

    def test_case_sensitive(self):
        assert classify(app1_segment(STANDARD_NS.upper(), b"data"), 0) is Namespace.NONE

    def test_truncated_header(self):
        segment = standard_segment(b"x")
        assert classify(segment[:20], 0) is Namespace.NONE

    def test_offset_inside_buffer(self):
        buffer = b"\x00" * 7 + extended_segment(b"x")
        assert classify(buffer, 7) is Namespace.EXTENDED


class TestLocateGuidEnd:
    def test_returns_offset_of_guid(self):
        text = b'<x:xmpmeta xmpNote:HasExtendedXMP="' + GUID + b'"/>'
        buffer = b"\x00" * 10 + text
        pos = locate_guid_end(buffer, 10, len(text))
        assert buffer[pos:pos + 32] == GUID

    def test_missing_key(self):
        text = b"<x:xmpmeta/>"
        with pytest.raises(GuidNotFoundError):
            locate_guid_end(text, 0, len(text))

    def test_last_byte_is_not_searched(self):
        text = b"xmpNote:HasExtendedXMP="
        with pytest.raises(GuidNotFoundError):
            locate_guid_end(text, 0, len(text))


class TestReassemble:
    @pytest.mark.parametrize("buffer", [
        b"",
        b"\xff\xd8\xff\xd9",
        b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x02\x00\x00\x01\x00\x01\x00\x00\xff\xd9",
        bytes(range(256)).replace(b"\xff", b"\x00"),
    ])
    def test_no_marker_gives_empty_streams(self, buffer):
        standard, extended = reassemble(buffer)
        assert standard == b""
        assert extended == b""

    def test_standard_payload_length(self):
        segment = standard_segment(b"<x:xmpmeta>standard</x:xmpmeta>")
        declared = struct.unpack(">H", segment[2:4])[0]
        result = reassemble(jpeg(segment))
        assert len(result.standard) == declared - (len(STANDARD_NS) + 3) - STANDARD_GUID_SKIP
        assert result.standard == b"<x:xmpmeta>standard</x:xmpmeta>"
        assert result.extended == b""

    def test_extended_payload_length(self):
        segment = extended_segment(b"<x:xmpmeta>extended</x:xmpmeta>")
        declared = struct.unpack(">H", segment[2:4])[0]
        result = reassemble(jpeg(segment))
        assert len(result.extended) == declared - (len(EXTENDED_NS) + 3) - EXTENDED_HEADER_SKIP
        assert result.extended == b"<x:xmpmeta>extended</x:xmpmeta>"
        assert result.extended_length == len(result.extended)

    def test_extended_chunks_concatenate_in_file_order(self):
        result = reassemble(jpeg(
            extended_segment(b"first-", full_length=12, offset=0),
            extended_segment(b"second", full_length=12, offset=6),
        ))
        assert result.extended == b"first-second"
        assert result.extended_length == 12
        assert [r.chunk_offset for r in result.segments] == [0, 6]
        assert [r.full_length for r in result.segments] == [12, 12]

    def test_unmatched_segment_resumes_after_marker(self):
        # The unknown segment declares 0xFFFF bytes; honoring it would jump
        # over the extended segment that follows.
        unknown = b"\xff\xe1\xff\xffExif\x00\x00"
        result = reassemble(jpeg(unknown, extended_segment(b"payload")))
        assert result.extended == b"payload"
        assert result.standard == b""
        assert len(result.segments) == 1

    def test_unmatched_segment_contributes_nothing(self):
        result = reassemble(jpeg(app1_segment(b"Exif\x00", b"II*\x00" + b"\x00" * 20)))
        assert result.standard == b""
        assert result.extended == b""
        assert result.segments == []

    def test_standard_and_extended_in_one_file(self):
        result = reassemble(jpeg(
            extended_segment(b"0123456789"),
            standard_segment(b"abcde"),
        ))
        assert result.extended == b"0123456789"
        assert result.standard == b"abcde"
        assert [r.namespace for r in result.segments] == [Namespace.EXTENDED, Namespace.STANDARD]

    def test_referenced_guid(self):
        body = b'<rdf:Description xmpNote:HasExtendedXMP="' + GUID + b'"/>'
        result = reassemble(jpeg(standard_segment(body), extended_segment(b"data")))
        assert result.referenced_guid == GUID.decode("ascii")
        assert result.segments[0].guid == GUID.decode("ascii")

    def test_no_guid_key_still_appends(self):
        result = reassemble(jpeg(standard_segment(b"<x/>")))
        assert result.referenced_guid is None
        assert result.standard == b"<x/>"

    def test_guid_mismatch_is_logged(self, caplog):
        body = b'<rdf:Description xmpNote:HasExtendedXMP="' + GUID + b'"/>'
        other = b"F" * 32
        with caplog.at_level(logging.WARNING, logger="xdmextract.segment_scanner"):
            result = reassemble(jpeg(standard_segment(body), extended_segment(b"data", guid=other)))
        assert result.extended == b"data"
        assert "GUID" in caplog.text

    def test_iterates_as_pair(self):
        result = reassemble(jpeg(standard_segment(b"s"), extended_segment(b"e")))
        assert tuple(result) == (b"s", b"e")


class TestMalformedSegments:
    def test_length_smaller_than_header_is_skipped(self, caplog):
        broken = b"\xff\xe1\x00\x05" + STANDARD_NS + b"\x00"
        with caplog.at_level(logging.WARNING, logger="xdmextract.segment_scanner"):
            result = reassemble(jpeg(broken, extended_segment(b"after")))
        assert result.extended == b"after"
        assert result.standard == b""
        assert len(result.skipped) == 1
        assert result.skipped[0].offset == 2
        assert "offset 2" in caplog.text

    def test_length_past_end_of_buffer_is_skipped(self):
        segment = bytearray(extended_segment(b"payload"))
        segment[2:4] = b"\xff\xf0"
        result = reassemble(jpeg(bytes(segment)))
        assert result.extended == b""
        assert len(result.skipped) == 1

    def test_payload_shorter_than_guid_region_is_skipped(self):
        short = app1_segment(STANDARD_NS, b"G" * 10)
        result = reassemble(jpeg(short, standard_segment(b"ok")))
        assert result.standard == b"ok"
        assert len(result.skipped) == 1

    def test_payload_shorter_than_extended_header_is_skipped(self):
        short = app1_segment(EXTENDED_NS, GUID)
        result = reassemble(jpeg(short))
        assert result.extended == b""
        assert len(result.skipped) == 1

    def test_strict_mode_raises(self):
        broken = b"\xff\xe1\x00\x05" + EXTENDED_NS + b"\x00"
        with pytest.raises(MalformedSegmentError) as excinfo:
            reassemble(jpeg(broken), strict=True)
        assert excinfo.value.offset == 2
