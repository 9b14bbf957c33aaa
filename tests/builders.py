"""Byte-level builders for synthetic XDM JPEG files."""

import struct

STANDARD_NS = b"http://ns.adobe.com/xap/1.0/"
EXTENDED_NS = b"http://ns.adobe.com/xmp/extension/"
GUID = b"0123456789ABCDEF0123456789ABCDEF"


def app1_segment(namespace: bytes, payload: bytes) -> bytes:
    length = 2 + len(namespace) + 1 + len(payload)
    return b"\xff\xe1" + struct.pack(">H", length) + namespace + b"\x00" + payload


def standard_segment(body: bytes, guid_region: bytes = b"G" * 32) -> bytes:
    assert len(guid_region) == 32
    return app1_segment(STANDARD_NS, guid_region + body)


def extended_segment(body: bytes, guid: bytes = GUID, full_length=None, offset: int = 0) -> bytes:
    if full_length is None:
        full_length = len(body)
    header = guid + struct.pack(">II", full_length, offset)
    return app1_segment(EXTENDED_NS, header + body)


def jpeg(*segments: bytes) -> bytes:
    return b"\xff\xd8" + b"".join(segments) + b"\xff\xd9"
