"""IPS record layout shared by the decoder and the encoder.

Format reference: https://zerosoft.zophar.net/ips.php

    "PATCH"
    offset:u24 length:u16 payload[length]        copy record (length > 0)
    offset:u24 0x0000 runlen:u16 value:u8         fill record
    "EOF"

All multi-byte fields are big-endian.
"""
from typing import NamedTuple

HEADER = b"PATCH"
EOF_MARKER = b"EOF"

FILE_LIMIT = 0x1000000      # 16MB max size of a patch, offsets are 3 byte ints
RECORD_LIMIT = 0xFFFF       # max size of a single record, lengths are 2 byte ints
EOF_CODE = 0x454F46         # "EOF" read as an offset
SENTINEL_OFFSET = 0xFFFFFF  # some patchers end the file with this offset instead

RECORD_HEADER_SIZE = 5
FILL_BODY_SIZE = 3


class IPSError(ValueError):
    """Raised for patches that cannot be read or written."""


class PatchTooLargeError(IPSError):
    """The patch would not fit the IPS size limits."""


class Record(NamedTuple):
    index: int
    offset: int
    length: int
    kind: str
    fill_value: int | None = None

    @property
    def end(self) -> int:
        return self.offset + self.length


def pack_record_header(offset: int, length: int) -> bytes:
    if not 0 <= offset <= 0xFFFFFF:
        raise ValueError(f"Record offset 0x{offset:X} does not fit in 24 bits")
    if not 0 <= length <= RECORD_LIMIT:
        raise ValueError(f"Record length {length} does not fit in 16 bits")
    return offset.to_bytes(3, "big") + length.to_bytes(2, "big")


def unpack_record_header(header: bytes) -> tuple[int, int]:
    return int.from_bytes(header[0:3], "big"), int.from_bytes(header[3:5], "big")


def unpack_fill_body(body: bytes) -> tuple[int, int]:
    """Return (run length, fill byte) from the 3 bytes following a fill header."""
    return int.from_bytes(body[0:2], "big"), body[2]


def is_terminator(header: bytes) -> bool:
    offset, _ = unpack_record_header(header)
    return offset == SENTINEL_OFFSET or header[0:3] == EOF_MARKER


def write_record(out: bytearray, offset: int, payload: bytes) -> None:
    # Record: 3-byte offset, 2-byte size, then data
    out.extend(pack_record_header(offset, len(payload)))
    out.extend(payload)
