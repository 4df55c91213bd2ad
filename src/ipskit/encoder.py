"""Builds IPS patches from an original/modified buffer pair.

The diff is a single linear scan: every maximal run of differing bytes
becomes one copy record. No fill records are emitted and short matching
gaps are not merged.
"""
import logging

from .records import (
    EOF_CODE,
    EOF_MARKER,
    FILE_LIMIT,
    HEADER,
    RECORD_HEADER_SIZE,
    RECORD_LIMIT,
    SENTINEL_OFFSET,
    PatchTooLargeError,
    write_record,
)

logger = logging.getLogger(__name__)

# Run starts that would read back as the end of the patch
RESERVED_OFFSETS = (EOF_CODE, SENTINEL_OFFSET)


def _ensure_room(out: bytearray, extra: int) -> None:
    if len(out) + extra > FILE_LIMIT:
        raise PatchTooLargeError(
            f"IPS patch would exceed {FILE_LIMIT} bytes ({len(out) + extra} needed)"
        )


def create_ips(original: bytes, modified: bytes, size: int | None = None, log: logging.Logger | None = None) -> bytes:
    """Return an IPS patch turning ``original`` into ``modified``.

    Both buffers are compared over their first ``size`` bytes (the length of
    ``original`` by default). Raises PatchTooLargeError when the patch would
    be larger than 16MB or a difference lies beyond the 24-bit offset range;
    nothing is returned in that case.
    """
    log = log or logger
    if size is None:
        size = len(original)
    if len(original) < size or len(modified) < size:
        raise ValueError(f"Both buffers must hold at least {size} bytes")

    out = bytearray(HEADER)
    pos = 0
    while pos < size:
        if modified[pos] == original[pos]:
            pos += 1
            continue

        start = pos
        if start > SENTINEL_OFFSET:
            raise PatchTooLargeError(f"Difference at 0x{start:X} is beyond the 24-bit offset range")
        offset = start - 1 if start in RESERVED_OFFSETS else start

        pos += 1
        while pos < size and pos - offset < RECORD_LIMIT - 1 and modified[pos] != original[pos]:
            pos += 1
        if pos - offset == RECORD_LIMIT - 1 and pos < size:
            # The byte at the cap closes the record whether it differs or not
            log.debug("Truncating overlong record at 0x%X: %d", offset, pos - offset)
            pos += 1

        payload = modified[offset:pos]
        _ensure_room(out, RECORD_HEADER_SIZE + len(payload))
        write_record(out, offset, payload)

    _ensure_room(out, len(EOF_MARKER))
    out.extend(EOF_MARKER)
    return bytes(out)
