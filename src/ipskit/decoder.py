"""Reads IPS patch streams and applies them to a caller-owned buffer."""
import io
import logging
from typing import BinaryIO, Iterator, Union

from .records import (
    FILL_BODY_SIZE,
    HEADER,
    RECORD_HEADER_SIZE,
    IPSError,
    Record,
    is_terminator,
    unpack_fill_body,
    unpack_record_header,
)

logger = logging.getLogger(__name__)

PatchSource = Union[BinaryIO, bytes, bytearray]


def _as_stream(source: PatchSource) -> BinaryIO:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return io.BytesIO(source)
    return source


def _skip(stream: BinaryIO, count: int) -> bool:
    try:
        stream.seek(count, io.SEEK_CUR)
    except (OSError, ValueError):
        return False
    return True


def apply_ips(source: PatchSource, target=None, size: int | None = None, log: logging.Logger | None = None) -> int:
    """Apply the records of an IPS patch to ``target`` in place.

    With ``target`` set to None nothing is written; the smallest buffer size
    that holds every record is returned instead (see ``measure_ips``).
    Otherwise each record is checked against ``size`` (``len(target)`` by
    default) and the number of records applied is returned. Records that
    would write out of bounds are skipped and logged.

    Patch problems are never raised: an invalid header gives 0 and a
    truncated stream stops at the last complete record.
    """
    log = log or logger
    stream = _as_stream(source)

    if target is not None:
        if size is None:
            size = len(target)
        elif size > len(target):
            raise ValueError(f"size {size} exceeds target buffer of {len(target)} bytes")

    # Verify file header
    if stream.read(len(HEADER)) != HEADER:
        return 0

    result = 0
    count = 0
    while True:
        header = stream.read(RECORD_HEADER_SIZE)
        if len(header) != RECORD_HEADER_SIZE:
            break
        count += 1
        offset, length = unpack_record_header(header)

        # Both of these mark the end of the patch
        if is_terminator(header):
            break

        end = offset + length
        if length:
            if target is None:
                result = max(result, end)
                if not _skip(stream, length):
                    break
            elif end > size:
                log.warning("IPS: Failed applying COPY patch #%d to 0x%X..0x%X of 0x%X bytes.", count, offset, end - 1, size)
                if not _skip(stream, length):
                    break
            else:
                payload = stream.read(length)
                if len(payload) != length:
                    log.warning("IPS: Failed reading COPY patch #%d from the file.", count)
                    break
                target[offset:end] = payload
                log.debug("IPS: Applied COPY patch #%d to 0x%X..0x%X.", count, offset, end - 1)
                result += 1
        else:
            body = stream.read(FILL_BODY_SIZE)
            if len(body) != FILL_BODY_SIZE:
                if target is not None:
                    log.warning("IPS: Failed reading FILL patch #%d from the file.", count)
                break
            run, value = unpack_fill_body(body)
            end = offset + run

            if target is None:
                if run:
                    result = max(result, end)
            elif not run or end > size:
                log.warning(
                    "IPS: Failed applying FILL patch #%d (0x%02X) to 0x%X..0x%X of 0x%X bytes.",
                    count, value, offset, end - 1, size,
                )
            else:
                target[offset:end] = bytes([value]) * run
                log.debug("IPS: Applied FILL patch #%d (0x%02X) to 0x%X..0x%X.", count, value, offset, end - 1)
                result += 1

    return result


def measure_ips(source: PatchSource, log: logging.Logger | None = None) -> int:
    """Return the buffer size a patch assumes, i.e. the largest record end."""
    return apply_ips(source, None, log=log)


def iter_records(source: PatchSource) -> Iterator[Record]:
    stream = _as_stream(source)
    if stream.read(len(HEADER)) != HEADER:
        raise IPSError("Invalid header for an IPS patch")

    index = 0
    while True:
        header = stream.read(RECORD_HEADER_SIZE)
        if len(header) != RECORD_HEADER_SIZE or is_terminator(header):
            return
        index += 1
        offset, length = unpack_record_header(header)
        if length:
            if not _skip(stream, length):
                return
            yield Record(index, offset, length, "copy")
        else:
            body = stream.read(FILL_BODY_SIZE)
            if len(body) != FILL_BODY_SIZE:
                return
            run, value = unpack_fill_body(body)
            yield Record(index, offset, run, "fill", value)
