import logging
import zlib
from pathlib import Path

from .decoder import apply_ips, iter_records, measure_ips

logger = logging.getLogger(__name__)

# Smallest suffix we will swap for .ips, not counting the dot
MIN_SUFFIX_LEN = 3


def get_ips_filename(path: str | Path, uppercase: bool = False) -> Path | None:
    """Return the patch file that sits next to ``path``.

    ``game.nes`` maps to ``game.ips`` when that exists, else to ``game.IPS``.
    Names without a suffix of at least three characters have no patch file.
    With ``uppercase`` the preference is reversed.
    """
    path = Path(path)
    if len(path.suffix) <= MIN_SUFFIX_LEN:
        return None
    first, second = (".IPS", ".ips") if uppercase else (".ips", ".IPS")
    candidate = path.with_suffix(first)
    if candidate.exists():
        return candidate
    return path.with_suffix(second)


def read_rom_bytes(path: str | Path) -> bytes:
    return Path(path).read_bytes()


def write_rom_bytes(path: str | Path, data: bytes) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    Path(path).write_bytes(data)


def crc32(data: bytes) -> int:
    return zlib.crc32(data) & 0xFFFFFFFF


def _resolve_patch(rom_path, patch_path, uppercase: bool) -> Path | None:
    if patch_path is not None:
        return Path(patch_path)
    if rom_path is None:
        return None
    return get_ips_filename(rom_path, uppercase=uppercase)


def apply_ips_file(
    rom_path: str | Path | None,
    target,
    size: int | None = None,
    patch_path: str | Path | None = None,
    uppercase: bool = False,
    log: logging.Logger | None = None,
) -> int:
    """Apply the patch belonging to ``rom_path`` (or ``patch_path``) to ``target``.

    Returns the number of records applied, 0 when no patch file can be found.
    """
    log = log or logger
    ips_path = _resolve_patch(rom_path, patch_path, uppercase)
    if ips_path is None:
        return 0
    try:
        f = open(ips_path, "rb")
    except OSError as e:
        log.debug("IPS: Cannot open %s: %s", ips_path, e)
        return 0
    with f:
        return apply_ips(f, target, size, log=log)


def measure_ips_file(
    rom_path: str | Path | None,
    patch_path: str | Path | None = None,
    uppercase: bool = False,
    log: logging.Logger | None = None,
) -> int:
    log = log or logger
    ips_path = _resolve_patch(rom_path, patch_path, uppercase)
    if ips_path is None:
        return 0
    try:
        f = open(ips_path, "rb")
    except OSError as e:
        log.debug("IPS: Cannot open %s: %s", ips_path, e)
        return 0
    with f:
        return measure_ips(f, log=log)


def inspect_patch(path: str | Path) -> dict:
    data = read_rom_bytes(path)
    records = list(iter_records(data))
    return {
        "size": len(data),
        "crc32": crc32(data),
        "extent": measure_ips(data),
        "records": records,
    }
