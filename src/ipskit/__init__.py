"""Apply, measure and create IPS binary patches."""
from .decoder import apply_ips, iter_records, measure_ips
from .encoder import create_ips
from .records import IPSError, PatchTooLargeError, Record
from .rom_utils import apply_ips_file, get_ips_filename, measure_ips_file

__all__ = [
    "apply_ips",
    "apply_ips_file",
    "create_ips",
    "get_ips_filename",
    "iter_records",
    "measure_ips",
    "measure_ips_file",
    "IPSError",
    "PatchTooLargeError",
    "Record",
]
