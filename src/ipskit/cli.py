import logging
from pathlib import Path

import click

from . import config as config_mod
from . import decoder, encoder, rom_utils
from .records import HEADER, IPSError, PatchTooLargeError


def _setup_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level), format="%(levelname)s %(name)s: %(message)s")


def _patch_rom(rom, patch, out, expand, uppercase):
    """Apply one patch to a ROM copy and return (applied, final size)."""
    data = bytearray(rom_utils.read_rom_bytes(rom))
    ips_path = Path(patch) if patch else rom_utils.get_ips_filename(rom, uppercase=uppercase)
    if ips_path is None:
        raise click.ClickException(f"Cannot derive a patch name from '{rom}', pass --patch")
    if not ips_path.exists():
        raise click.ClickException(f"Patch file not found: {ips_path}")
    with open(ips_path, "rb") as f:
        if f.read(len(HEADER)) != HEADER:
            raise click.ClickException(f"{ips_path} is not an IPS patch")

    if expand:
        needed = rom_utils.measure_ips_file(None, patch_path=ips_path)
        if needed > len(data):
            click.echo(f"Expanding ROM from {len(data)} to {needed} bytes")
            data.extend(bytes(needed - len(data)))

    applied = rom_utils.apply_ips_file(None, data, patch_path=ips_path)
    if not applied:
        click.echo(f"Warning: no records applied from {ips_path}")
    rom_utils.write_rom_bytes(out, data)
    return applied, len(data)


@click.group()
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), default=None, help="YAML config file (default: ./ipskit.yaml if present)")
@click.option("--log-level", type=click.Choice(config_mod.LOG_LEVELS, case_sensitive=False), default=None, help="Override the configured log level")
@click.pass_context
def main(ctx, config_path, log_level):
    """IPS patch toolkit: apply, measure and create .ips patches."""
    try:
        cfg = config_mod.load_config(config_path)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--config")
    if log_level:
        cfg["log_level"] = log_level.upper()
    _setup_logging(cfg["log_level"])
    ctx.obj = cfg


@main.command()
@click.option("--rom", type=click.Path(exists=True, dir_okay=False), required=True, help="Path to original ROM")
@click.option("--patch", type=click.Path(dir_okay=False), default=None, help="IPS patch (default: ROM name with .ips)")
@click.option("--out", type=click.Path(dir_okay=False), required=True, help="Output patched ROM copy")
@click.option("--expand/--no-expand", default=None, help="Grow the ROM to the size the patch assumes")
@click.pass_obj
def apply(cfg, rom, patch, out, expand):
    """Apply an IPS patch to a copy of ROM."""
    if expand is None:
        expand = cfg["expand"]
    applied, size = _patch_rom(rom, patch, out, expand, cfg["uppercase_ext"])
    click.echo(f"Applied {applied} records → {out} ({size} bytes)")


@main.command()
@click.option("--patch", type=click.Path(exists=True, dir_okay=False), required=True)
def measure(patch):
    """Print the ROM size a patch assumes."""
    with open(patch, "rb") as f:
        size = decoder.measure_ips(f)
    click.echo(f"{size} (0x{size:X}) bytes")


@main.command()
@click.option("--original", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--modified", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--out", type=click.Path(dir_okay=False), required=True)
def create(original, modified, out):
    """Create an IPS patch from ORIGINAL to MODIFIED."""
    orig = rom_utils.read_rom_bytes(original)
    mod = rom_utils.read_rom_bytes(modified)
    if len(orig) != len(mod):
        raise click.ClickException("IPS builder requires equal length ROMs (no trunc/extend).")
    try:
        patch_bytes = encoder.create_ips(orig, mod)
    except PatchTooLargeError as e:
        raise click.ClickException(str(e))
    rom_utils.write_rom_bytes(out, patch_bytes)
    click.echo(f"IPS patch written: {out} ({len(patch_bytes)} bytes)")


@main.command()
@click.option("--patch", type=click.Path(exists=True, dir_okay=False), required=True)
def info(patch):
    """Print patch size, CRC32, extent and its records."""
    try:
        summary = rom_utils.inspect_patch(patch)
    except IPSError as e:
        raise click.ClickException(f"{patch}: {e}")
    click.echo(f"Size: {summary['size']} bytes")
    click.echo(f"CRC32: {summary['crc32']:08X}")
    click.echo(f"Extent: 0x{summary['extent']:X}")
    click.echo(f"Records: {len(summary['records'])}")
    for r in summary["records"]:
        if r.kind == "fill":
            click.echo(f"  #{r.index:<4} FILL @0x{r.offset:06X} len={r.length} value=0x{r.fill_value:02X}")
        else:
            click.echo(f"  #{r.index:<4} COPY @0x{r.offset:06X} len={r.length}")


@main.command()
@click.option("--manifest", type=click.Path(exists=True, dir_okay=False), required=True, help="YAML list of jobs")
@click.pass_obj
def batch(cfg, manifest):
    """Apply every job listed in a YAML manifest."""
    try:
        jobs = config_mod.load_manifest(manifest)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--manifest")
    for job in jobs:
        expand = cfg["expand"] if job["expand"] is None else job["expand"]
        if not job["rom"].exists():
            raise click.ClickException(f"ROM not found: {job['rom']}")
        applied, size = _patch_rom(job["rom"], job["patch"], job["out"], expand, cfg["uppercase_ext"])
        click.echo(f"{job['rom'].name}: applied {applied} records → {job['out']} ({size} bytes)")


if __name__ == "__main__":
    main()
