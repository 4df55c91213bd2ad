from pathlib import Path

import pytest
from click.testing import CliRunner

from ipskit.cli import main

ORIGINAL = bytes(range(16))
MODIFIED = bytes([0, 1, 0xAA, 0xBB, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 0xCC, 0xDD])


@pytest.fixture
def runner(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return CliRunner()


@pytest.fixture
def roms(tmp_path: Path):
    original = tmp_path / "game.nes"
    modified = tmp_path / "game_mod.nes"
    original.write_bytes(ORIGINAL)
    modified.write_bytes(MODIFIED)
    return original, modified


def test_create_then_apply(runner, roms, tmp_path: Path):
    original, modified = roms
    result = runner.invoke(main, ["create", "--original", str(original), "--modified", str(modified), "--out", str(tmp_path / "game.ips")])
    assert result.exit_code == 0, result.output
    assert "IPS patch written" in result.output

    out = tmp_path / "out" / "patched.nes"
    result = runner.invoke(main, ["apply", "--rom", str(original), "--out", str(out)])
    assert result.exit_code == 0, result.output
    assert "Applied 2 records" in result.output
    assert out.read_bytes() == MODIFIED


def test_create_rejects_unequal_sizes(runner, roms, tmp_path: Path):
    original, _ = roms
    short = tmp_path / "short.nes"
    short.write_bytes(b"\x00")
    result = runner.invoke(main, ["create", "--original", str(original), "--modified", str(short), "--out", str(tmp_path / "x.ips")])
    assert result.exit_code != 0
    assert "equal length" in result.output


def test_apply_without_patch_fails(runner, roms, tmp_path: Path):
    original, _ = roms
    result = runner.invoke(main, ["apply", "--rom", str(original), "--out", str(tmp_path / "o.nes")])
    assert result.exit_code != 0
    assert "Patch file not found" in result.output


def test_apply_rejects_non_ips_file(runner, roms, tmp_path: Path):
    original, _ = roms
    bogus = tmp_path / "bogus.ips"
    bogus.write_bytes(b"not a patch")
    result = runner.invoke(main, ["apply", "--rom", str(original), "--patch", str(bogus), "--out", str(tmp_path / "o.nes")])
    assert result.exit_code != 0
    assert "not an IPS patch" in result.output


def test_apply_expand_grows_rom(runner, roms, tmp_path: Path):
    original, _ = roms
    patch = tmp_path / "grow.ips"
    patch.write_bytes(b"PATCH" + b"\x00\x00\x14\x00\x02\x01\x02" + b"EOF")
    out = tmp_path / "grown.nes"

    result = runner.invoke(main, ["apply", "--rom", str(original), "--patch", str(patch), "--out", str(out)])
    assert result.exit_code == 0, result.output
    assert "no records applied" in result.output
    assert out.read_bytes() == ORIGINAL

    result = runner.invoke(main, ["apply", "--rom", str(original), "--patch", str(patch), "--out", str(out), "--expand"])
    assert result.exit_code == 0, result.output
    assert out.read_bytes() == ORIGINAL + bytes(4) + b"\x01\x02"


def test_expand_from_config(runner, roms, tmp_path: Path):
    original, _ = roms
    (tmp_path / "ipskit.yaml").write_text("expand: true\n")
    patch = tmp_path / "grow.ips"
    patch.write_bytes(b"PATCH" + b"\x00\x00\x10\x00\x00\x00\x04\xee" + b"EOF")
    out = tmp_path / "grown.nes"
    result = runner.invoke(main, ["apply", "--rom", str(original), "--patch", str(patch), "--out", str(out)])
    assert result.exit_code == 0, result.output
    assert out.read_bytes() == ORIGINAL + b"\xee" * 4


def test_measure(runner, tmp_path: Path):
    patch = tmp_path / "p.ips"
    patch.write_bytes(b"PATCH" + b"\x00\x01\x00\x00\x02\x01\x02" + b"EOF")
    result = runner.invoke(main, ["measure", "--patch", str(patch)])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == "258 (0x102) bytes"


def test_info_lists_records(runner, tmp_path: Path):
    patch = tmp_path / "p.ips"
    patch.write_bytes(b"PATCH" + b"\x00\x00\x01\x00\x02\x01\x02" + b"\x00\x00\x08\x00\x00\x00\x03\x7f" + b"EOF")
    result = runner.invoke(main, ["info", "--patch", str(patch)])
    assert result.exit_code == 0, result.output
    assert "Records: 2" in result.output
    assert "COPY @0x000001 len=2" in result.output
    assert "FILL @0x000008 len=3 value=0x7F" in result.output
    assert "Extent: 0xB" in result.output


def test_info_rejects_non_ips_file(runner, tmp_path: Path):
    bogus = tmp_path / "bogus.ips"
    bogus.write_bytes(b"nope")
    result = runner.invoke(main, ["info", "--patch", str(bogus)])
    assert result.exit_code != 0
    assert "Invalid header" in result.output


def test_batch(runner, roms, tmp_path: Path):
    original, modified = roms
    runner.invoke(main, ["create", "--original", str(original), "--modified", str(modified), "--out", str(tmp_path / "fix.ips")])
    manifest = tmp_path / "jobs.yaml"
    manifest.write_text(
        "jobs:\n"
        "  - rom: game.nes\n"
        "    patch: fix.ips\n"
        "    out: build/one.nes\n"
        "  - rom: game.nes\n"
        "    patch: fix.ips\n"
        "    out: build/two.nes\n"
    )
    result = runner.invoke(main, ["batch", "--manifest", str(manifest)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "build" / "one.nes").read_bytes() == MODIFIED
    assert (tmp_path / "build" / "two.nes").read_bytes() == MODIFIED


def test_batch_invalid_manifest(runner, tmp_path: Path):
    manifest = tmp_path / "jobs.yaml"
    manifest.write_text("jobs: 3\n")
    result = runner.invoke(main, ["batch", "--manifest", str(manifest)])
    assert result.exit_code != 0


def test_invalid_config_is_reported(runner, tmp_path: Path):
    cfg = tmp_path / "bad.yaml"
    cfg.write_text("colour: blue\n")
    result = runner.invoke(main, ["--config", str(cfg), "measure", "--patch", str(cfg)])
    assert result.exit_code != 0
    assert "Unknown config keys" in result.output
