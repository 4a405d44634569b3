from __future__ import annotations

import io

import pytest

import colors


def test_read_colortable_skips_comments() -> None:
    table = colors.read_colortable(io.StringIO("# header\n(1.0, 0.0, 0.0)\n\n'blue'\n"))
    assert table == [(1.0, 0.0, 0.0), (0.0, 0.0, 1.0)]


def test_malformed_colortable() -> None:
    with pytest.raises(RuntimeError, match="Malformed"):
        colors.read_colortable(io.StringIO("(1.0, 0.0\n"))


def test_bundled_precipitation_table() -> None:
    norm, cmap = colors.registry.get_with_boundaries("jma_precip", colors.PRECIP_BOUNDARIES)
    assert cmap.N == 8
    assert norm.N == len(colors.PRECIP_BOUNDARIES)
    assert norm.Ncmap == cmap.N
    assert norm(5) == 0
    assert norm(900) == 7


def test_boundaries_must_match_colors() -> None:
    with pytest.raises(ValueError, match="needs 9 boundaries"):
        colors.registry.get_with_boundaries("jma_precip", [0, 1, 2])


def test_scan_dir_skips_unparsable_tables(tmp_path) -> None:
    (tmp_path / "good.tbl").write_text("(0.0, 0.0, 0.0)\n(1.0, 1.0, 1.0)\n")
    (tmp_path / "bad.tbl").write_text("not a color(\n")
    registry = colors.ColortableRegistry()
    registry.scan_dir(str(tmp_path))
    assert list(registry) == ["good"]
    assert len(registry["good"]) == 2
