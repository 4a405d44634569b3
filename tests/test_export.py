from __future__ import annotations

import csv
import datetime
import io

import pytest

from export import CSV_HEADER, grid_wkt, write_csv
from rap import LocationValue, RapFile

FIRST = datetime.datetime(2001, 4, 1, 1, 0)


def test_grid_wkt_is_a_closed_square_around_the_centre() -> None:
    wkt = grid_wkt(120.0, 46.0, 0.5, 0.25)
    assert wkt == (
        "POLYGON((119.75 46.125,120.25 46.125,120.25 45.875,119.75 45.875,119.75 46.125))"
    )


def test_write_csv_rows() -> None:
    values = [LocationValue(46.0, 120.0, 15), LocationValue(46.0, 120.5, None)]
    out = io.StringIO()

    assert write_csv(out, values, 0.5, 0.25) == 2

    rows = list(csv.reader(io.StringIO(out.getvalue())))
    assert tuple(rows[0]) == CSV_HEADER
    assert rows[1][:3] == ["120.0", "46.0", "15"]
    assert rows[1][3].startswith("POLYGON((119.75 46.125,")
    assert rows[2][:3] == ["120.5", "46.0", ""]
    # The polygon contains commas, so the geometry column is quoted
    assert '"POLYGON((' in out.getvalue()


def test_write_csv_from_a_decoding_session(make_rap) -> None:
    rap = RapFile(make_rap())
    out = io.StringIO()
    with rap.values(FIRST) as values:
        count = write_csv(out, values, rap.grid.cell_width_degrees, rap.grid.cell_height_degrees)

    assert count == rap.grid.cell_count
    rows = list(csv.reader(io.StringIO(out.getvalue())))[1:]
    assert [r[2] for r in rows] == ["15", "15", "15", "7", "15", "15", "15", "15", "15"]
    assert float(rows[-1][0]) == pytest.approx(120.5)
    assert float(rows[-1][1]) == pytest.approx(45.6)
