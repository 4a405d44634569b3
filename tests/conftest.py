from __future__ import annotations

import datetime
import os
import struct
import sys
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

os.environ.setdefault("MPLBACKEND", "Agg")

BASE_TIME = datetime.datetime(2001, 4, 1, 1, 0)

# 3x3 cells from 46N 120E, 0.25 degree wide and 0.2 degree high
GRID = {
    "start_latitude": 46_000_000,
    "start_longitude": 120_000_000,
    "cell_width": 250_000,
    "cell_height": 200_000,
    "horizontal_count": 3,
    "vertical_count": 3,
}

LEVEL_VALUES = [0, 7, 15, 0xFFFF]
# Index 5 expands to level 2 repeated 1 + 2 times
LEVEL_REPETITIONS = [(0, 0), (1, 0), (0, 7), (3, 2), (1, 1), (2, 1)]
SCENARIO_TOKENS = bytes([0x05, 0x81, 0xC2, 0x03])


def radar_status(i: int) -> int:
    return (1 << (i % 64)) | 0x1


def station_count(i: int) -> int:
    return 1300 + i


def build_rap(
    tokens: bytes | list[bytes] = SCENARIO_TOKENS,
    *,
    count: int = 24,
    identifier: bytes = b"RAP",
    version: bytes = b"1.00",
    comment: bytes = b"synthetic analysis",
    trailer: bytes = b"\r\n\x00",
    month: int | None = None,
    map_type: int = 1,
    method: int = 1,
    grid: dict | None = None,
    level_values: list[int] = LEVEL_VALUES,
    level_repetitions: list[tuple[int, int]] = LEVEL_REPETITIONS,
) -> bytes:
    grid = dict(GRID, **(grid or {}))
    if isinstance(tokens, (bytes, bytearray)):
        tokens = [bytes(tokens)] * count

    header_size = (
        77 + 3 + 4 + 20 * count + 40 + 4 + 2 * len(level_values) + 2 + 2 * len(level_repetitions)
    )
    step = datetime.timedelta(minutes=24 * 60 // count)

    head = bytearray()
    head += identifier.ljust(6) + version.ljust(5) + comment.ljust(66)
    head += trailer
    head += struct.pack("<L", count)

    records = bytearray()
    for i in range(count):
        ts = BASE_TIME + i * step
        offset = header_size + len(records)
        head += struct.pack(
            "<HBBBBH8xL",
            ts.year,
            ts.month if month is None else month,
            ts.day,
            ts.hour,
            ts.minute,
            200,
            offset,
        )
        tok = tokens[i]
        records += struct.pack("<L", len(tok)) + tok
        records += struct.pack("<QL", radar_status(i), station_count(i))

    head += struct.pack(
        "<2xHLLLLHH16x",
        map_type,
        grid["start_latitude"],
        grid["start_longitude"],
        grid["cell_width"],
        grid["cell_height"],
        grid["horizontal_count"],
        grid["vertical_count"],
    )
    head += struct.pack("<HH", method, len(level_values))
    head += struct.pack(f"<{len(level_values)}H", *level_values)
    head += struct.pack("<H", len(level_repetitions))
    for level, repeat in level_repetitions:
        head += struct.pack("<BB", level, repeat)

    assert len(head) == header_size
    return bytes(head + records)


@pytest.fixture
def make_rap(tmp_path):
    def _make(name: str = "J2001401.RAP", truncate: int = 0, **kwargs) -> Path:
        data = build_rap(**kwargs)
        if truncate:
            data = data[:-truncate]
        path = tmp_path / name
        path.write_bytes(data)
        return path

    return _make
