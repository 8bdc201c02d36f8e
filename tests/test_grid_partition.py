import math

import pytest

from gridscout.core.contracts import GeoBounds
from gridscout.core.errors import InvalidBoundsError, InvalidCellSizeError
from gridscout.grid.partition import cell_steps, partition


def _rows(cells):
    rows = {}
    for c in cells:
        rows.setdefault(c.bounds.south, []).append(c)
    return [rows[k] for k in sorted(rows)]


def test_scenario_yields_three_rows_two_columns(scenario_bounds):
    cells = partition(scenario_bounds, 100)

    lat_step, lng_step = cell_steps(scenario_bounds, 100)
    assert lat_step == pytest.approx(100 / 111)
    assert lng_step == pytest.approx(100 / (111 * math.cos(math.radians(40))))

    assert len(cells) == 6
    rows = _rows(cells)
    assert [len(r) for r in rows] == [2, 2, 2]
    assert [c.id for c in cells] == list(range(6))
    assert all(not c.searched and c.substation_count == 0 for c in cells)


def test_row_major_order(scenario_bounds):
    cells = partition(scenario_bounds, 100)
    # west -> east inside a row, then the next row north
    assert cells[0].bounds.west == scenario_bounds.west
    assert cells[1].bounds.west > cells[0].bounds.west
    assert cells[1].bounds.south == cells[0].bounds.south
    assert cells[2].bounds.south > cells[0].bounds.south
    assert cells[2].bounds.west == scenario_bounds.west


@pytest.mark.parametrize(
    "bounds,size",
    [
        (GeoBounds(north=41.0, south=39.0, east=-95.0, west=-97.0), 100),
        (GeoBounds(north=41.0, south=39.0, east=-95.0, west=-97.0), 37.5),
        (GeoBounds(north=60.5, south=58.2, east=12.9, west=4.1), 55),
        (GeoBounds(north=-33.0, south=-35.5, east=151.5, west=149.0), 20),
        (GeoBounds(north=1.0, south=0.0, east=1.0, west=0.0), 111),
    ],
)
def test_partition_covers_bounds_exactly(bounds, size):
    cells = partition(bounds, size)
    rows = _rows(cells)

    # nothing outside the bounds
    for c in cells:
        b = c.bounds
        assert bounds.south <= b.south < b.north <= bounds.north
        assert bounds.west <= b.west < b.east <= bounds.east

    # rows tile south -> north without gaps
    assert rows[0][0].bounds.south == bounds.south
    assert rows[-1][0].bounds.north == bounds.north
    for lower, upper in zip(rows, rows[1:]):
        assert lower[0].bounds.north == upper[0].bounds.south

    # columns tile west -> east without gaps, same split in every row
    for row in rows:
        assert row[0].bounds.west == bounds.west
        assert row[-1].bounds.east == bounds.east
        for a, b in zip(row, row[1:]):
            assert a.bounds.east == b.bounds.west
        assert [c.bounds.west for c in row] == [c.bounds.west for c in rows[0]]

    # areas add up
    area = sum(
        (c.bounds.north - c.bounds.south) * (c.bounds.east - c.bounds.west)
        for c in cells
    )
    assert area == pytest.approx(
        (bounds.north - bounds.south) * (bounds.east - bounds.west)
    )


def test_clamped_corner_cells(scenario_bounds):
    cells = partition(scenario_bounds, 100)
    lat_step, lng_step = cell_steps(scenario_bounds, 100)

    sw, ne = cells[0], cells[-1]
    assert (sw.bounds.south, sw.bounds.west) == (
        scenario_bounds.south,
        scenario_bounds.west,
    )
    assert (ne.bounds.north, ne.bounds.east) == (
        scenario_bounds.north,
        scenario_bounds.east,
    )
    # nominal first cell, smaller last cell
    assert sw.bounds.north - sw.bounds.south == pytest.approx(lat_step)
    assert ne.bounds.north - ne.bounds.south < lat_step
    assert ne.bounds.east - ne.bounds.west < lng_step


def test_exact_multiple_span_has_no_sliver():
    b = GeoBounds(north=2.0, south=0.0, east=1.0, west=0.0)
    cells = partition(b, 111)  # lat step == 1 degree
    assert len(_rows(cells)) == 2


def test_cell_larger_than_region_gives_single_cell():
    b = GeoBounds(north=40.1, south=40.0, east=-100.0, west=-100.1)
    cells = partition(b, 500)
    assert len(cells) == 1
    assert cells[0].bounds == b
    assert cells[0].center.lat == pytest.approx(40.05)


def test_partition_is_deterministic(scenario_bounds):
    a = partition(scenario_bounds, 42)
    b = partition(scenario_bounds, 42)
    assert [(c.id, c.bounds, c.center) for c in a] == [
        (c.id, c.bounds, c.center) for c in b
    ]


@pytest.mark.parametrize(
    "bounds",
    [
        GeoBounds(north=39.0, south=39.0, east=-95.0, west=-97.0),
        GeoBounds(north=38.0, south=39.0, east=-95.0, west=-97.0),
        GeoBounds(north=41.0, south=39.0, east=-95.0, west=-95.0),
        GeoBounds(north=41.0, south=39.0, east=-170.0, west=170.0),
        GeoBounds(north=91.0, south=39.0, east=-95.0, west=-97.0),
        GeoBounds(north=41.0, south=39.0, east=-95.0, west=-181.0),
        GeoBounds(north=float("nan"), south=39.0, east=-95.0, west=-97.0),
    ],
)
def test_invalid_bounds_rejected(bounds):
    with pytest.raises(InvalidBoundsError):
        partition(bounds, 10)


@pytest.mark.parametrize("size", [0, -5, float("inf"), float("nan")])
def test_invalid_cell_size_rejected(scenario_bounds, size):
    with pytest.raises(InvalidCellSizeError):
        partition(scenario_bounds, size)


def test_invalid_input_is_a_value_error(scenario_bounds):
    with pytest.raises(ValueError):
        partition(scenario_bounds, 0)


def test_cell_limit(scenario_bounds):
    with pytest.raises(InvalidCellSizeError):
        partition(scenario_bounds, 1, max_cells=100)
    assert len(partition(scenario_bounds, 100, max_cells=6)) == 6
