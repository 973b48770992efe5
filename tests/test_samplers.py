import pytest
import geopandas as gpd
from shapely.geometry import box

from firerecovery.sampling.samplers import lattice_shape, sample_in_polygon, sample_random_cells, sample_regular
from firerecovery.utils.errors import SamplingError

from conftest import UTM


def test_regular_sample_covers_the_raster_extent(ndvi_stack, fire_perimeter):
    samples = sample_regular(ndvi_stack, 54)

    assert len(samples) == 54
    assert samples.crs.to_epsg() == 32610
    xmin, ymin, xmax, ymax = ndvi_stack.bounds
    assert samples.geometry.x.between(xmin, xmax).all()
    assert samples.geometry.y.between(ymin, ymax).all()

    # The lattice spans the whole grid, not just the perimeter
    perimeter = fire_perimeter.geometry.iloc[0]
    inside = samples.geometry.within(perimeter)
    assert (~inside).any()


def test_regular_sample_cells_are_distinct_and_deterministic(ndvi_stack):
    first = sample_regular(ndvi_stack, 54)
    second = sample_regular(ndvi_stack, 54)
    cells = list(zip(first['row'], first['col']))
    assert len(set(cells)) == 54
    assert first.geometry.equals(second.geometry)


@pytest.mark.parametrize('n', [1, 7, 53, 599, 600])
def test_regular_sample_returns_exactly_n(ndvi_stack, n):
    samples = sample_regular(ndvi_stack, n)
    assert len(samples) == n
    assert len(set(zip(samples['row'], samples['col']))) == n


def test_regular_sample_carries_band_values(ndvi_stack):
    samples = sample_regular(ndvi_stack, 54, bands=['2017'])
    assert '2017' in samples.columns
    assert '2016' not in samples.columns
    row = samples.iloc[10]
    expected = ndvi_stack.band('2017')[row['row'], row['col']]
    assert row['2017'] == pytest.approx(float(expected))


@pytest.mark.parametrize('n', [0, -3, 601])
def test_regular_sample_rejects_bad_counts(ndvi_stack, n):
    with pytest.raises(SamplingError):
        sample_regular(ndvi_stack, n)


def test_lattice_follows_grid_aspect():
    ny, nx = lattice_shape(54, 20, 30)
    assert (ny, nx) == (6, 9)
    ny, nx = lattice_shape(5, 1, 100)
    assert ny == 1 and nx == 5


def test_random_cells_valid_only(ndvi_stack):
    samples = sample_random_cells(ndvi_stack, 599, valid_only=True, seed=1)
    assert len(samples) == 599
    assert not samples['2016'].isna().any()
    with pytest.raises(SamplingError):
        sample_random_cells(ndvi_stack, 600, valid_only=True)


def test_random_cells_seeded(ndvi_stack):
    a = sample_random_cells(ndvi_stack, 20, seed=7)
    b = sample_random_cells(ndvi_stack, 20, seed=7)
    assert list(zip(a['row'], a['col'])) == list(zip(b['row'], b['col']))
    assert len(set(zip(a['row'], a['col']))) == 20


def test_polygon_sample_points_are_inside(fire_perimeter):
    samples = sample_in_polygon(fire_perimeter, 10, seed=42)
    perimeter = fire_perimeter.geometry.iloc[0]

    assert len(samples) == 10
    assert samples.crs == fire_perimeter.crs
    assert all(perimeter.contains(p) for p in samples.geometry)


def test_polygon_sample_is_reproducible(fire_perimeter):
    a = sample_in_polygon(fire_perimeter, 25, seed=3)
    b = sample_in_polygon(fire_perimeter, 25, seed=3)
    assert a.geometry.equals(b.geometry)


def test_polygon_sample_accepts_shapely_geometry():
    samples = sample_in_polygon(box(0, 0, 10, 10), 5, seed=0, crs=UTM)
    assert len(samples) == 5
    assert samples.crs.to_epsg() == 32610


@pytest.mark.parametrize('geom', [box(0, 0, 0, 10), box(0, 0, 10, 10).boundary])
def test_polygon_sample_rejects_zero_area(geom):
    boundary = gpd.GeoDataFrame(geometry=[geom], crs=UTM)
    with pytest.raises(SamplingError):
        sample_in_polygon(boundary, 10)


def test_polygon_sample_rejects_bad_counts(fire_perimeter):
    with pytest.raises(SamplingError):
        sample_in_polygon(fire_perimeter, 0)


def test_polygon_sample_gives_up_after_max_attempts():
    with pytest.raises(SamplingError):
        sample_in_polygon(box(0, 0, 10, 10), 5, seed=0, max_attempts=0)


def test_polygon_sample_errors_name_the_boundary_layer():
    boundary = gpd.GeoDataFrame(geometry=[box(0, 0, 0, 10)], crs=UTM)
    boundary.attrs['name'] = 'perimeter_2021'
    with pytest.raises(SamplingError) as excinfo:
        sample_in_polygon(boundary, 10)
    assert excinfo.value.layer == 'perimeter_2021'
    assert excinfo.value.stage == 'sample'
