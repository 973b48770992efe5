import numpy as np
import pytest
import geopandas as gpd
from rasterio.transform import from_origin
from shapely.geometry import Point, Polygon, box

from firerecovery.layers.load_layers import RasterLayer

UTM = 'EPSG:32610'
ORIGIN_X, ORIGIN_Y, CELL = 500000.0, 4200000.0, 30.0
ROWS, COLS = 20, 30


def cell_centre(row, col):
    return ORIGIN_X + (col + 0.5) * CELL, ORIGIN_Y - (row + 0.5) * CELL


@pytest.fixture
def ndvi_stack():
    """Three yearly NDVI bands on a 20 x 30 grid of 30 m cells. Cell (0, 0) is no data."""
    base = np.arange(ROWS * COLS, dtype='float32').reshape(ROWS, COLS) / (ROWS * COLS)
    data = np.stack([base, base + 0.1, base + 0.2]).astype('float32')
    data[:, 0, 0] = np.nan
    return RasterLayer.from_array(data, from_origin(ORIGIN_X, ORIGIN_Y, CELL, CELL), UTM,
                                  band_names=['2016', '2017', '2018'], name='ndvi')


@pytest.fixture
def rdnbr_raster():
    """RdNBR values increasing from -1200 to 400 across the grid."""
    data = np.linspace(-1200, 400, ROWS * COLS, dtype='float32').reshape(ROWS, COLS)
    return RasterLayer.from_array(data, from_origin(ORIGIN_X, ORIGIN_Y, CELL, CELL), UTM, nodata=-9999, name='rdnbr')


@pytest.fixture
def plots():
    """Four plots: two inside the grid, one on the no data cell, one outside the grid."""
    coords = [cell_centre(0, 0), cell_centre(0, 1), cell_centre(10, 15), (ORIGIN_X + 5000, ORIGIN_Y + 5000)]
    return gpd.GeoDataFrame({'plot_id': [101, 102, 103, 104]},
                            geometry=[Point(x, y) for x, y in coords],
                            crs=UTM)


@pytest.fixture
def fire_perimeter():
    """An L-shaped perimeter inside the grid."""
    x0, y0 = ORIGIN_X + 150, ORIGIN_Y - 450
    shape = Polygon([(x0, y0), (x0 + 450, y0), (x0 + 450, y0 + 120), (x0 + 120, y0 + 120),
                     (x0 + 120, y0 + 300), (x0, y0 + 300)])
    return gpd.GeoDataFrame({'fire': ['test fire']}, geometry=[shape], crs=UTM)


@pytest.fixture
def treatment_points():
    return gpd.GeoDataFrame({'plot_id': [1, 2, 3, 4]},
                            geometry=[Point(0.5, 0.5), Point(1.5, 0.5), Point(5, 5), Point(2.5, 0.5)],
                            crs=UTM)


@pytest.fixture
def treatments():
    """Overlapping replanting polygons. Plot 1 falls in A, B and D; plot 2 in B and C; B has no treatment."""
    return gpd.GeoDataFrame({'treatment': ['planted 2019', None, 'planted 2020', 'planted 2021']},
                            geometry=[box(0, 0, 1, 1), box(0, 0, 2, 1), box(1, 0, 2, 1), box(0, 0, 0.8, 0.8)],
                            crs=UTM)
