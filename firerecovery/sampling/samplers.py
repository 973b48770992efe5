# -*- coding: utf-8 -*-
"""
Created on Fri Jun 20 10:31:07 2025

@author: Labadmin

Spatial sampling of locations for plotting and analysis.

sample_regular() spreads its lattice over the full rectangular extent of a raster. When the data of interest only
covers an irregular footprint (e.g., a fire perimeter inside a rectangular grid), some lattice points fall outside
it. Use sample_in_polygon() when every point must lie inside the boundary.
"""
import math

import numpy as np
import geopandas as gpd
import shapely
from shapely.geometry import Point
from rasterio.transform import xy

from firerecovery.layers.load_layers import layer_name
from firerecovery.utils.errors import SamplingError
from firerecovery.utils.geospatial_utils import boundary_polygon


def _check_count(n, available, domain):
    if not isinstance(n, (int, np.integer)) or isinstance(n, bool):
        raise SamplingError(f'Sample size must be an integer, got {n!r}', layer=domain)
    if n <= 0:
        raise SamplingError(f'Sample size must be positive, got {n}', layer=domain)
    if n > available:
        raise SamplingError(f'Requested {n} samples but {domain} only has {available} cells', layer=domain)


def lattice_shape(n, rows, cols):
    """Picks the number of lattice rows and columns for 'n' samples on a rows x cols grid.
    The lattice follows the aspect ratio of the grid and never has more lines than the grid has cells.

    Returns:
        ny, nx (int): Lattice rows and columns, with ny * nx >= n.
    """
    ny = min(rows, max(1, int(round(math.sqrt(n * rows / cols)))))
    nx = min(cols, math.ceil(n / ny))
    if nx * ny < n:
        ny = min(rows, math.ceil(n / nx))
    return ny, nx


def _points_frame(raster, rows, cols, bands):
    xs, ys = xy(raster.transform, rows, cols, offset='center')
    gdf = gpd.GeoDataFrame({'row': rows, 'col': cols},
                           geometry=gpd.points_from_xy(xs, ys),
                           crs=raster.crs)
    for key in bands:
        i = raster.band_index(key)
        values = raster.data[i][rows, cols].astype(float)
        values[~raster.valid_mask(i + 1)[rows, cols]] = np.nan
        gdf[raster.band_names[i]] = values
    return gdf


def sample_regular(raster, n, bands=None):
    """Samples 'n' cells on a regular lattice spread evenly across the raster extent.
    Deterministic: the same raster and 'n' always give the same cells. No cell is sampled twice.

    Args:
        raster (RasterLayer): Raster to sample.
        n (int): Number of samples.
        bands (list, optional): Bands (names or 1-based indices) whose values are returned. Defaults to all bands.

    Raises:
        SamplingError: Raised when 'n' is not positive or exceeds the number of cells.

    Returns:
        samples (gpd.GeoDataFrame): 'n' cell-centre points with columns 'row', 'col' and one column per band.
    """
    n_rows, n_cols = raster.shape
    _check_count(n, n_rows * n_cols, raster.name)
    ny, nx = lattice_shape(n, n_rows, n_cols)

    # Lattice positions are the centres of ny x nx equal blocks of the grid
    lattice_rows = np.floor((np.arange(ny) + 0.5) * n_rows / ny).astype(int)
    lattice_cols = np.floor((np.arange(nx) + 0.5) * n_cols / nx).astype(int)
    grid_rows, grid_cols = np.meshgrid(lattice_rows, lattice_cols, indexing='ij')
    grid_rows = grid_rows.ravel()
    grid_cols = grid_cols.ravel()

    # Take n evenly spaced lattice positions when the lattice has spare positions
    keep = np.round(np.linspace(0, grid_rows.size - 1, n)).astype(int)
    rows, cols = grid_rows[keep], grid_cols[keep]

    bands = raster.band_names if bands is None else bands
    return _points_frame(raster, rows, cols, bands)


def sample_random_cells(raster, n, bands=None, valid_only=False, seed=None):
    """Samples 'n' distinct cells uniformly at random (without replacement).

    Args:
        raster (RasterLayer): Raster to sample.
        n (int): Number of samples.
        bands (list, optional): Bands (names or 1-based indices) whose values are returned. Defaults to all bands.
        valid_only (bool, optional): If True, only cells holding valid data in the first band are eligible.
            Defaults to False.
        seed (int, optional): Seed for numpy's random generator. Defaults to None.

    Raises:
        SamplingError: Raised when 'n' is not positive or exceeds the number of eligible cells.

    Returns:
        samples (gpd.GeoDataFrame): 'n' cell-centre points with columns 'row', 'col' and one column per band.
    """
    eligible = raster.valid_mask(1) if valid_only else np.ones(raster.shape, dtype=bool)
    flat = np.flatnonzero(eligible)
    _check_count(n, flat.size, raster.name)

    rng = np.random.default_rng(seed)
    picked = np.sort(rng.choice(flat, size=n, replace=False))
    rows, cols = np.unravel_index(picked, raster.shape)

    bands = raster.band_names if bands is None else bands
    return _points_frame(raster, rows, cols, bands)


def sample_in_polygon(boundary, n, seed=None, crs=None, max_attempts=1000):
    """Samples 'n' points uniformly at random inside a polygon (not its bounding box).
    Every returned point satisfies polygon.contains(point).

    Args:
        boundary (shapely Polygon/MultiPolygon or gpd.GeoDataFrame): Boundary to sample. GeoDataFrames are dissolved.
        n (int): Number of samples.
        seed (int, optional): Seed for numpy's random generator. Defaults to None.
        crs (CRS-like, optional): CRS of the output. Defaults to the CRS of 'boundary' when it is a GeoDataFrame.
        max_attempts (int, optional): Maximum number of candidate batches drawn before giving up. Defaults to 1000.

    Raises:
        SamplingError: Raised when 'n' is not positive, the polygon is empty or has no area, or 'n' points
            could not be placed within 'max_attempts' batches.

    Returns:
        samples (gpd.GeoDataFrame): 'n' points.
    """
    name = layer_name(boundary, 'boundary')
    if crs is None and isinstance(boundary, (gpd.GeoDataFrame, gpd.GeoSeries)):
        crs = boundary.crs
    polygon = boundary_polygon(boundary)

    if not isinstance(n, (int, np.integer)) or isinstance(n, bool) or n <= 0:
        raise SamplingError(f'Sample size must be a positive integer, got {n!r}', layer=name)
    if polygon is None or polygon.is_empty or polygon.area <= 0:
        raise SamplingError('Boundary polygon is empty or has no area', layer=name)

    rng = np.random.default_rng(seed)
    xmin, ymin, xmax, ymax = polygon.bounds
    # Draw enough candidates per batch to cover the bounding box to polygon area ratio
    fill = polygon.area / ((xmax - xmin) * (ymax - ymin))
    batch = max(n, int(math.ceil(n / fill * 1.2)))
    shapely.prepare(polygon)

    xs, ys = [], []
    found = 0
    for _ in range(max_attempts):
        cand_x = rng.uniform(xmin, xmax, batch)
        cand_y = rng.uniform(ymin, ymax, batch)
        inside = shapely.contains_xy(polygon, cand_x, cand_y)
        xs.append(cand_x[inside])
        ys.append(cand_y[inside])
        found += int(inside.sum())
        if found >= n:
            break
    else:
        raise SamplingError(f'Only placed {found} of {n} points after {max_attempts} attempts', layer=name)

    xs = np.concatenate(xs)[:n]
    ys = np.concatenate(ys)[:n]
    return gpd.GeoDataFrame(geometry=[Point(x, y) for x, y in zip(xs, ys)], crs=crs)
