# -*- coding: utf-8 -*-
"""
Created on Wed Jun 18 13:27:09 2025

@author: Labadmin
"""
from collections import Counter

import numpy as np
import pandas as pd
from rasterio.transform import rowcol
from tqdm import tqdm

from firerecovery.layers.align_layers import needs_reprojection
from firerecovery.utils.errors import CRSAlignmentError


def cell_indices(raster, xs, ys):
    """Finds the grid cell containing each coordinate.

    Args:
        raster (RasterLayer): Raster whose affine transform is used.
        xs (array-like): X coordinates in the raster CRS.
        ys (array-like): Y coordinates in the raster CRS.

    Returns:
        rows, cols, inside (np.array): Row and column of each coordinate, and a mask of coordinates inside the grid.
    """
    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)
    if xs.size == 0:
        empty = np.array([], dtype=int)
        return empty, empty, np.array([], dtype=bool)

    rows, cols = rowcol(raster.transform, xs, ys)
    rows = np.asarray(rows, dtype=int)
    cols = np.asarray(cols, dtype=int)
    n_rows, n_cols = raster.shape
    inside = (rows >= 0) & (rows < n_rows) & (cols >= 0) & (cols < n_cols)
    return rows, cols, inside


def sample_raster(raster, xs, ys):
    """Looks up the value of every band of a raster at each coordinate.
    Coordinates outside the grid, and cells flagged as no data, are returned as NaN.

    Args:
        raster (RasterLayer): Raster to sample.
        xs (array-like): X coordinates in the raster CRS.
        ys (array-like): Y coordinates in the raster CRS.

    Returns:
        values (np.array): Float array of shape (bands, n_points).
    """
    rows, cols, inside = cell_indices(raster, xs, ys)
    values = np.full((raster.count, len(rows)), np.nan, dtype=float)
    for i in range(raster.count):
        band = raster.data[i]
        valid = raster.valid_mask(i + 1)
        r, c = rows[inside], cols[inside]
        band_vals = band[r, c].astype(float)
        band_vals[~valid[r, c]] = np.nan
        values[i, inside] = band_vals
    return values


def _column_names(rasters):
    counts = Counter(b for raster in rasters for b in raster.band_names)
    names = []
    for raster in rasters:
        for b in raster.band_names:
            names.append(f'{raster.name}_{b}' if counts[b] > 1 else b)
    return names


def extract_raster_values(points, rasters, id_col=None, verbose=False):
    """Extracts raster values at point locations.

    Every point produces exactly one row, in input order, with one column per band of each raster. A point
    outside a raster's extent, or on a no data cell, gets NaN for that raster's bands. Band names shared between
    rasters are prefixed with the raster name (e.g., 'severity_band_1').

    Args:
        points (gpd.GeoDataFrame): Point layer.
        rasters (RasterLayer or list of RasterLayer): Rasters to sample. Must share the CRS of 'points'.
        id_col (str, optional): Identifier column of 'points'. Defaults to None (the index is used, named 'point_id').
        verbose (bool, optional): If True, shows a progress bar over the rasters. Defaults to False.

    Raises:
        CRSAlignmentError: Raised when a raster CRS differs from the point CRS.

    Returns:
        df (pd.DataFrame): One row per point: the identifier column followed by the band columns.
    """
    if not isinstance(rasters, (list, tuple)):
        rasters = [rasters]

    if id_col is None:
        id_col = 'point_id'
        ids = points.index.to_numpy()
    else:
        ids = points[id_col].to_numpy()

    xs = points.geometry.x.to_numpy()
    ys = points.geometry.y.to_numpy()

    columns = {id_col: ids}
    names = iter(_column_names(rasters))
    for raster in tqdm(rasters, desc='Extracting raster values', disable=not verbose):
        if needs_reprojection(raster.crs, points.crs, name=raster.name):
            raise CRSAlignmentError(f'CRS {raster.crs} does not match the point CRS {points.crs}; align layers first',
                                    layer=raster.name, stage='extract')
        values = sample_raster(raster, xs, ys)
        for i in range(raster.count):
            columns[next(names)] = values[i]

    df = pd.DataFrame(columns)
    if verbose:
        n_missing = df.drop(columns=id_col).isna().all(axis=1).sum()
        print(f'{n_missing} of {len(df)} points have no data in any raster')
    return df
