# -*- coding: utf-8 -*-
"""
Created on Wed Jun 18 15:02:36 2025

@author: Labadmin

Point to polygon joins (e.g., which replanting treatments cover each plot) and the tables built from them.

Note on cardinality: a point covered by N overlapping polygons comes out of join_polygons() as N rows. Reduce the
join with aggregate_presence() or first_match() before merging it onto a one-row-per-point table.
"""
import pandas as pd
import geopandas as gpd

from firerecovery.layers.align_layers import needs_reprojection
from firerecovery.layers.load_layers import layer_name
from firerecovery.utils.errors import CRSAlignmentError

JOIN_MODES = {'all': 'left', 'intersect': 'inner'}


def join_polygons(points, polygons, how='all', predicate='intersects', columns=None, verbose=False):
    """Attaches the attributes of every polygon that intersects (or contains) each point.

    Args:
        points (gpd.GeoDataFrame): Point layer.
        polygons (gpd.GeoDataFrame): Polygon layer. Must share the CRS of 'points'.
        how (str, optional): Join cardinality policy. Defaults to 'all'.
            - 'all': every point is kept; points without a match get one row of null attributes, points matching
              N polygons get N rows.
            - 'intersect': only points matching at least one polygon are kept (one row per match).
        predicate (str, optional): Spatial predicate passed to geopandas.sjoin ('intersects', 'within', ...).
            Defaults to 'intersects'.
        columns (list of str, optional): Polygon attributes to attach. Defaults to all non-geometry columns.
        verbose (bool, optional): If True, prints a note when the join multiplies rows. Defaults to False.

    Raises:
        ValueError: Raised when 'how' is not a known join mode.
        CRSAlignmentError: Raised when the two layers do not share a CRS.

    Returns:
        joined (gpd.GeoDataFrame): Point geometries with the joined polygon attributes and an 'index_right' column.
    """
    if how not in JOIN_MODES:
        raise ValueError(f'Unknown join mode {how}, expected one of {list(JOIN_MODES)}')

    name = layer_name(polygons, 'polygons')
    if needs_reprojection(polygons.crs, points.crs, name=name):
        raise CRSAlignmentError(f'CRS {polygons.crs} does not match the point CRS {points.crs}; align layers first',
                                layer=name, stage='extract')

    if columns is not None:
        polygons = polygons[list(columns) + [polygons.geometry.name]]

    joined = gpd.sjoin(points, polygons, how=JOIN_MODES[how], predicate=predicate)

    if verbose:
        n_points = len(points)
        n_rows = len(joined)
        if n_rows > n_points:
            print(f'NOTE: join with {name} produced {n_rows} rows for {n_points} points (overlapping polygons)')
        elif n_rows < n_points:
            print(f'NOTE: {n_points - n_rows} of {n_points} points do not intersect {name}')
    return joined


def aggregate_presence(joined, id_col, attr_col, out_col=None):
    """Counts, for each point, the joined rows with a non-null value in 'attr_col'.
    A point that matched k polygons, m of which carry a value, gets a count of m (0 when nothing matched).

    Args:
        joined (pd.DataFrame): Output of join_polygons().
        id_col (str): Point identifier column.
        attr_col (str): Polygon attribute to test for presence.
        out_col (str, optional): Name of the count column. Defaults to '<attr_col>_count'.

    Returns:
        counts (pd.DataFrame): One row per point identifier with columns [id_col, out_col]. Carries no geometry.
    """
    out_col = out_col or f'{attr_col}_count'
    presence = joined[attr_col].notna().astype(int)
    counts = presence.groupby(joined[id_col].to_numpy(), sort=False).sum()
    return pd.DataFrame({id_col: counts.index, out_col: counts.to_numpy()})


def first_match(joined, id_col, columns=None):
    """Keeps the first joined polygon for each point.

    Args:
        joined (pd.DataFrame): Output of join_polygons().
        id_col (str): Point identifier column.
        columns (list of str, optional): Attributes to keep. Defaults to every column except geometry and 'index_right'.

    Returns:
        df (pd.DataFrame): One row per point identifier. Carries no geometry.
    """
    df = pd.DataFrame(joined.drop(columns=[joined.geometry.name], errors='ignore'))
    df = df.drop(columns=['index_right'], errors='ignore')
    if columns is not None:
        df = df[[id_col] + [c for c in columns if c != id_col]]
    return df.drop_duplicates(subset=id_col, keep='first').reset_index(drop=True)


def merge_records(driving, *others, id_col):
    """Left-joins tables onto the driving table (usually the raster lookup) by point identifier.
    The result has exactly one row per row of 'driving'; identifiers missing from a table get nulls.

    Args:
        driving (pd.DataFrame): Table with one row per point.
        *others (pd.DataFrame): Tables to attach. Each must have at most one row per identifier.
        id_col (str): Point identifier column, present in every table.

    Raises:
        ValueError: Raised when an attached table has duplicate identifiers, since that would inflate the row count.

    Returns:
        records (pd.DataFrame): The merged records.
    """
    records = driving
    if isinstance(records, gpd.GeoDataFrame):
        records = pd.DataFrame(records.drop(columns=[records.geometry.name]))

    for table in others:
        if isinstance(table, gpd.GeoDataFrame):
            table = pd.DataFrame(table.drop(columns=[table.geometry.name]))
        duplicated = table[id_col].duplicated()
        if duplicated.any():
            raise ValueError(f'{duplicated.sum()} duplicate values of {id_col} in a merged table; '
                             'aggregate the join before merging')
        records = records.merge(table, how='left', on=id_col, validate='many_to_one')

    return records
