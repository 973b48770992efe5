# -*- coding: utf-8 -*-
"""
Created on Tue Jun 17 09:02:55 2025

@author: Labadmin

Before any layers are compared spatially (point lookups, spatial joins, sampling) they must share one CRS.
Reprojection is only performed when a layer's CRS differs from the reference CRS.
"""
import numpy as np
import pyproj
import geopandas as gpd
from pyproj.exceptions import CRSError as ProjCRSError, ProjError
from rasterio.crs import CRS
from rasterio.warp import calculate_default_transform, reproject, Resampling
from tqdm import tqdm

from firerecovery.layers.load_layers import RasterLayer, layer_name
from firerecovery.utils.errors import CRSAlignmentError


def _to_pyproj(crs, name):
    if crs is None:
        raise CRSAlignmentError('CRS is undefined', layer=name)
    try:
        return pyproj.CRS.from_user_input(crs)
    except ProjCRSError as err:
        raise CRSAlignmentError(f'Could not interpret CRS {crs}: {err}', layer=name) from err


def needs_reprojection(layer_crs, reference_crs, name=None):
    """Checks whether a layer has to be reprojected to match the reference CRS.

    Args:
        layer_crs (CRS-like): CRS of the layer (pyproj, rasterio, EPSG string, WKT...).
        reference_crs (CRS-like): The reference CRS.
        name (str, optional): Layer name used in error messages. Defaults to None.

    Raises:
        CRSAlignmentError: Raised when either CRS is undefined or cannot be interpreted.

    Returns:
        bool: True if the two CRSs differ.
    """
    src = _to_pyproj(layer_crs, name)
    ref = _to_pyproj(reference_crs, 'reference')
    if src.equals(ref, ignore_axis_order=True):
        return False

    # WKT round trips through GDAL can drop metadata, so fall back to the EPSG codes
    src_epsg, ref_epsg = src.to_epsg(), ref.to_epsg()
    return not (src_epsg is not None and src_epsg == ref_epsg)


def reproject_vector(gdf, reference_crs, name=None):
    """Reprojects a GeoDataFrame to the reference CRS.

    Args:
        gdf (gpd.GeoDataFrame): Layer to reproject.
        reference_crs (CRS-like): Target CRS.
        name (str, optional): Layer name used in error messages. Defaults to gdf.attrs["name"].

    Raises:
        CRSAlignmentError: Raised when the layer has no CRS, or the transformation produces non-finite coordinates.

    Returns:
        gdf (gpd.GeoDataFrame): Reprojected copy of the layer.
    """
    name = name or layer_name(gdf)
    if gdf.crs is None:
        raise CRSAlignmentError('CRS is undefined', layer=name)

    try:
        out = gdf.to_crs(reference_crs)
    except (ProjCRSError, ProjError, ValueError) as err:
        raise CRSAlignmentError(f'Could not reproject to {reference_crs}: {err}', layer=name) from err

    # pyproj returns inf for points it cannot transform
    if not out.empty and not np.all(np.isfinite(out.total_bounds)):
        raise CRSAlignmentError(f'Reprojection to {reference_crs} produced non-finite coordinates', layer=name)

    out.attrs['name'] = name
    return out


def reproject_raster(raster, reference_crs, resampling=Resampling.nearest, name=None):
    """Reprojects every band of a RasterLayer to the reference CRS.
    Nearest neighbour is used by default so categorical rasters (e.g., severity classes) keep their codes.

    Args:
        raster (RasterLayer): Raster to reproject.
        reference_crs (CRS-like): Target CRS.
        resampling (rasterio.enums.Resampling, optional): Resampling method. Defaults to Resampling.nearest.
        name (str, optional): Layer name used in error messages. Defaults to raster.name.

    Raises:
        CRSAlignmentError: Raised when the raster has no CRS or the warp fails.

    Returns:
        raster (RasterLayer): Reprojected copy of the raster.
    """
    name = name or raster.name
    if raster.crs is None:
        raise CRSAlignmentError('CRS is undefined', layer=name)

    rows, cols = raster.shape
    try:
        dst_crs = CRS.from_user_input(reference_crs)
        transform, width, height = calculate_default_transform(
            raster.crs, dst_crs, cols, rows, *raster.bounds
        )
    except Exception as err:
        # rasterio surfaces GDAL/PROJ failures through several private exception types
        raise CRSAlignmentError(f'Could not compute transform to {reference_crs}: {err}', layer=name) from err

    if not np.all(np.isfinite([transform.a, transform.b, transform.c, transform.d, transform.e, transform.f])):
        raise CRSAlignmentError(f'Reprojection to {reference_crs} produced a degenerate grid', layer=name)

    # Cells outside the warped footprint are filled with the no data marker
    data, nodata = raster.nodata_fill()
    dst_data = np.full((raster.count, height, width), nodata, dtype=data.dtype)

    for i in range(raster.count):
        try:
            reproject(
                source=data[i],
                destination=dst_data[i],
                src_transform=raster.transform,
                src_crs=raster.crs,
                src_nodata=nodata,
                dst_transform=transform,
                dst_crs=dst_crs,
                dst_nodata=nodata,
                resampling=resampling
            )
        except Exception as err:
            raise CRSAlignmentError(f'Could not reproject band {raster.band_names[i]}: {err}', layer=name) from err

    return raster.copy(data=dst_data, transform=transform, crs=dst_crs, nodata=nodata)


def align_to_grid(raster, reference, resampling=Resampling.nearest):
    """
    Resamples 'raster' onto the exact grid (CRS, resolution, and pixel dimensions) of 'reference',
    so cells of the two rasters can be compared one to one.

    Args:
        raster (RasterLayer): Raster to align.
        reference (RasterLayer): Raster whose grid is copied.
        resampling (rasterio.enums.Resampling, optional): Resampling method. Defaults to Resampling.nearest.

    Returns:
        raster (RasterLayer): Aligned copy of 'raster'.
    """
    if raster.crs is None:
        raise CRSAlignmentError('CRS is undefined', layer=raster.name)
    if reference.crs is None:
        raise CRSAlignmentError('CRS is undefined', layer=reference.name)

    dst_height, dst_width = reference.shape
    data, nodata = raster.nodata_fill()

    # Allocate an array for the reprojected data
    dst_data = np.full((raster.count, dst_height, dst_width), nodata, dtype=data.dtype)

    for i in range(raster.count):
        reproject(
            source=data[i],
            destination=dst_data[i],
            src_transform=raster.transform,
            src_crs=raster.crs,
            src_nodata=nodata,
            dst_transform=reference.transform,
            dst_crs=reference.crs,
            dst_nodata=nodata,
            resampling=resampling
        )

    return raster.copy(data=dst_data, transform=reference.transform, crs=reference.crs, nodata=nodata)


def align_layers(layers, reference_crs, verbose=True):
    """Brings every layer into the reference CRS.
    Layers that already match are returned untouched (the same object); the rest are replaced by reprojected copies.
    References to the pre-alignment layers should be treated as stale. Running this twice is a no-op.

    Args:
        layers (dict): Layer name -> RasterLayer or gpd.GeoDataFrame.
        reference_crs (CRS-like): The reference CRS.
        verbose (bool, optional): If True, prints which layers were reprojected. Defaults to True.

    Raises:
        CRSAlignmentError: Raised (with the offending layer's name) when a layer cannot be reprojected.
        TypeError: Raised for layers that are neither RasterLayer nor GeoDataFrame.

    Returns:
        aligned (dict): Layer name -> aligned layer.
    """
    aligned = {}
    pbar = tqdm(total=len(layers), desc='Aligning layers', disable=not verbose)
    for name, layer in layers.items():
        if not needs_reprojection(layer.crs, reference_crs, name=name):
            aligned[name] = layer
            pbar.update(1)
            continue

        if verbose:
            print(f'Reprojecting {name} from {layer.crs} to {reference_crs}')

        if isinstance(layer, RasterLayer):
            aligned[name] = reproject_raster(layer, reference_crs, name=name)
        elif isinstance(layer, gpd.GeoDataFrame):
            aligned[name] = reproject_vector(layer, reference_crs, name=name)
        else:
            raise TypeError(f'Cannot align {name}: unsupported layer type {type(layer).__name__}')
        pbar.update(1)

    pbar.close()
    return aligned
