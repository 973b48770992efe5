# -*- coding: utf-8 -*-
"""
Created on Fri Feb  7 11:08:05 2025

@author: Labadmin
"""
import pyproj
import geopandas as gpd
from pyproj import Transformer
from rasterio.io import MemoryFile
from rasterio.mask import mask
from shapely.geometry import box, mapping

from firerecovery.layers.load_layers import RasterLayer, layer_name
from firerecovery.utils.errors import RecoveryError


def get_layer_bounds(layer):
    """Gets the bounds and CRS of a layer.

    Args:
        layer (RasterLayer or gpd.GeoDataFrame): Layer to get the bounds of.

    Returns:
        bound_dict (dict): Dictionary containing 'bounds' (xmin, ymin, xmax, ymax) and 'crs' (pyproj.CRS or None).
    """
    if isinstance(layer, RasterLayer):
        bounds = tuple(layer.bounds)
    else:
        bounds = tuple(layer.total_bounds)  # (xmin, ymin, xmax, ymax)
    crs = pyproj.CRS.from_user_input(layer.crs) if layer.crs is not None else None
    bound_dict = {'bounds': bounds, 'crs': crs}
    return bound_dict


def transform_bounds(bound_dict, output_crs):
    """Transforms bounds to a different projection

    Args:
        bound_dict (dict): Dictionary containing 'bounds' (xmin, ymin, xmax, ymax) and 'crs'. Likely returned from get_layer_bounds().
        output_crs (CRS-like): Output CRS to project bounds to.

    Returns:
        new_bounds (list): [xmin, ymin, xmax, ymax] in the output_crs coordinate system.
    """
    bounds = bound_dict['bounds']
    # Initialize transformer
    transformer = Transformer.from_crs(bound_dict['crs'], output_crs, always_xy=True)

    # Densify the edges so curved projected edges are covered
    xmin, ymin, xmax, ymax = transformer.transform_bounds(*bounds)
    new_bounds = [xmin, ymin, xmax, ymax]
    return new_bounds


def bounds_intersect(bound_dict_a, bound_dict_b):
    """Checks whether the bounds of two layers overlap, in the CRS of the first.

    Args:
        bound_dict_a (dict): Bounds dictionary from get_layer_bounds().
        bound_dict_b (dict): Bounds dictionary from get_layer_bounds().

    Returns:
        bool: True if the bounding boxes intersect.
    """
    bounds_b = bound_dict_b['bounds']
    if bound_dict_a['crs'] is not None and bound_dict_b['crs'] is not None and bound_dict_a['crs'] != bound_dict_b['crs']:
        bounds_b = transform_bounds(bound_dict_b, bound_dict_a['crs'])
    return box(*bound_dict_a['bounds']).intersects(box(*bounds_b))


def crop_raster_to_boundary(raster, boundary, buffer_distance=0, all_touched=False):
    """Crops a raster to a boundary polygon layer. Cells outside the boundary are set to no data.

    Args:
        raster (RasterLayer): Raster to crop.
        boundary (gpd.GeoDataFrame): Boundary polygons (e.g., the fire perimeter). Reprojected to the raster CRS if needed.
        buffer_distance (float, optional): Distance that the boundary will be buffered, in raster CRS units. Defaults to 0.
        all_touched (bool, optional): If True, every cell touched by the boundary is kept. Defaults to False.

    Raises:
        RecoveryError: Raised (stage 'crop') when the boundary does not overlap the raster.

    Returns:
        raster (RasterLayer): Cropped copy of the raster.
    """
    geoms = boundary.to_crs(raster.crs).geometry if boundary.crs is not None else boundary.geometry

    # Buffer the polygons if a buffer distance is provided
    if buffer_distance != 0:
        geoms = geoms.buffer(buffer_distance)
    if geoms.empty or not bounds_intersect(get_layer_bounds(raster), get_layer_bounds(geoms)):
        raise RecoveryError(f'Boundary {layer_name(boundary, "boundary")} does not overlap the raster',
                            layer=raster.name, stage='crop')
    shapes = [mapping(geom) for geom in geoms]

    data, nodata = raster.nodata_fill()

    meta = {
        'driver': 'GTiff',
        'height': raster.shape[0],
        'width': raster.shape[1],
        'count': raster.count,
        'dtype': data.dtype.name,
        'crs': raster.crs,
        'transform': raster.transform,
        'nodata': nodata,
    }
    with MemoryFile() as memfile:
        with memfile.open(**meta) as dataset:
            dataset.write(data)
        with memfile.open() as dataset:
            out_image, out_transform = mask(dataset, shapes, crop=True, all_touched=all_touched, nodata=nodata)

    return raster.copy(data=out_image, transform=out_transform, nodata=nodata)


def boundary_polygon(boundary):
    """Dissolves a boundary layer into a single shapely geometry."""
    if isinstance(boundary, (gpd.GeoDataFrame, gpd.GeoSeries)):
        return boundary.geometry.union_all()
    return boundary
