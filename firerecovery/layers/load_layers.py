# -*- coding: utf-8 -*-
"""
Created on Mon Jun 16 10:40:18 2025

@author: Labadmin

Loading of the vector (points, polygons, boundaries) and raster (severity grid, yearly band stacks) layers
used in the recovery analysis. Vector layers are plain GeoDataFrames; raster layers are held in memory as a
RasterLayer so they can be reprojected, classified and sampled without reopening the file.
"""
import os
import numpy as np
import rasterio
import geopandas as gpd
from rasterio.crs import CRS
from rasterio.errors import RasterioIOError
from rasterio.transform import array_bounds

from firerecovery.utils.errors import LayerReadError


class RasterLayer:
    """A CRS-tagged raster held in memory.

    Args:
        data (np.array): Array of shape (bands, rows, cols). A 2D array is treated as a single band.
        transform (affine.Affine): Affine transform of the grid.
        crs (rasterio.crs.CRS or str): Coordinate reference system of the grid. May be None if undefined.
        nodata (float, optional): No data marker. NaN cells of float rasters are always treated as no data. Defaults to None.
        band_names (list of str, optional): One name per band. Defaults to 'band_1', 'band_2', ...
        name (str, optional): Layer name used in error messages and column prefixes. Defaults to 'raster'.
    """

    def __init__(self, data, transform, crs, nodata=None, band_names=None, name='raster'):
        data = np.asarray(data)
        if data.ndim == 2:
            data = data[np.newaxis, :, :]
        if data.ndim != 3:
            raise ValueError(f'Raster {name} must be 2D or 3D, got shape {data.shape}')

        if band_names is None:
            band_names = [f'band_{i + 1}' for i in range(data.shape[0])]
        band_names = [str(b) for b in band_names]
        if len(band_names) != data.shape[0]:
            raise ValueError(f'Raster {name} has {data.shape[0]} bands but {len(band_names)} band names')
        if len(set(band_names)) != len(band_names):
            raise ValueError(f'Raster {name} has duplicate band names: {band_names}')

        if crs is not None and not isinstance(crs, CRS):
            crs = CRS.from_user_input(crs)

        self.data = data
        self.transform = transform
        self.crs = crs
        self.nodata = nodata
        self.band_names = band_names
        self.name = name

    @classmethod
    def from_array(cls, data, transform, crs, nodata=None, band_names=None, name='raster'):
        return cls(data, transform, crs, nodata=nodata, band_names=band_names, name=name)

    @property
    def count(self):
        return self.data.shape[0]

    @property
    def shape(self):
        """(rows, cols) of the grid."""
        return self.data.shape[1], self.data.shape[2]

    @property
    def bounds(self):
        """(xmin, ymin, xmax, ymax) of the grid."""
        rows, cols = self.shape
        west, south, east, north = array_bounds(rows, cols, self.transform)
        return west, south, east, north

    def band_index(self, key):
        """Gets the 0-based index of a band from its name or 1-based band number."""
        if isinstance(key, (int, np.integer)) and not isinstance(key, bool):
            if not 1 <= key <= self.count:
                raise IndexError(f'Band {key} out of range for {self.name} ({self.count} bands)')
            return int(key) - 1
        if key in self.band_names:
            return self.band_names.index(key)
        raise KeyError(f'Band {key} not found in {self.name}. Bands: {self.band_names}')

    def band(self, key):
        return self.data[self.band_index(key)]

    def valid_mask(self, key=1):
        """Boolean mask of cells holding a valid measurement for one band."""
        arr = self.band(key)
        mask = np.ones(arr.shape, dtype=bool)
        if np.issubdtype(arr.dtype, np.floating):
            mask &= ~np.isnan(arr)
        if self.nodata is not None and not np.isnan(self.nodata):
            mask &= arr != self.nodata
        return mask

    def nodata_fill(self):
        """Gets the no data marker for cells created by warping or masking. The marker never occurs in valid data.

        Returns:
            data (np.array): The raster data, promoted to float64 when an integer raster has no free marker.
            nodata (float): The declared nodata if there is one. Otherwise NaN for float rasters, or the minimum
                (then maximum) of the integer data type when that value does not occur in the data.
        """
        if self.nodata is not None:
            return self.data, self.nodata
        if np.issubdtype(self.data.dtype, np.floating):
            return self.data, np.nan
        if np.issubdtype(self.data.dtype, np.integer):
            info = np.iinfo(self.data.dtype)
            for candidate in (info.min, info.max):
                if not (self.data == candidate).any():
                    return self.data, candidate
        return self.data.astype('float64'), np.nan

    def copy(self, **kwargs):
        """Returns a new RasterLayer, overriding any of the constructor arguments."""
        params = {
            'data': self.data if 'data' in kwargs else self.data.copy(),
            'transform': self.transform,
            'crs': self.crs,
            'nodata': self.nodata,
            'band_names': list(self.band_names),
            'name': self.name,
        }
        params.update(kwargs)
        return RasterLayer(**params)

    def to_file(self, output_path):
        """Writes the raster to a GeoTIFF.

        Args:
            output_path (str): Path to save the GeoTIFF.

        Returns:
            output_path (str): Path where the raster was saved.
        """
        meta = {
            'driver': 'GTiff',
            'height': self.shape[0],
            'width': self.shape[1],
            'count': self.count,
            'dtype': self.data.dtype.name,
            'crs': self.crs,
            'transform': self.transform,
            'nodata': self.nodata,
        }
        with rasterio.open(output_path, 'w', **meta) as dst:
            dst.write(self.data)
            for i, band_name in enumerate(self.band_names):
                dst.set_band_description(i + 1, band_name)
        return output_path

    def __repr__(self):
        return f'RasterLayer(name={self.name!r}, bands={self.band_names}, shape={self.shape}, crs={self.crs})'


def _layer_name(path, name):
    if name:
        return name
    _, t = os.path.split(path)
    return os.path.splitext(t)[0]


def load_raster(raster_path, name=None, band_names=None):
    """Loads every band of a raster file into memory.

    Args:
        raster_path (str): Path to the raster (any GDAL-readable format).
        name (str, optional): Layer name. Defaults to the file name without its extension.
        band_names (list of str, optional): Names for each band (e.g., years of a time series). Defaults to the
            band descriptions stored in the file, or 'band_1', 'band_2', ... if there are none.

    Raises:
        LayerReadError: Raised when the file does not exist or cannot be opened as a raster.

    Returns:
        raster (RasterLayer): The loaded raster.
    """
    name = _layer_name(raster_path, name)
    if not os.path.exists(raster_path):
        raise LayerReadError(f'{raster_path} does not exist!', layer=name)

    try:
        with rasterio.open(raster_path) as src:
            data = src.read()
            transform = src.transform
            crs = src.crs
            nodata = src.nodata
            if band_names is None and all(src.descriptions):
                band_names = list(src.descriptions)
    except RasterioIOError as err:
        raise LayerReadError(f'Could not read {raster_path}: {err}', layer=name) from err

    return RasterLayer(data, transform, crs, nodata=nodata, band_names=band_names, name=name)


def load_vector(vector_path, name=None, layer=None):
    """Loads a vector file (shapefile, GeoPackage, GeoJSON, ...) into a GeoDataFrame.

    Args:
        vector_path (str): Path to the vector file.
        name (str, optional): Layer name stored in gdf.attrs['name']. Defaults to the file name without its extension.
        layer (str, optional): Layer to read from multi-layer sources such as GeoPackages. Defaults to None.

    Raises:
        LayerReadError: Raised when the file does not exist or cannot be read.

    Returns:
        gdf (gpd.GeoDataFrame): The loaded layer.
    """
    name = _layer_name(vector_path, name)
    if not os.path.exists(vector_path):
        raise LayerReadError(f'{vector_path} does not exist!', layer=name)

    kwargs = {'layer': layer} if layer is not None else {}
    try:
        gdf = gpd.read_file(vector_path, **kwargs)
    except Exception as err:
        # The IO engine (pyogrio or fiona) decides the exception type
        raise LayerReadError(f'Could not read {vector_path}: {err}', layer=name) from err

    gdf.attrs['name'] = name
    return gdf


def layer_name(layer, default='layer'):
    """Gets the name of a RasterLayer or GeoDataFrame."""
    if isinstance(layer, RasterLayer):
        return layer.name
    return getattr(layer, 'attrs', {}).get('name', default)
