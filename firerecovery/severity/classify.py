# -*- coding: utf-8 -*-
"""
Created on Thu Jun 19 11:15:52 2025

@author: Labadmin

Reclassification of continuous rasters (dNBR, RdNBR, ...) into severity classes using a breakpoint table.

Each row of the table is (low, high, class). Rows are evaluated in order and the first row whose range contains
the value wins, so overlapping ranges are allowed. Which ends of a range are closed is set explicitly with
'closed' ('left' -> [low, high), 'right' -> (low, high], 'both', 'neither'); 'include_lowest' and
'include_highest' additionally close the outer ends of the table.
"""
import numpy as np

from firerecovery.utils.errors import ClassificationTableError

CLOSED_OPTIONS = ['left', 'right', 'both', 'neither']


class BreakpointTable:
    """An ordered table of (low, high, class) rows.

    Args:
        rows (list of tuple): (low, high, class) triples, in evaluation order.
        closed (str, optional): Which ends of each range are inclusive. Defaults to 'left', i.e. [low, high).
        include_lowest (bool, optional): If True, the lowest bound of the table is inclusive. Defaults to False.
        include_highest (bool, optional): If True, the highest bound of the table is inclusive. Defaults to False.
        labels (dict, optional): Class -> label, used for reporting. Defaults to None.

    Raises:
        ClassificationTableError: Raised when the table is empty, a bound is not a finite number, low > high,
            or 'closed' is not a known option.
    """

    def __init__(self, rows, closed='left', include_lowest=False, include_highest=False, labels=None):
        if closed not in CLOSED_OPTIONS:
            raise ClassificationTableError(f'closed must be one of {CLOSED_OPTIONS}, got {closed}')

        rows = [tuple(row) for row in rows]
        if not rows:
            raise ClassificationTableError('Breakpoint table is empty')

        checked = []
        for i, row in enumerate(rows):
            if len(row) != 3:
                raise ClassificationTableError(f'Row {i} must be (low, high, class), got {row}')
            try:
                low, high = float(row[0]), float(row[1])
            except (TypeError, ValueError) as err:
                raise ClassificationTableError(f'Row {i} has non-numeric bounds: {row}') from err
            if not (np.isfinite(low) and np.isfinite(high)):
                raise ClassificationTableError(f'Row {i} has non-finite bounds: {row}')
            if low > high:
                raise ClassificationTableError(f'Row {i} has reversed bounds (low {low} > high {high})')
            checked.append((low, high, row[2]))

        self.rows = checked
        self.closed = closed
        self.include_lowest = include_lowest
        self.include_highest = include_highest
        self.labels = dict(labels) if labels else {}

    @property
    def classes(self):
        return [row[2] for row in self.rows]

    @property
    def lowest(self):
        return min(row[0] for row in self.rows)

    @property
    def highest(self):
        return max(row[1] for row in self.rows)

    def label(self, cls):
        return self.labels.get(cls, str(cls))

    def contains(self, values, low, high):
        """Boolean mask of values inside [low, high] under the table's inclusivity rules."""
        low_closed = self.closed in ('left', 'both') or (self.include_lowest and low == self.lowest)
        high_closed = self.closed in ('right', 'both') or (self.include_highest and high == self.highest)
        above = values >= low if low_closed else values > low
        below = values <= high if high_closed else values < high
        return above & below

    def __len__(self):
        return len(self.rows)

    def __repr__(self):
        return f'BreakpointTable(rows={self.rows}, closed={self.closed!r})'


# RdNBR classes; a value of exactly -100 is class 1 under the default [low, high) rule
RDNBR_TABLE = [(-100, 350, 1), (-270, -100, 2), (-450, -270, 3), (-1000, -450, 4)]
RDNBR_LABELS = {1: 'Unchanged', 2: 'Low', 3: 'Moderate', 4: 'High'}

# dNBR classes (x1000), UN-SPIDER thresholds
DNBR_TABLE = [(-500, 100, 1), (100, 270, 2), (270, 440, 3), (440, 660, 4), (660, 1300, 5)]
DNBR_LABELS = {1: 'Unburned', 2: 'Low Severity', 3: 'Moderate-low Severity', 4: 'Moderate-high Severity',
               5: 'High Severity'}

SEVERITY_TABLES = {
    'rdnbr': {'rows': RDNBR_TABLE, 'labels': RDNBR_LABELS},
    'dnbr': {'rows': DNBR_TABLE, 'labels': DNBR_LABELS},
}


def severity_table(name, **kwargs):
    """Builds one of the named tables in SEVERITY_TABLES. Keyword arguments are passed to BreakpointTable."""
    if name not in SEVERITY_TABLES:
        raise ClassificationTableError(f'Unknown severity table {name}, expected one of {list(SEVERITY_TABLES)}')
    table = SEVERITY_TABLES[name]
    return BreakpointTable(table['rows'], labels=table['labels'], **kwargs)


def classify_array(values, table, nodata=None):
    """Replaces each value with the class of the first table row containing it.

    Args:
        values (np.array): Values to classify.
        table (BreakpointTable): The breakpoint table.
        nodata (float, optional): Input no data marker. NaN is always treated as no data. Defaults to None.

    Returns:
        classes (np.array): Float array of the same shape. Cells that match no row, or are no data, are NaN.
    """
    values = np.asarray(values, dtype=np.float64)
    valid = np.isfinite(values)
    if nodata is not None and not np.isnan(nodata):
        valid &= values != nodata

    classes = np.full(values.shape, np.nan)
    assigned = ~valid
    for low, high, cls in table.rows:
        match = table.contains(values, low, high) & ~assigned
        classes[match] = cls
        assigned |= match
    return classes


def classify_raster(raster, table, band=1, out_nodata=0, dtype='int16', name=None, band_name='class'):
    """Classifies one band of a raster into a new single band raster on the same grid.

    Args:
        raster (RasterLayer): Raster to classify.
        table (BreakpointTable): The breakpoint table.
        band (int or str, optional): Band to classify (1-based index or band name). Defaults to 1.
        out_nodata (float, optional): No data marker of the output. Must not be one of the classes. Defaults to 0.
        dtype (str, optional): Output data type. Defaults to 'int16'.
        name (str, optional): Name of the output layer. Defaults to '<raster name>_class'.
        band_name (str, optional): Name of the output band. Defaults to 'class'.

    Raises:
        ClassificationTableError: Raised when 'out_nodata' collides with a class value.

    Returns:
        classified (RasterLayer): The classified raster.
    """
    if out_nodata in table.classes:
        raise ClassificationTableError(f'Output no data value {out_nodata} is also a class', layer=raster.name)

    values = raster.band(band)
    classes = classify_array(values, table, nodata=raster.nodata)
    classes[~raster.valid_mask(band)] = np.nan
    out = np.where(np.isnan(classes), out_nodata, classes).astype(dtype)

    return raster.copy(data=out[np.newaxis, :, :],
                       nodata=out_nodata,
                       band_names=[band_name],
                       name=name or f'{raster.name}_class')


def class_counts(classified, table=None, band=1):
    """Counts the cells and area of each class in a classified raster.

    Args:
        classified (RasterLayer): Output of classify_raster().
        table (BreakpointTable, optional): Used to label the classes. Defaults to None.
        band (int or str, optional): Band to count. Defaults to 1.

    Returns:
        counts (dict): Class -> {'label', 'cells', 'area'} with area in squared CRS units.
    """
    data = classified.band(band)
    valid = classified.valid_mask(band)
    pixel_area = abs(classified.transform.a * classified.transform.e)
    values, cells = np.unique(data[valid], return_counts=True)

    counts = {}
    for value, n in zip(values, cells):
        cls = value.item()
        counts[cls] = {
            'label': table.label(cls) if table is not None else str(cls),
            'cells': int(n),
            'area': float(n * pixel_area),
        }
    return counts
