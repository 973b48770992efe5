import pytest

from firerecovery.extract.raster_values import extract_raster_values
from firerecovery.utils.errors import CRSAlignmentError


def test_one_row_per_point(ndvi_stack, plots):
    df = extract_raster_values(plots, ndvi_stack, id_col='plot_id')
    assert len(df) == len(plots)
    assert list(df.columns) == ['plot_id', '2016', '2017', '2018']
    assert list(df['plot_id']) == [101, 102, 103, 104]


def test_values_nodata_and_outside_points(ndvi_stack, plots):
    df = extract_raster_values(plots, ndvi_stack, id_col='plot_id').set_index('plot_id')

    # Plot 101 sits on the no data cell, plot 104 is outside the grid
    assert df.loc[101].isna().all()
    assert df.loc[104].isna().all()

    assert df.loc[102, '2016'] == pytest.approx(1 / 600, rel=1e-5)
    assert df.loc[103, '2018'] == pytest.approx((10 * 30 + 15) / 600 + 0.2, rel=1e-5)


def test_shared_band_names_are_prefixed(ndvi_stack, rdnbr_raster, plots):
    other = ndvi_stack.copy(name='ndvi_landsat')
    df = extract_raster_values(plots, [ndvi_stack, other, rdnbr_raster], id_col='plot_id')
    assert 'ndvi_2016' in df.columns
    assert 'ndvi_landsat_2016' in df.columns
    assert 'band_1' in df.columns
    assert len(df) == len(plots)


def test_index_used_without_id_column(ndvi_stack, plots):
    df = extract_raster_values(plots, ndvi_stack)
    assert 'point_id' in df.columns
    assert list(df['point_id']) == list(plots.index)


def test_crs_mismatch_is_rejected(ndvi_stack, plots):
    with pytest.raises(CRSAlignmentError) as excinfo:
        extract_raster_values(plots.to_crs('EPSG:4326'), ndvi_stack, id_col='plot_id')
    assert excinfo.value.layer == 'ndvi'
    assert excinfo.value.stage == 'extract'


def test_empty_point_layer(ndvi_stack, plots):
    df = extract_raster_values(plots.iloc[0:0], ndvi_stack, id_col='plot_id')
    assert len(df) == 0
    assert list(df.columns) == ['plot_id', '2016', '2017', '2018']
