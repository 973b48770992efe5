import pytest
import yaml

from firerecovery.config import (DEFAULT_OPTIONS, breakpoint_table_from_config, load_processing_options, load_yaml,
                                 merge_options)
from firerecovery.severity.classify import RDNBR_TABLE


def _write_yaml(path, data):
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(data, f)
    return path


def test_load_yaml_errors(tmp_path):
    with pytest.raises(SystemExit):
        load_yaml(tmp_path / 'missing.yaml')

    path = tmp_path / 'list.yaml'
    path.write_text('- a\n- b\n', encoding='utf-8')
    with pytest.raises(SystemExit):
        load_yaml(path)


def test_merge_options_is_deep_and_does_not_mutate_defaults():
    merged = merge_options(DEFAULT_OPTIONS, {'classify': {'closed': 'right'}, 'verbose': False})
    assert merged['classify']['closed'] == 'right'
    assert merged['classify']['table'] == 'rdnbr'
    assert merged['verbose'] is False
    assert DEFAULT_OPTIONS['classify']['closed'] == 'left'


def test_load_processing_options_fills_defaults(tmp_path):
    path = _write_yaml(tmp_path / 'run.yaml', {
        'layers': {'points': {'path': 'plots.gpkg'}, 'rdnbr': {'path': 'rdnbr.tif', 'type': 'raster'}},
        'sample': {'include': True, 'n_regular': 20},
    })
    options = load_processing_options(path)

    assert set(options['layers']) == {'points', 'rdnbr'}
    assert options['sample']['n_regular'] == 20
    assert options['sample']['n_boundary'] == 10
    assert options['reference_crs'] == 'EPSG:32610'


@pytest.mark.parametrize('layers', [
    {'points': 'plots.gpkg'},
    {'points': {'type': 'vector'}},
    {'points': {'path': 'plots.gpkg', 'type': 'table'}},
])
def test_load_processing_options_rejects_bad_layers(tmp_path, layers):
    path = _write_yaml(tmp_path / 'run.yaml', {'layers': layers})
    with pytest.raises(SystemExit):
        load_processing_options(path)


def test_breakpoint_table_from_config():
    table = breakpoint_table_from_config(DEFAULT_OPTIONS['classify'])
    assert table.rows == RDNBR_TABLE
    assert table.label(4) == 'High'

    custom = breakpoint_table_from_config({'rows': [[0, 1, 5]], 'closed': 'both', 'labels': {5: 'top'}})
    assert custom.classes == [5]
    assert custom.closed == 'both'
    assert custom.label(5) == 'top'
