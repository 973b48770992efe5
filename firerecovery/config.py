# -*- coding: utf-8 -*-
"""
Created on Tue Jun 24 09:20:31 2025

@author: Labadmin

Configuration for the recovery pipeline. A run is described by a YAML file laid out like DEFAULT_OPTIONS: a
'layers' section listing the input files, plus one section per stage with an 'include' switch.
"""
import copy
from pathlib import Path

import yaml

from firerecovery.severity.classify import BreakpointTable, severity_table

# Defaults shared by the pipeline and the CLI
DEFAULT_REFERENCE_CRS = 'EPSG:32610'  # WGS 84 / UTM zone 10N
DEFAULT_ID_COL = 'plot_id'

DEFAULT_OPTIONS = {
    'reference_crs': DEFAULT_REFERENCE_CRS,
    'id_col': DEFAULT_ID_COL,
    'output_dir': None,
    'verbose': True,
    # name -> {'path': ..., 'type': 'vector' | 'raster', 'band_names': [...], 'layer': ...}
    'layers': {},
    'crop': {
        'include': False,
        'rasters': [],
        'boundary': 'boundary',
        'buffer_distance': 0,
    },
    'classify': {
        'include': True,
        'raster': 'rdnbr',
        'band': 1,
        'table': 'rdnbr',
        'rows': None,
        'closed': 'left',
        'include_lowest': False,
        'include_highest': False,
        'output_name': 'severity',
    },
    'extract': {
        'include': True,
        'points': 'points',
        'rasters': [],
        'polygons': None,
        'how': 'all',
        'predicate': 'intersects',
        'attr_col': None,
        'count_col': None,
        'severity_polygons': None,
        'severity_col': None,
    },
    'sample': {
        'include': False,
        'raster': None,
        'n_regular': 54,
        'boundary': 'boundary',
        'n_boundary': 10,
        'seed': None,
    },
    'summarize': {
        'include': False,
        'class_col': 'severity_class',
        'value_cols': [],
        'pre_col': None,
    },
}


def load_yaml(path):
    """Load a YAML file and return as dict.

    Raises SystemExit on missing file or invalid format (non-mapping).
    """
    path = Path(path)
    if not path.exists():
        raise SystemExit(f'Config not found: {path}')
    with path.open('r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise SystemExit(f'Expected YAML mapping at {path}')
    return data


def merge_options(defaults, overrides):
    """Recursively merges 'overrides' into a copy of 'defaults'. Nested dicts are merged, everything else replaced."""
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict) and key != 'layers':
            merged[key] = merge_options(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_processing_options(path):
    """Loads a pipeline YAML file and fills in the defaults.

    Args:
        path (str or Path): Path to the YAML file.

    Returns:
        processing_options (dict): Options laid out like DEFAULT_OPTIONS.
    """
    options = merge_options(DEFAULT_OPTIONS, load_yaml(path))
    for name, spec in options['layers'].items():
        if not isinstance(spec, dict) or 'path' not in spec:
            raise SystemExit(f"Layer '{name}' must be a mapping with a 'path'")
        if spec.get('type', 'vector') not in ('vector', 'raster'):
            raise SystemExit(f"Layer '{name}' has unknown type {spec.get('type')}")
    return options


def breakpoint_table_from_config(cfg):
    """Builds a BreakpointTable from a 'classify' options section.
    Explicit 'rows' take precedence over a named 'table'.
    """
    kwargs = {
        'closed': cfg.get('closed', 'left'),
        'include_lowest': cfg.get('include_lowest', False),
        'include_highest': cfg.get('include_highest', False),
    }
    if cfg.get('rows'):
        return BreakpointTable(cfg['rows'], labels=cfg.get('labels'), **kwargs)
    return severity_table(cfg.get('table', 'rdnbr'), **kwargs)
