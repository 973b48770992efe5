# -*- coding: utf-8 -*-
"""
Created on Tue Jun 24 13:44:12 2025

@author: Labadmin

Runs the recovery analysis end to end: load -> (crop) -> align -> classify -> extract -> sample -> summarize.
Every stage runs to completion before the next begins; any error stops the run.

Example:
    python -m firerecovery.pipeline.run_pipeline config/recovery.yaml
"""
import argparse
import os

from tqdm import tqdm

from firerecovery.config import DEFAULT_OPTIONS, breakpoint_table_from_config, load_processing_options, merge_options
from firerecovery.extract.polygon_join import aggregate_presence, first_match, join_polygons, merge_records
from firerecovery.extract.raster_values import extract_raster_values
from firerecovery.layers.align_layers import align_layers
from firerecovery.layers.load_layers import load_raster, load_vector
from firerecovery.recovery.recovery_stats import recovery_ratio, severity_quantiles, summarize_by_class
from firerecovery.sampling.samplers import sample_in_polygon, sample_regular
from firerecovery.severity.classify import class_counts, classify_raster
from firerecovery.utils.errors import MissingLayerError
from firerecovery.utils.geospatial_utils import crop_raster_to_boundary


def load_layers(layer_specs, verbose=True):
    """Loads every layer listed in the 'layers' options section.

    Args:
        layer_specs (dict): Layer name -> {'path', 'type', optional 'band_names', optional 'layer'}.
        verbose (bool, optional): If True, shows a progress bar. Defaults to True.

    Returns:
        layers (dict): Layer name -> RasterLayer or gpd.GeoDataFrame.
    """
    layers = {}
    pbar = tqdm(total=len(layer_specs), desc='Loading layers', disable=not verbose)
    for name, spec in layer_specs.items():
        if spec.get('type', 'vector') == 'raster':
            layers[name] = load_raster(spec['path'], name=name, band_names=spec.get('band_names'))
        else:
            layers[name] = load_vector(spec['path'], name=name, layer=spec.get('layer'))
        pbar.update(1)
    pbar.close()
    return layers


def _get_layer(layers, name, stage):
    if name not in layers:
        raise MissingLayerError(f'Layer is not loaded. Loaded layers: {list(layers)}', layer=name, stage=stage)
    return layers[name]


def run_classify(layers, cfg, verbose=True):
    raster = _get_layer(layers, cfg['raster'], 'classify')
    table = breakpoint_table_from_config(cfg)
    output_name = cfg['output_name']
    classified = classify_raster(raster, table, band=cfg['band'], name=output_name, band_name=f'{output_name}_class')

    if verbose:
        for cls, info in class_counts(classified, table).items():
            print(f"{output_name} class {cls} ({info['label']}): {info['cells']} cells, {info['area']:.0f} sq units")
    return classified


def run_extract(layers, cfg, id_col, verbose=True):
    points = _get_layer(layers, cfg['points'], 'extract')
    if id_col not in points.columns:
        print(f'WARNING: {cfg["points"]} has no {id_col} column, using the row number')
        points = points.copy()
        points[id_col] = range(len(points))

    rasters = [_get_layer(layers, name, 'extract') for name in cfg['rasters']]
    records = extract_raster_values(points, rasters, id_col=id_col, verbose=verbose)

    tables = []
    if cfg['polygons']:
        polygons = _get_layer(layers, cfg['polygons'], 'extract')
        attr_col = cfg['attr_col']
        joined = join_polygons(points[[id_col, points.geometry.name]], polygons,
                               how=cfg['how'], predicate=cfg['predicate'],
                               columns=[attr_col] if attr_col else None, verbose=verbose)
        if attr_col:
            tables.append(aggregate_presence(joined, id_col, attr_col, out_col=cfg['count_col']))
        else:
            tables.append(first_match(joined, id_col))

    if cfg['severity_polygons']:
        severity_col = cfg['severity_col']
        severity = _get_layer(layers, cfg['severity_polygons'], 'extract')
        joined = join_polygons(points[[id_col, points.geometry.name]], severity, how='all',
                               columns=[severity_col] if severity_col else None, verbose=verbose)
        tables.append(first_match(joined, id_col))

    records = merge_records(records, *tables, id_col=id_col)
    if verbose:
        print(f'Extracted {len(records)} records with columns {list(records.columns)}')
    return records


def run_sample(layers, cfg, verbose=True):
    samples = {}
    if cfg['raster']:
        raster = _get_layer(layers, cfg['raster'], 'sample')
        samples['regular'] = sample_regular(raster, cfg['n_regular'])
    if cfg['boundary']:
        boundary = _get_layer(layers, cfg['boundary'], 'sample')
        samples['boundary'] = sample_in_polygon(boundary, cfg['n_boundary'], seed=cfg['seed'])

    if verbose:
        for key, gdf in samples.items():
            print(f'Drew {len(gdf)} {key} samples')
    return samples


def run_pipeline(processing_options):
    """Runs the recovery pipeline.

    Args:
        processing_options (dict): Options laid out like firerecovery.config.DEFAULT_OPTIONS. Missing keys
            take their default values.

    Returns:
        results (dict): 'layers' (aligned layers), 'records' (pd.DataFrame or None), 'samples' (dict of
            gpd.GeoDataFrame), 'summary' (pd.DataFrame or None).
    """
    options = merge_options(DEFAULT_OPTIONS, processing_options)
    verbose = options['verbose']
    id_col = options['id_col']
    output_dir = options['output_dir']
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    results = {'records': None, 'samples': {}, 'summary': None}

    # Load and align
    layers = load_layers(options['layers'], verbose=verbose)
    layers = align_layers(layers, options['reference_crs'], verbose=verbose)

    if options['crop']['include']:
        boundary = _get_layer(layers, options['crop']['boundary'], 'crop')
        for name in options['crop']['rasters']:
            layers[name] = crop_raster_to_boundary(_get_layer(layers, name, 'crop'), boundary,
                                                   buffer_distance=options['crop']['buffer_distance'])

    if options['classify']['include']:
        classified = run_classify(layers, options['classify'], verbose=verbose)
        layers[classified.name] = classified
        if output_dir:
            classified.to_file(os.path.join(output_dir, f'{classified.name}.tif'))

    if options['extract']['include']:
        records = run_extract(layers, options['extract'], id_col, verbose=verbose)
        results['records'] = records
        if output_dir:
            records.to_csv(os.path.join(output_dir, 'records.csv'), index=False)

    if options['sample']['include']:
        samples = run_sample(layers, options['sample'], verbose=verbose)
        results['samples'] = samples
        if output_dir:
            for key, gdf in samples.items():
                gdf.to_file(os.path.join(output_dir, f'samples_{key}.gpkg'), driver='GPKG')

    if options['summarize']['include'] and results['records'] is not None:
        cfg = options['summarize']
        records = results['records']
        # Band names are strings, YAML may give years as integers
        value_cols = [str(c) for c in cfg['value_cols']]
        if cfg['pre_col'] is not None:
            pre_col = str(cfg['pre_col'])
            post_cols = [c for c in value_cols if c != pre_col]
            records = recovery_ratio(records, pre_col, post_cols)
            results['records'] = records
        summary = summarize_by_class(records, value_cols, cfg['class_col'])
        results['summary'] = summary
        if verbose:
            print(summary.to_string(index=False))
            for col in value_cols:
                print(f'{col} quantiles: {severity_quantiles(records, col)}')
        if output_dir:
            summary.to_csv(os.path.join(output_dir, 'summary.csv'), index=False)

    results['layers'] = layers
    return results


def main(argv=None):
    ap = argparse.ArgumentParser(
        prog='firerecovery',
        description='Post-fire vegetation recovery pipeline',
    )
    ap.add_argument('config', help='Path to the pipeline YAML file')
    ap.add_argument('--output-dir', default=None, help='Overrides output_dir in the config')
    ap.add_argument('--quiet', action='store_true', help='Suppress progress bars and status messages')
    args = ap.parse_args(argv)

    processing_options = load_processing_options(args.config)
    if args.output_dir:
        processing_options['output_dir'] = args.output_dir
    if args.quiet:
        processing_options['verbose'] = False

    run_pipeline(processing_options)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
