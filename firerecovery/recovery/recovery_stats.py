# -*- coding: utf-8 -*-
"""
Created on Mon Jun 23 14:06:44 2025

@author: Labadmin
"""
import numpy as np
import pandas as pd


def summarize_by_class(records, value_cols, class_col):
    """
    Computes the mean, standard deviation, and count of each value column for every class
    (e.g., yearly NDVI by burn severity class).

    Args:
        records (pd.DataFrame): Extracted records, one row per point.
        value_cols (list of str): Columns to summarize (e.g., one per year).
        class_col (str): Column holding the class of each point. Rows with a null class are dropped.

    Returns:
        summary (pd.DataFrame): Long table with columns [class_col, 'variable', 'mean', 'std', 'count'].
    """
    df = records[[class_col] + list(value_cols)].dropna(subset=[class_col])
    long = df.melt(id_vars=class_col, value_vars=list(value_cols), var_name='variable', value_name='value')
    summary = (long.groupby([class_col, 'variable'], sort=True)['value']
               .agg(['mean', 'std', 'count'])
               .reset_index())
    return summary


def recovery_ratio(records, pre_col, post_cols, suffix='_ratio'):
    """Ratio of post-fire to pre-fire values for each point (1 = fully recovered to the pre-fire value).

    Args:
        records (pd.DataFrame): Extracted records, one row per point.
        pre_col (str): Pre-fire value column.
        post_cols (list of str): Post-fire value columns.
        suffix (str, optional): Suffix appended to each post column name. Defaults to '_ratio'.

    Returns:
        ratios (pd.DataFrame): Copy of 'records' with one ratio column per post column. NaN where the pre-fire
            value is 0 or missing.
    """
    ratios = records.copy()
    pre = ratios[pre_col].astype(float).replace(0, np.nan)
    for col in post_cols:
        ratios[f'{col}{suffix}'] = ratios[col].astype(float) / pre
    return ratios


def severity_quantiles(records, value_col, quantiles=[0.1, 0.25, 0.5, 0.75, 0.9]):
    """
    Computes quantiles of a value column, ignoring missing values.

    Args:
        records (pd.DataFrame): Extracted records.
        value_col (str): Column to compute the quantiles of.
        quantiles (list of float, optional): Quantiles to compute. Defaults to [0.1, 0.25, 0.5, 0.75, 0.9].

    Returns:
        dict: A dictionary containing the computed quantiles, keyed 'Q10', 'Q25', ...
    """
    values = records[value_col].dropna().to_numpy(dtype=float)
    if values.size == 0:
        return {f'Q{int(round(q * 100))}': np.nan for q in quantiles}
    quantile_values = np.quantile(values, quantiles)
    quants = {f'Q{int(round(q * 100))}': quantile_values[i] for i, q in enumerate(quantiles)}
    return quants
