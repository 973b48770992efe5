# -*- coding: utf-8 -*-
"""
Created on Thu Jun 19 09:48:13 2025

@author: Labadmin

Spectral burn severity indices. Inputs are numpy arrays of surface reflectance; divisions by zero give NaN.
"""
import numpy as np


def _normalized_difference(a, b):
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    with np.errstate(divide='ignore', invalid='ignore'):
        nd = (a - b) / (a + b)
    nd = np.where(np.isfinite(nd), nd, np.nan)
    return nd


def nbr(nir, swir2):
    """
    Normalized Burn Ratio
    NBR = (NIR - SWIR2)/(NIR + SWIR2)
    """
    return _normalized_difference(nir, swir2)


def ndvi(nir, red):
    """
    Normalized Difference Vegetation Index
    NDVI = (NIR - RED)/(NIR + RED)
    """
    return _normalized_difference(nir, red)


def dnbr(pre_nbr, post_nbr, scale=1000):
    """Differenced NBR (pre-fire minus post-fire).

    Args:
        pre_nbr (np.array): Pre-fire NBR.
        post_nbr (np.array): Post-fire NBR.
        scale (float, optional): Multiplier applied to the difference. The default of 1000 matches the usual
            integer dNBR/RdNBR thresholds. Defaults to 1000.

    Returns:
        dnbr (np.array): Differenced NBR. Positive values indicate vegetation loss.
    """
    return (np.asarray(pre_nbr, dtype=np.float64) - np.asarray(post_nbr, dtype=np.float64)) * scale


def rdnbr(pre_nbr, dnbr_values, scale=1000):
    """Relativized dNBR (Miller & Thode, 2007), which normalizes dNBR by the pre-fire vegetation condition.
    RdNBR = dNBR / sqrt(|preNBR / 1000|), with preNBR on the same scale as dNBR (x1000).

    Args:
        pre_nbr (np.array): Pre-fire NBR, unscaled (-1 to 1).
        dnbr_values (np.array): dNBR as returned by dnbr().
        scale (float, optional): Scale used when computing dNBR. Defaults to 1000.

    Returns:
        rdnbr (np.array): Relativized dNBR. NaN where the pre-fire NBR is 0.
    """
    pre_scaled = np.asarray(pre_nbr, dtype=np.float64) * scale
    with np.errstate(divide='ignore', invalid='ignore'):
        out = np.asarray(dnbr_values, dtype=np.float64) / np.sqrt(np.abs(pre_scaled / 1000))
    out = np.where(np.isfinite(out), out, np.nan)
    return out
