# -*- coding: utf-8 -*-
"""
Created on Mon Jun 16 10:12:41 2025

@author: Labadmin
"""


class RecoveryError(Exception):
    """Base error for the recovery pipeline.

    Args:
        message (str): Description of the failure.
        layer (str, optional): Name of the layer being processed. Defaults to None.
        stage (str, optional): Pipeline stage ('load', 'align', 'extract', 'classify', 'sample'). Defaults to None.
    """
    default_stage = None

    def __init__(self, message, layer=None, stage=None):
        self.layer = layer
        self.stage = stage or self.default_stage
        context = []
        if self.stage:
            context.append(f'stage={self.stage}')
        if self.layer:
            context.append(f'layer={self.layer}')
        if context:
            message = f'[{", ".join(context)}] {message}'
        super().__init__(message)


class LayerReadError(RecoveryError, OSError):
    """Raised when a vector or raster file is missing or cannot be read."""
    default_stage = 'load'


class CRSAlignmentError(RecoveryError, ValueError):
    """Raised when a layer cannot be brought into the reference CRS."""
    default_stage = 'align'


class ClassificationTableError(RecoveryError, ValueError):
    """Raised when a breakpoint table is malformed."""
    default_stage = 'classify'


class SamplingError(RecoveryError, ValueError):
    """Raised when a sampling request cannot be satisfied by its domain."""
    default_stage = 'sample'


class MissingLayerError(RecoveryError, KeyError):
    """Raised when a stage refers to a layer that was not loaded."""

    def __str__(self):
        # KeyError would otherwise print the message in quotes
        return self.args[0]
