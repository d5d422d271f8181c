"""Optimization process, its data store, locks and bulk selection."""

from .data import OptimizationData
from .factory import ProcessFactory
from .hooks import ProcessHooks
from .locks import MediaLock, TransientStore
from .process import AVIF_SUFFIX, TMP_SUFFIX, WEBP_SUFFIX, OptimizationProcess

__all__ = [
    "AVIF_SUFFIX",
    "MediaLock",
    "OptimizationData",
    "OptimizationProcess",
    "ProcessFactory",
    "ProcessHooks",
    "TMP_SUFFIX",
    "TransientStore",
    "WEBP_SUFFIX",
]
