"""安全走廊模块"""
from .sfc_gen import ConvexCorridorBuilder, separate
from . import geo_utils

__all__ = ['ConvexCorridorBuilder', 'separate', 'geo_utils']
