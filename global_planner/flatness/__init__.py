"""微分平坦模块"""
from .flatness_map import FlatnessMap

__all__ = ['FlatnessMap']
