"""路径搜索模块"""
from .path_search import VoxelAStarSearch

__all__ = ['VoxelAStarSearch']
