"""地图模块"""
from .voxel_map import VoxelMap
from .point_cloud import decode_points, finite_points

__all__ = ['VoxelMap', 'decode_points', 'finite_points']
