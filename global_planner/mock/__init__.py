"""测试场景模块"""
from .scene_generator import (
    create_floor,
    create_wall,
    create_box,
    create_test_config,
    create_gapped_wall_points,
    create_open_points,
    create_frame,
    create_scene_frame,
    goal_for_altitude,
)

__all__ = [
    'create_floor',
    'create_wall',
    'create_box',
    'create_test_config',
    'create_gapped_wall_points',
    'create_open_points',
    'create_frame',
    'create_scene_frame',
    'goal_for_altitude',
]
