"""
测试场景生成器

生成用于测试和演示的点云帧、目标请求与配置。
"""
from typing import Dict, Any, Optional, Sequence, Tuple
import numpy as np

from ..core.data_types import PointCloudFrame, GoalRequest
from ..config.default_config import copy_default_config
from ..config.loader import set_config_value


def create_floor(x_range: Tuple[float, float], y_range: Tuple[float, float],
                 z: float = 0.0, spacing: float = 0.25) -> np.ndarray:
    """平面地面点 (N, 3)"""
    xs = np.arange(x_range[0], x_range[1] + 1e-9, spacing)
    ys = np.arange(y_range[0], y_range[1] + 1e-9, spacing)
    gx, gy = np.meshgrid(xs, ys, indexing='ij')
    return np.stack([gx.ravel(), gy.ravel(), np.full(gx.size, z)], axis=1)


def create_wall(x: float, y_range: Tuple[float, float], z_range: Tuple[float, float],
                spacing: float = 0.25,
                gap: Optional[Tuple[Tuple[float, float], Tuple[float, float]]] = None) -> np.ndarray:
    """
    垂直于 x 轴的墙面点

    Args:
        x: 墙所在的 x 坐标
        y_range / z_range: 墙的范围
        spacing: 点间距
        gap: 开口 ((y_min, y_max), (z_min, z_max))，开口内不生成点
    """
    ys = np.arange(y_range[0], y_range[1] + 1e-9, spacing)
    zs = np.arange(z_range[0], z_range[1] + 1e-9, spacing)
    gy, gz = np.meshgrid(ys, zs, indexing='ij')
    points = np.stack([np.full(gy.size, x), gy.ravel(), gz.ravel()], axis=1)
    if gap is not None:
        (gy0, gy1), (gz0, gz1) = gap
        in_gap = (points[:, 1] > gy0) & (points[:, 1] < gy1) \
            & (points[:, 2] > gz0) & (points[:, 2] < gz1)
        points = points[~in_gap]
    return points


def create_box(lower: Sequence[float], upper: Sequence[float], spacing: float = 0.25) -> np.ndarray:
    """实心长方体障碍点"""
    axes = [np.arange(lo, hi + 1e-9, spacing) for lo, hi in zip(lower, upper)]
    grid = np.meshgrid(*axes, indexing='ij')
    return np.stack([g.ravel() for g in grid], axis=1)


def create_test_config(scene: str = 'gapped_wall', **overrides) -> Dict[str, Any]:
    """
    创建测试配置

    与 DEFAULT_CONFIG 相比使用更粗的体素和更少的优化迭代，使测试在数秒内完成。

    Args:
        scene: 'gapped_wall' (50 x 50 x 20 地图，带开口的墙) 或 'open' (只有地面)
        **overrides: 点分隔键 -> 值，例如 {'map.dilate_radius': 0.5}
            (关键字参数中的点用双下划线表示: map__dilate_radius=0.5)
    """
    config = copy_default_config()
    if scene == 'gapped_wall':
        config['map']['bound'] = [-5.0, 45.0, -25.0, 25.0, 0.0, 20.0]
        config['map']['voxel_width'] = 0.5
        config['map']['dilate_radius'] = 1.0
    elif scene == 'open':
        config['map']['bound'] = [-5.0, 25.0, -5.0, 5.0, 0.0, 6.0]
        config['map']['voxel_width'] = 0.5
        config['map']['dilate_radius'] = 0.5
    else:
        raise ValueError(f'Unknown scene type: {scene}')

    config['search']['timeout'] = 5.0
    config['optimizer']['integral_intervs'] = 8
    config['optimizer']['max_iterations'] = 60
    config['optimizer']['rel_cost_tol'] = 1e-4
    config['system']['ctrl_freq'] = 100.0

    for key, value in overrides.items():
        set_config_value(config, key.replace('__', '.'), value)
    return config


def create_gapped_wall_points(spacing: float = 0.25) -> np.ndarray:
    """
    地面 + x = 20 处横贯地图的墙，墙上在 y ∈ (3, 9), z ∈ (2, 8) 留有开口

    与 create_test_config('gapped_wall') 的地图范围对应。
    """
    floor = create_floor((-5.0, 45.0), (-25.0, 25.0), z=0.0, spacing=2 * spacing)
    wall = create_wall(20.0, (-25.0, 25.0), (0.0, 20.0), spacing=spacing,
                       gap=((3.0, 9.0), (2.0, 8.0)))
    return np.vstack([floor, wall])


def create_open_points(spacing: float = 0.5) -> np.ndarray:
    """只有地面的开阔场景"""
    return create_floor((-5.0, 25.0), (-5.0, 5.0), z=0.0, spacing=spacing)


def create_frame(points: np.ndarray, point_step: int = 16, stamp: float = 0.0,
                 frame_id: str = 'world') -> PointCloudFrame:
    """由点集创建点云帧 (默认带一个附加 float32 字段)"""
    return PointCloudFrame.from_points(points, point_step=point_step, stamp=stamp, frame_id=frame_id)


def create_scene_frame(scene: str = 'gapped_wall', stamp: float = 0.0) -> PointCloudFrame:
    if scene == 'gapped_wall':
        return create_frame(create_gapped_wall_points(), stamp=stamp)
    if scene == 'open':
        return create_frame(create_open_points(), stamp=stamp)
    raise ValueError(f'Unknown scene type: {scene}')


def goal_for_altitude(x: float, y: float, z: float, bound: Sequence[float],
                      dilate_radius: float, stamp: float = 0.0) -> GoalRequest:
    """
    构建高度为 z 的目标请求

    反解 z = z_min + r + |oz| * (z_span - 2r)
    """
    span = bound[5] - bound[4] - 2.0 * dilate_radius
    orientation_z = (z - bound[4] - dilate_radius) / span
    return GoalRequest(x=x, y=y, orientation_z=orientation_z, stamp=stamp)
