"""体素地图与点云解码测试"""
import struct

import numpy as np
import pytest

from global_planner.core.data_types import PointCloudFrame
from global_planner.core.enums import VoxelState
from global_planner.core.exceptions import InitializationError
from global_planner.mapping.voxel_map import VoxelMap
from global_planner.mapping.point_cloud import decode_points, finite_points


def _make_map(size=(10, 10, 10), scale=1.0):
    return VoxelMap(size, np.zeros(3), scale)


# =============================================================================
# VoxelMap
# =============================================================================

def test_voxel_map_geometry():
    vmap = VoxelMap((4, 6, 8), [-1.0, -2.0, 0.0], 0.5)
    assert vmap.get_size() == (4, 6, 8)
    assert np.allclose(vmap.get_origin(), [-1.0, -2.0, 0.0])
    assert np.allclose(vmap.get_corner(), [1.0, 1.0, 4.0])
    assert vmap.get_scale() == 0.5


def test_voxel_map_rejects_empty_size():
    with pytest.raises(InitializationError):
        VoxelMap((0, 5, 5), np.zeros(3), 1.0)
    with pytest.raises(InitializationError):
        VoxelMap((5, 5, 5), np.zeros(3), 0.0)


def test_set_and_query():
    """测试写入后查询"""
    vmap = _make_map()
    p = np.array([2.5, 3.5, 4.5])
    assert vmap.query(p) == VoxelState.UNOCCUPIED
    vmap.set_occupied(p)
    assert vmap.query(p) == VoxelState.OCCUPIED
    # 同一体素内的其他点
    assert vmap.query(np.array([2.1, 3.9, 4.0])) == VoxelState.OCCUPIED
    assert vmap.is_occupied(p)


def test_out_of_bounds_is_occupied_and_ignored():
    """测试包围盒外的点: 写入忽略，查询为占据"""
    vmap = _make_map()
    outside = np.array([-0.5, 5.0, 5.0])
    assert vmap.query(outside) == VoxelState.OCCUPIED
    assert vmap.query(np.array([5.0, 5.0, 10.0])) == VoxelState.OCCUPIED

    inside_count = vmap.set_occupied_batch(np.array([outside, [11.0, 1.0, 1.0]]))
    assert inside_count == 0
    assert vmap.count(VoxelState.OCCUPIED) == 0


def test_dilation_radius():
    """测试膨胀层数与 26 邻域"""
    vmap = _make_map((11, 11, 11))
    center = np.array([5.5, 5.5, 5.5])
    vmap.set_occupied(center)
    vmap.dilate(2)

    assert vmap.query(center) == VoxelState.OCCUPIED
    assert vmap.query(center + [1.0, 0.0, 0.0]) == VoxelState.DILATED
    assert vmap.query(center + [2.0, 2.0, 2.0]) == VoxelState.DILATED  # 对角
    assert vmap.query(center + [3.0, 0.0, 0.0]) == VoxelState.UNOCCUPIED
    assert vmap.count(VoxelState.OCCUPIED) == 1
    assert vmap.count(VoxelState.DILATED) == 5 ** 3 - 1


def test_dilation_zero_steps():
    vmap = _make_map()
    vmap.set_occupied(np.array([5.5, 5.5, 5.5]))
    vmap.dilate(0)
    assert vmap.count(VoxelState.DILATED) == 0


def test_surface_of_block():
    """测试表面提取: 3x3x3 实心块只有中心不是表面"""
    vmap = _make_map()
    block = np.array([[x + 0.5, y + 0.5, z + 0.5]
                      for x in range(3, 6) for y in range(3, 6) for z in range(3, 6)])
    vmap.set_occupied_batch(block)
    surface = vmap.get_surface()
    assert surface.shape == (26, 3)
    assert not np.any(np.all(np.isclose(surface, [4.5, 4.5, 4.5]), axis=1))


def test_surface_empty_map():
    assert _make_map().get_surface().shape == (0, 3)


def test_query_batch_matches_query():
    vmap = _make_map()
    vmap.set_occupied_batch(np.array([[1.5, 1.5, 1.5], [8.5, 8.5, 8.5]]))
    points = np.array([[1.5, 1.5, 1.5], [2.5, 1.5, 1.5], [8.2, 8.7, 8.1], [-1.0, 0.0, 0.0]])
    states = vmap.query_batch(points)
    assert list(states) == [vmap.query(p) for p in points]


def test_grid_view_is_readonly():
    vmap = _make_map()
    with pytest.raises(ValueError):
        vmap.grid[0, 0, 0] = 1


# =============================================================================
# 点云解码
# =============================================================================

def test_decode_with_stride():
    """测试按点步长解码，只取前三个字段"""
    raw = struct.pack('<4f', 1.0, 2.0, 3.0, 99.0) + struct.pack('<4f', 4.0, 5.0, 6.0, 98.0)
    frame = PointCloudFrame(data=raw, point_step=16)
    points = decode_points(frame)
    assert points.shape == (2, 3)
    assert np.allclose(points, [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])


def test_decode_ignores_trailing_partial_point():
    raw = struct.pack('<3f', 1.0, 2.0, 3.0) + struct.pack('<2f', 7.0, 8.0)
    frame = PointCloudFrame(data=raw, point_step=12)
    points = decode_points(frame)
    assert points.shape == (1, 3)


def test_decode_invalid_point_step():
    with pytest.raises(ValueError):
        decode_points(PointCloudFrame(data=b'\x00' * 24, point_step=8))


def test_finite_points_drops_nan():
    """测试丢弃含 NaN/inf 的点"""
    pts = np.array([[1.0, 2.0, 3.0], [np.nan, 0.0, 0.0], [0.0, np.inf, 0.0], [4.0, 5.0, 6.0]])
    frame = PointCloudFrame.from_points(pts, point_step=16)
    points = finite_points(frame)
    assert points.shape == (2, 3)
    assert np.allclose(points[1], [4.0, 5.0, 6.0])


def test_empty_frame():
    assert finite_points(PointCloudFrame(data=b'', point_step=12)).shape == (0, 3)
