"""安全飞行走廊测试"""
import numpy as np
import pytest

from global_planner.core.exceptions import CorridorError
from global_planner.corridor import geo_utils
from global_planner.corridor.sfc_gen import ConvexCorridorBuilder, separate


ORIGIN = np.zeros(3)
CORNER = np.array([30.0, 10.0, 10.0])


def _strictly_outside(h_poly, point):
    h = geo_utils.normalize(h_poly)
    return bool(np.any(h[:, :3] @ point + h[:, 3] > -1e-6))


# =============================================================================
# 几何工具
# =============================================================================

def test_box_polytope_and_interior():
    """测试包围盒的 Chebyshev 中心"""
    box = geo_utils.box_polytope(np.array([0.0, 0.0, 0.0]), np.array([4.0, 2.0, 6.0]))
    radius, center = geo_utils.find_interior(box)
    assert np.isclose(radius, 1.0)
    assert np.isclose(center[1], 1.0)
    assert geo_utils.contains(box, center)
    assert not geo_utils.contains(box, np.array([5.0, 1.0, 1.0]))


def test_overlap_and_empty():
    a = geo_utils.box_polytope(np.zeros(3), np.ones(3))
    b = geo_utils.box_polytope(np.array([0.5, 0.0, 0.0]), np.array([1.5, 1.0, 1.0]))
    c = geo_utils.box_polytope(np.array([2.0, 0.0, 0.0]), np.array([3.0, 1.0, 1.0]))
    assert geo_utils.overlap(a, b)
    assert not geo_utils.overlap(a, c)
    assert geo_utils.is_empty(np.vstack([a, c]))
    assert not geo_utils.is_empty(a)


def test_normalize_rows():
    h = geo_utils.normalize(np.array([[0.0, 2.0, 0.0, -4.0]]))
    assert np.allclose(h, [[0.0, 1.0, 0.0, -2.0]])


# =============================================================================
# 分离半空间
# =============================================================================

def test_separate_excludes_obstacles():
    """测试生成的多面体包含线段、排除全部障碍点"""
    box = geo_utils.box_polytope(np.full(3, -2.0), np.full(3, 2.0))
    a = np.array([-1.0, 0.0, 0.0])
    b = np.array([1.0, 0.0, 0.0])
    obstacles = np.array([
        [0.0, 1.0, 0.0],
        [0.0, 1.5, 0.0],
        [0.5, 0.0, -1.0],
        [1.5, 0.8, 0.8],
    ])
    h_poly = separate(box, obstacles, a, b)

    assert h_poly.shape[1] == 4
    assert np.allclose(h_poly[:6], box)
    for p in (a, b, 0.5 * (a + b)):
        assert geo_utils.contains(h_poly, p)
    for p in obstacles:
        assert _strictly_outside(h_poly, p)


def test_separate_nearest_first():
    """测试被最近平面挡住的点不再生成新平面"""
    box = geo_utils.box_polytope(np.full(3, -3.0), np.full(3, 3.0))
    a = np.array([-1.0, 0.0, 0.0])
    b = np.array([1.0, 0.0, 0.0])
    obstacles = np.array([[0.0, 1.0, 0.0], [0.0, 2.0, 0.0], [0.3, 2.5, 0.1]])
    h_poly = separate(box, obstacles, a, b)
    assert h_poly.shape[0] == 7
    assert np.allclose(h_poly[6], [0.0, 1.0, 0.0, -1.0])


def test_separate_skips_points_on_segment():
    box = geo_utils.box_polytope(np.full(3, -2.0), np.full(3, 2.0))
    a = np.array([-1.0, 0.0, 0.0])
    b = np.array([1.0, 0.0, 0.0])
    h_poly = separate(box, np.array([[0.0, 0.0, 0.0]]), a, b)
    assert h_poly.shape == (6, 4)


# =============================================================================
# 走廊生成
# =============================================================================

def test_build_covers_route():
    """测试每段路径都被走廊覆盖，且相邻多面体重叠"""
    builder = ConvexCorridorBuilder(progress=7.0, range=3.0)
    route = [np.array([1.0, 5.0, 5.0]), np.array([20.0, 5.0, 5.0]), np.array([25.0, 8.0, 5.0])]
    surface = np.array([[4.0, 7.5, 5.0], [15.0, 2.5, 5.0], [22.0, 5.0, 7.5]])

    polys = builder.build(route, surface, ORIGIN, CORNER)
    assert len(polys) >= 4

    for p0, p1 in zip(polys[:-1], polys[1:]):
        assert geo_utils.overlap(p0, p1)

    # 每个多面体都排除了其包围盒内的表面点
    for poly in polys:
        for p in surface:
            if geo_utils.contains(poly[:6], p):
                assert _strictly_outside(poly, p)

    # 路径上的采样点都在某个多面体内
    for a, b in zip(route[:-1], route[1:]):
        for t in np.linspace(0.0, 1.0, 21):
            q = a + t * (b - a)
            assert any(geo_utils.contains(poly, q) for poly in polys)


def test_build_clips_to_map():
    builder = ConvexCorridorBuilder(progress=7.0, range=3.0)
    route = [np.array([1.0, 1.0, 1.0]), np.array([4.0, 1.0, 1.0])]
    polys = builder.build(route, np.zeros((0, 3)), ORIGIN, CORNER)
    assert len(polys) == 1
    # 下界被裁剪到地图原点
    assert np.isclose(polys[0][1, 3], 0.0)
    assert np.isclose(polys[0][0, 3], -7.0)


def test_build_inserts_gap_polytope():
    """测试路径点位于两个多面体边界上时插入额外多面体"""
    builder = ConvexCorridorBuilder(progress=20.0, range=3.0)
    origin, corner = np.zeros(3), np.full(3, 10.0)
    route = [np.array([5.0, 5.0, 5.0]), np.array([10.0, 5.0, 10.0]), np.array([10.0, 10.0, 10.0])]
    polys = builder.build(route, np.zeros((0, 3)), origin, corner)
    assert len(polys) == 3
    assert geo_utils.contains(polys[1], route[1])


def test_build_short_route():
    builder = ConvexCorridorBuilder()
    assert builder.build([np.zeros(3)], np.zeros((0, 3)), ORIGIN, CORNER) == []


# =============================================================================
# 走廊简化
# =============================================================================

def _x_box(x0, x1):
    return geo_utils.box_polytope(np.array([x0, 0.0, 0.0]), np.array([x1, 1.0, 1.0]))


def test_simplify_removes_redundant():
    """测试首尾重叠时中间多面体被剔除"""
    builder = ConvexCorridorBuilder()
    polys = [_x_box(0.0, 3.0), _x_box(1.0, 4.0), _x_box(2.0, 5.0)]
    simplified = builder.simplify(polys)
    assert len(simplified) == 2
    assert simplified[0] is polys[0]
    assert simplified[-1] is polys[-1]


def test_simplify_keeps_chain():
    builder = ConvexCorridorBuilder()
    polys = [_x_box(0.0, 2.0), _x_box(1.5, 4.0), _x_box(3.5, 6.0), _x_box(5.5, 8.0)]
    simplified = builder.simplify(polys)
    assert len(simplified) == 4
    for p0, p1 in zip(simplified[:-1], simplified[1:]):
        assert geo_utils.overlap(p0, p1)


def test_simplify_small_inputs():
    builder = ConvexCorridorBuilder()
    single = [_x_box(0.0, 1.0)]
    result = builder.simplify(single)
    assert len(result) == 1 and result[0] is single[0]
    assert builder.simplify([]) == []


def test_build_rejects_non_finite_route():
    builder = ConvexCorridorBuilder()
    route = [np.array([1.0, 1.0, 1.0]), np.array([np.inf, 1.0, 1.0])]
    with pytest.raises(CorridorError):
        builder.build(route, np.zeros((0, 3)), ORIGIN, CORNER)
