"""
安全飞行走廊生成

build(): 沿路径逐段生成凸多面体
=================================
1. 路径按不超过 progress 的步长切分，每一步为线段 a -> b
2. 包围盒 [min(a,b) - range, max(a,b) + range]，并裁剪到地图包围盒
3. 取包围盒内的障碍物表面点，按到线段距离从近到远依次生成分离半空间:
   法向量由线段上的最近点指向障碍点，平面过障碍点；
   被该平面挡在外侧 (含平面上) 的点随即剔除，直到没有剩余点
4. 若 a 同时位于前一个多面体和当前多面体的边界上 (边界行数合计 >= 3)，
   在 a 处额外插入一个多面体，保证相邻多面体有足够的重叠

simplify(): 反向贪心剪枝
========================
从最后一个多面体开始，向前寻找仍与之重叠的最早多面体 (相邻多面体视为重叠)，
跳到该多面体后继续，直到第一个多面体。只有一个多面体时保持不变。
"""
from typing import List
import logging

import numpy as np

from ..core.interfaces import ICorridorBuilder
from ..core.constants import EPSILON, MIN_SEGMENT_LENGTH, OVERLAP_EPSILON, BOUNDARY_EPSILON
from ..core.exceptions import CorridorError
from . import geo_utils

logger = logging.getLogger(__name__)


def _closest_on_segment(points: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """线段 a-b 上距离各点最近的点 (N, 3)"""
    ab = b - a
    denom = float(ab @ ab)
    if denom < MIN_SEGMENT_LENGTH ** 2:
        return np.repeat(a[None, :], points.shape[0], axis=0)
    t = np.clip((points - a) @ ab / denom, 0.0, 1.0)
    return a + t[:, None] * ab


def separate(box: np.ndarray, points: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    用分离半空间把障碍点从包含线段 a-b 的区域中切除

    Args:
        box: 包围盒半空间 (6, 4)
        points: 包围盒内的障碍点 (N, 3)
        a, b: 线段端点

    Returns:
        多面体 (K, 4)，前 6 行为包围盒
    """
    planes = [box]
    remaining = points
    while remaining.shape[0] > 0:
        closest = _closest_on_segment(remaining, a, b)
        offsets = remaining - closest
        dists = np.linalg.norm(offsets, axis=1)

        # 与线段重合的点无法分离
        valid = dists > EPSILON
        if not np.all(valid):
            logger.debug(f"Skipped {int(np.count_nonzero(~valid))} obstacle points on the segment")
            remaining, offsets, dists = remaining[valid], offsets[valid], dists[valid]
            if remaining.shape[0] == 0:
                break

        k = int(np.argmin(dists))
        normal = offsets[k] / dists[k]
        d = -float(normal @ remaining[k])
        planes.append(np.append(normal, d)[None, :])

        outside = remaining @ normal + d > -EPSILON
        remaining = remaining[~outside]

    return np.vstack(planes)


class ConvexCorridorBuilder(ICorridorBuilder):
    """
    凸多面体安全走廊生成器

    Args:
        progress: 相邻生成点之间的最大距离 (m)
        range: 路径到包围盒边界的扩展距离 (m)
    """

    def __init__(self, progress: float = 7.0, range: float = 3.0):
        self.progress = float(progress)
        self.range = float(range)

    def _bounding_box(self, a, b, origin, corner):
        lower = np.maximum(np.minimum(a, b) - self.range, origin)
        upper = np.minimum(np.maximum(a, b) + self.range, corner)
        return lower, upper

    def build(self, route: List[np.ndarray], surface: np.ndarray,
              origin: np.ndarray, corner: np.ndarray) -> List[np.ndarray]:
        h_polys = []
        if len(route) < 2:
            return h_polys

        origin = np.asarray(origin, dtype=float)
        corner = np.asarray(corner, dtype=float)
        surface = np.asarray(surface, dtype=float).reshape(-1, 3)
        route = [np.asarray(p, dtype=float).reshape(3) for p in route]
        if not all(np.all(np.isfinite(p)) for p in route):
            raise CorridorError('route contains non-finite waypoints')

        b = route[0]
        i = 1
        while i < len(route):
            a = b
            b = route[i]
            step = b - a
            length = float(np.linalg.norm(step))
            if length > self.progress:
                b = a + step * (self.progress / length)
            else:
                i += 1

            lower, upper = self._bounding_box(a, b, origin, corner)
            box = geo_utils.box_polytope(lower, upper)
            inside = np.all((surface >= lower) & (surface <= upper), axis=1)
            valid_pc = surface[inside]
            h_poly = separate(box, valid_pc, a, b)

            if h_polys:
                ah = np.append(a, 1.0)
                on_boundary = int(np.count_nonzero(h_poly @ ah > -BOUNDARY_EPSILON)) \
                    + int(np.count_nonzero(h_polys[-1] @ ah > -BOUNDARY_EPSILON))
                if on_boundary >= 3:
                    gap_lower, gap_upper = self._bounding_box(a, a, origin, corner)
                    gap_box = geo_utils.box_polytope(gap_lower, gap_upper)
                    gap_inside = np.all((surface >= gap_lower) & (surface <= gap_upper), axis=1)
                    h_polys.append(separate(gap_box, surface[gap_inside], a, a))

            h_polys.append(h_poly)

        logger.debug(f"Corridor built: {len(h_polys)} polytopes for {len(route)} waypoints")
        return h_polys

    def simplify(self, polytopes: List[np.ndarray]) -> List[np.ndarray]:
        count = len(polytopes)
        if count <= 2:
            return list(polytopes)

        indices = [count - 1]
        i = count - 1
        while i > 0:
            for j in range(i):
                if j == i - 1 or geo_utils.overlap(polytopes[i], polytopes[j], OVERLAP_EPSILON):
                    indices.insert(0, j)
                    i = j
                    break

        logger.debug(f"Corridor simplified: {count} -> {len(indices)} polytopes")
        return [polytopes[k] for k in indices]
