"""
多面体几何工具

多面体以 (K, 4) 半空间矩阵 H = [n | d] 表示，内部为 {x | n·x + d <= 0}。
"""
from typing import Tuple
import logging

import numpy as np
from scipy.optimize import linprog

from ..core.constants import EPSILON, EPSILON_SMALL

logger = logging.getLogger(__name__)

# 内切球半径上限，避免无界多面体导致线性规划无界
MAX_INTERIOR_RADIUS = 1.0e3


def normalize(h_poly: np.ndarray) -> np.ndarray:
    """将每行法向量归一化 (零法向量的行保持原样)"""
    h_poly = np.asarray(h_poly, dtype=float).reshape(-1, 4)
    norms = np.linalg.norm(h_poly[:, :3], axis=1)
    norms = np.where(norms > EPSILON_SMALL, norms, 1.0)
    return h_poly / norms[:, None]


def find_interior(h_poly: np.ndarray) -> Tuple[float, np.ndarray]:
    """
    求 Chebyshev 中心 (最大内切球)

    max r  s.t.  n_i·x + r |n_i| <= -d_i

    Returns:
        (radius, center)；线性规划失败时 radius 为 -inf
    """
    h = normalize(h_poly)
    if h.shape[0] == 0:
        return -np.inf, np.zeros(3)
    a_ub = np.hstack([h[:, :3], np.ones((h.shape[0], 1))])
    b_ub = -h[:, 3]
    c = np.array([0.0, 0.0, 0.0, -1.0])
    bounds = [(None, None)] * 3 + [(None, MAX_INTERIOR_RADIUS)]
    result = linprog(c, A_ub=a_ub, b_ub=b_ub, bounds=bounds, method='highs')
    if result.status != 0 or result.x is None:
        return -np.inf, np.zeros(3)
    return float(result.x[3]), np.asarray(result.x[:3], dtype=float)


def overlap(h_poly0: np.ndarray, h_poly1: np.ndarray, eps: float = EPSILON) -> bool:
    """两个多面体的交集是否包含半径大于 eps 的球"""
    radius, _ = find_interior(np.vstack([h_poly0, h_poly1]))
    return radius > eps


def is_empty(h_poly: np.ndarray, eps: float = EPSILON) -> bool:
    """多面体是否为空 (内切球半径不大于 eps)"""
    radius, _ = find_interior(h_poly)
    return not radius > eps


def contains(h_poly: np.ndarray, point: np.ndarray, tol: float = EPSILON) -> bool:
    """点是否在多面体内 (含边界容差)"""
    h = normalize(h_poly)
    return bool(np.all(h[:, :3] @ np.asarray(point, dtype=float) + h[:, 3] <= tol))


def box_polytope(lower: np.ndarray, upper: np.ndarray) -> np.ndarray:
    """轴对齐包围盒 -> 6 个半空间"""
    h = np.zeros((6, 4))
    for axis in range(3):
        h[2 * axis, axis] = 1.0
        h[2 * axis, 3] = -upper[axis]
        h[2 * axis + 1, axis] = -1.0
        h[2 * axis + 1, 3] = lower[axis]
    return h
