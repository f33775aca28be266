"""
安全走廊约束下的最小时间轨迹优化

决策变量:
    - 中间路径点 (N-1, 3)，初值为相邻多面体交集的 Chebyshev 中心
    - 各段虚拟时间 tau (N,)，经光滑正映射得到时长 T

代价函数:
    J = ∫|jerk|² + weight_t * ΣT + Σ_i chi_i * ∫ smoothed_l1(g_i)
    约束违反量 g:
        位置:   n·p + d              (各段对应多面体的每个半空间)
        速度:   |v|² - v_max²
        角速度: |ω|² - ω_max²
        倾斜角: arccos(1 - 2(qx² + qy²)) - θ_max
        推力:   (thr - thr_mean)² - thr_radius²
    积分使用梯形公式，每段 integral_res 个区间。

求解器: scipy.optimize.minimize (L-BFGS-B，有限差分梯度)。
"""
from typing import List, Optional, Tuple
import logging
import math

import numpy as np
from scipy import optimize

from ..core.interfaces import ITrajectoryOptimizer
from ..core.constants import (
    EPSILON, MIN_PIECE_DURATION, TRAJECTORY_COEFF_NUM, smoothed_l1,
)
from ..core.exceptions import SolverError
from ..corridor import geo_utils
from ..flatness.flatness_map import FlatnessMap
from .minco import MinJerkOpt
from .trajectory import Trajectory

logger = logging.getLogger(__name__)


def forward_t(tau: np.ndarray) -> np.ndarray:
    """虚拟时间 -> 时长 (光滑、单调、恒正)"""
    tau = np.asarray(tau, dtype=float)
    pos = np.maximum(tau, 0.0)
    neg = np.minimum(tau, 0.0)
    return np.where(tau > 0.0,
                    (0.5 * pos + 1.0) * pos + 1.0,
                    1.0 / ((0.5 * neg - 1.0) * neg + 1.0))


def backward_t(T: np.ndarray) -> np.ndarray:
    """时长 -> 虚拟时间 (forward_t 的逆)"""
    T = np.asarray(T, dtype=float)
    return np.where(T > 1.0,
                    np.sqrt(2.0 * np.maximum(T, 1.0) - 1.0) - 1.0,
                    1.0 - np.sqrt(np.maximum(2.0 / np.maximum(T, EPSILON) - 1.0, 0.0)))


def _derive(coeffs: np.ndarray) -> np.ndarray:
    """升幂系数 (..., K, 3) 的导数系数 (..., K-1, 3)"""
    k = np.arange(1, coeffs.shape[-2], dtype=float)
    return coeffs[..., 1:, :] * k[:, None]


def _polyval(coeffs: np.ndarray, t: np.ndarray) -> np.ndarray:
    """coeffs (N, K, 3), t (N, S) -> (N, S, 3)"""
    powers = t[..., None] ** np.arange(coeffs.shape[1], dtype=float)
    return np.einsum('nsk,nkd->nsd', powers, coeffs)


class PolytopeSFCOptimizer(ITrajectoryOptimizer):
    """
    多面体安全走廊轨迹优化器

    Args:
        max_iterations: L-BFGS-B 最大迭代次数
    """

    def __init__(self, max_iterations: int = 200):
        self.max_iterations = int(max_iterations)
        self._ready = False
        self._minco = MinJerkOpt()
        self._flatness = FlatnessMap()
        self.last_result = None

    # ==================== 问题设置 ====================

    def setup(self, weight_t: float, ini_state: np.ndarray, fin_state: np.ndarray,
              h_polys: List[np.ndarray], length_per_piece: float,
              smoothing_eps: float, integral_res: int,
              magnitude_bounds: np.ndarray, penalty_weights: np.ndarray,
              physical_params: np.ndarray) -> bool:
        self._ready = False

        ini_state = np.asarray(ini_state, dtype=float)
        fin_state = np.asarray(fin_state, dtype=float)
        magnitude_bounds = np.asarray(magnitude_bounds, dtype=float).reshape(-1)
        penalty_weights = np.asarray(penalty_weights, dtype=float).reshape(-1)
        physical_params = np.asarray(physical_params, dtype=float).reshape(-1)

        if not h_polys:
            logger.warning("Optimizer setup rejected: empty corridor")
            return False
        if ini_state.shape != (3, 3) or fin_state.shape != (3, 3) \
                or not np.all(np.isfinite(ini_state)) or not np.all(np.isfinite(fin_state)):
            logger.warning("Optimizer setup rejected: boundary states must be finite 3x3")
            return False
        if magnitude_bounds.shape != (5,) or penalty_weights.shape != (5,) \
                or physical_params.shape != (6,):
            logger.warning("Optimizer setup rejected: malformed parameter vectors")
            return False
        if np.any(magnitude_bounds[:3] <= 0.0) or magnitude_bounds[4] <= 0.0:
            logger.warning(f"Optimizer setup rejected: non-positive bounds {magnitude_bounds.tolist()}")
            return False
        if magnitude_bounds[3] > magnitude_bounds[4]:
            logger.warning(f"Optimizer setup rejected: min thrust {magnitude_bounds[3]} "
                           f"> max thrust {magnitude_bounds[4]}")
            return False
        if physical_params[0] <= 0.0 or smoothing_eps <= 0.0 or int(integral_res) < 1 \
                or not length_per_piece > 0.0 or weight_t < 0.0:
            logger.warning("Optimizer setup rejected: invalid physical or optimizer parameters")
            return False

        polys = [geo_utils.normalize(h) for h in h_polys]
        for i, h in enumerate(polys):
            radius, _ = geo_utils.find_interior(h)
            if not radius > EPSILON:
                logger.warning(f"Optimizer setup rejected: polytope {i} is empty")
                return False

        # 相邻多面体交集的 Chebyshev 中心作为初始路径点
        junctions = [ini_state[0]]
        for i in range(len(polys) - 1):
            radius, center = geo_utils.find_interior(np.vstack([polys[i], polys[i + 1]]))
            if not radius > 0.0:
                logger.warning(f"Optimizer setup rejected: polytopes {i} and {i + 1} do not intersect")
                return False
            junctions.append(center)
        junctions.append(fin_state[0])

        # 每个多面体内按 length_per_piece 切分
        inner = []
        piece_poly = []
        lengths = []
        for i in range(len(polys)):
            a, b = junctions[i], junctions[i + 1]
            seg = float(np.linalg.norm(b - a))
            count = 1 if math.isinf(length_per_piece) else max(1, int(math.ceil(seg / length_per_piece)))
            for k in range(count):
                piece_poly.append(i)
                lengths.append(seg / count)
                if k > 0:
                    inner.append(a + (b - a) * (k / count))
            if i < len(polys) - 1:
                inner.append(b)

        self.weight_t = float(weight_t)
        self.ini_state = ini_state.copy()
        self.fin_state = fin_state.copy()
        self.polys = polys
        self.piece_poly = np.array(piece_poly, dtype=int)
        self.piece_num = len(piece_poly)
        self.smooth_eps = float(smoothing_eps)
        self.integral_res = int(integral_res)
        self.magnitude_bounds = magnitude_bounds
        self.penalty_weights = penalty_weights
        self.physical_params = physical_params

        self._flatness.reset(*physical_params.tolist())
        self._minco.reset(self.ini_state, self.fin_state, self.piece_num)

        v_max = magnitude_bounds[0]
        init_T = np.maximum(np.array(lengths) / v_max, MIN_PIECE_DURATION)
        self._init_points = np.array(inner, dtype=float).reshape(-1, 3)
        self._init_tau = backward_t(init_T)

        # 梯形积分权重
        weights = np.ones(self.integral_res + 1)
        weights[0] = weights[-1] = 0.5
        self._trapezoid = weights
        self._unit_times = np.linspace(0.0, 1.0, self.integral_res + 1)

        self._ready = True
        logger.debug(f"Optimizer setup: {len(polys)} polytopes, {self.piece_num} pieces")
        return True

    # ==================== 代价函数 ====================

    def _split(self, x: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        n_inner = 3 * (self.piece_num - 1)
        return x[:n_inner].reshape(-1, 3), x[n_inner:]

    def _penalty(self, coeffs: np.ndarray, durations: np.ndarray) -> float:
        v_max, omg_max, theta_max, thr_min, thr_max = self.magnitude_bounds
        thr_mean = 0.5 * (thr_min + thr_max)
        thr_radius = 0.5 * (thr_max - thr_min)
        mu = self.smooth_eps
        chi = self.penalty_weights

        t = durations[:, None] * self._unit_times[None, :]
        d1 = _derive(coeffs)
        d2 = _derive(d1)
        d3 = _derive(d2)
        pos = _polyval(coeffs, t)
        vel = _polyval(d1, t)
        acc = _polyval(d2, t)
        jer = _polyval(d3, t)

        step = (durations / self.integral_res)[:, None] * self._trapezoid[None, :]

        # 走廊约束
        pos_pen = np.zeros(t.shape)
        for i in range(self.piece_num):
            h = self.polys[self.piece_poly[i]]
            viol = pos[i] @ h[:, :3].T + h[:, 3]
            pos_pen[i] = np.sum(smoothed_l1(viol, mu), axis=1)

        vel_pen = smoothed_l1(np.sum(vel * vel, axis=2) - v_max ** 2, mu)

        shape = t.shape
        thr, quat, omg = self._flatness.forward_batch(
            vel.reshape(-1, 3), acc.reshape(-1, 3), jer.reshape(-1, 3), 0.0, 0.0)
        omg_pen = smoothed_l1(np.sum(omg * omg, axis=1) - omg_max ** 2, mu).reshape(shape)
        cos_tilt = np.clip(1.0 - 2.0 * (quat[:, 1] ** 2 + quat[:, 2] ** 2), -1.0, 1.0)
        tilt_pen = smoothed_l1(np.arccos(cos_tilt) - theta_max, mu).reshape(shape)
        thr_pen = smoothed_l1((thr - thr_mean) ** 2 - thr_radius ** 2, mu).reshape(shape)

        total = (chi[0] * pos_pen + chi[1] * vel_pen + chi[2] * omg_pen
                 + chi[3] * tilt_pen + chi[4] * thr_pen)
        return float(np.sum(total * step))

    def cost(self, x: np.ndarray) -> float:
        """目标函数值"""
        points, tau = self._split(np.asarray(x, dtype=float))
        with np.errstate(over='raise', invalid='raise', divide='raise'):
            durations = forward_t(tau)
            flat = self._minco.generate(points, durations)
            coeffs = flat.reshape(self.piece_num, TRAJECTORY_COEFF_NUM, 3)
            return (self._minco.get_energy()
                    + self.weight_t * float(np.sum(durations))
                    + self._penalty(coeffs, durations))

    # ==================== 求解 ====================

    def optimize(self, rel_cost_tol: float) -> Tuple[float, Optional[Trajectory]]:
        if not self._ready:
            logger.warning("optimize() called without a successful setup()")
            return math.inf, None

        x0 = np.concatenate([self._init_points.reshape(-1), self._init_tau])
        try:
            result = optimize.minimize(
                self.cost, x0, method='L-BFGS-B',
                options={'maxiter': self.max_iterations, 'ftol': float(rel_cost_tol)})
            points, tau = self._split(result.x)
            self._minco.generate(points, forward_t(tau))
        except (SolverError, FloatingPointError) as e:
            logger.warning(f"Trajectory optimization failed numerically: {e}")
            return math.inf, None

        self.last_result = result
        cost = float(result.fun)
        if not math.isfinite(cost):
            logger.warning("Trajectory optimization produced a non-finite cost")
            return math.inf, None
        if not result.success:
            logger.debug(f"L-BFGS-B stopped early: {result.message}")

        traj = self._minco.get_traj()
        logger.debug(f"Optimization finished: cost={cost:.3f}, iterations={result.nit}, "
                     f"duration={traj.get_total_duration():.3f}s")
        return cost, traj
