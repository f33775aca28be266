"""
最小 jerk 分段五次多项式 (MINCO 形式)

给定首末状态 (位置、速度、加速度)、中间路径点和各段时长，
唯一确定各段系数: 中间点处位置给定，且 0~4 阶导数连续。

线性系统 (6N x 6N):
    行 0~2:        首段 t=0 处 p, v, a
    每个中间点 i:  段 i 末端位置 = q_i，段 i 与段 i+1 的 0~4 阶导数连续
    最后 3 行:     末段 t=T 处 p, v, a
"""
from typing import Optional
import math

import numpy as np
from scipy import linalg

from ..core.constants import TRAJECTORY_COEFF_NUM
from ..core.exceptions import SolverError
from .trajectory import Trajectory

_N_COEFF = TRAJECTORY_COEFF_NUM


def _derivative_row(t: float, order: int) -> np.ndarray:
    """d^order/dt^order [1, t, ..., t^5] 在 t 处的值"""
    row = np.zeros(_N_COEFF)
    for k in range(order, _N_COEFF):
        row[k] = math.factorial(k) / math.factorial(k - order) * t ** (k - order)
    return row


class MinJerkOpt:
    """最小 jerk 轨迹求解"""

    def __init__(self):
        self.piece_num = 0
        self.head_pva = np.zeros((3, 3))
        self.tail_pva = np.zeros((3, 3))
        self.durations = np.zeros(0)
        self.coeffs: Optional[np.ndarray] = None

    def reset(self, head_pva: np.ndarray, tail_pva: np.ndarray, piece_num: int) -> None:
        """
        Args:
            head_pva: 首状态 (3, 3)，行依次为位置、速度、加速度
            tail_pva: 末状态 (3, 3)
            piece_num: 分段数
        """
        self.piece_num = int(piece_num)
        self.head_pva = np.asarray(head_pva, dtype=float).reshape(3, 3)
        self.tail_pva = np.asarray(tail_pva, dtype=float).reshape(3, 3)
        self.coeffs = None

    def generate(self, inner_points: np.ndarray, durations: np.ndarray) -> np.ndarray:
        """
        求解系数

        Args:
            inner_points: 中间路径点 (N-1, 3)
            durations: 各段时长 (N,)

        Returns:
            系数 (6N, 3)，第 i 段为 [6i:6i+6]

        Raises:
            SolverError: 系统奇异时
        """
        n = self.piece_num
        inner_points = np.asarray(inner_points, dtype=float).reshape(-1, 3)
        durations = np.asarray(durations, dtype=float).reshape(n)
        size = _N_COEFF * n

        A = np.zeros((size, size))
        b = np.zeros((size, 3))

        for order in range(3):
            A[order, 0:_N_COEFF] = _derivative_row(0.0, order)
            b[order] = self.head_pva[order]

        for i in range(n - 1):
            T = durations[i]
            row = _N_COEFF * i + 3
            col = _N_COEFF * i
            A[row, col:col + _N_COEFF] = _derivative_row(T, 0)
            b[row] = inner_points[i]
            for order in range(5):
                A[row + 1 + order, col:col + _N_COEFF] = _derivative_row(T, order)
                A[row + 1 + order, col + _N_COEFF:col + 2 * _N_COEFF] = -_derivative_row(0.0, order)

        T = durations[n - 1]
        col = _N_COEFF * (n - 1)
        for order in range(3):
            A[size - 3 + order, col:col + _N_COEFF] = _derivative_row(T, order)
            b[size - 3 + order] = self.tail_pva[order]

        self.durations = durations.copy()
        try:
            self.coeffs = linalg.solve(A, b)
        except linalg.LinAlgError as e:
            raise SolverError(f"minimum-jerk system is singular: {e}") from e
        return self.coeffs

    def get_energy(self) -> float:
        """∫ |jerk|² dt 的解析值"""
        energy = 0.0
        for i in range(self.piece_num):
            c = self.coeffs[_N_COEFF * i:_N_COEFF * (i + 1)]
            T = self.durations[i]
            energy += (36.0 * c[3] @ c[3] * T
                       + 144.0 * c[4] @ c[3] * T ** 2
                       + 192.0 * c[4] @ c[4] * T ** 3
                       + 240.0 * c[5] @ c[3] * T ** 3
                       + 720.0 * c[5] @ c[4] * T ** 4
                       + 720.0 * c[5] @ c[5] * T ** 5)
        return float(energy)

    def piece_coeffs(self, i: int) -> np.ndarray:
        return self.coeffs[_N_COEFF * i:_N_COEFF * (i + 1)]

    def get_traj(self) -> Trajectory:
        return Trajectory(list(self.durations),
                          [self.piece_coeffs(i) for i in range(self.piece_num)])
