"""
分段多项式轨迹

每段为五次多项式 p(t) = Σ c_k t^k, t ∈ [0, T]，系数按升幂存储为 (6, 3) 数组。
轨迹创建后不可修改；采样时间超出范围时截断到首段/末段端点。
"""
from typing import List, Sequence, Tuple
import numpy as np

from ..core.constants import TRAJECTORY_COEFF_NUM


def _readonly(array: np.ndarray) -> np.ndarray:
    array = np.array(array, dtype=float)
    array.setflags(write=False)
    return array


class Piece:
    """
    单段多项式

    Args:
        duration: 时长 (秒，> 0)
        coeffs: 系数 (6, 3)，第 k 行为 t^k 的系数
    """

    def __init__(self, duration: float, coeffs: np.ndarray):
        coeffs = np.asarray(coeffs, dtype=float)
        if coeffs.shape != (TRAJECTORY_COEFF_NUM, 3):
            raise ValueError(f'piece coefficients must be (6, 3), got {coeffs.shape}')
        if not duration > 0:
            raise ValueError(f'piece duration must be positive, got {duration}')
        self._duration = float(duration)
        self._coeffs = _readonly(coeffs)

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def coeffs(self) -> np.ndarray:
        return self._coeffs

    def _eval(self, t, order: int) -> np.ndarray:
        t = np.asarray(t, dtype=float)
        result = np.zeros(t.shape + (3,))
        for k in range(order, TRAJECTORY_COEFF_NUM):
            factor = 1.0
            for m in range(order):
                factor *= (k - m)
            result += factor * (t[..., None] ** (k - order)) * self._coeffs[k]
        return result

    def get_pos(self, t) -> np.ndarray:
        return self._eval(t, 0)

    def get_vel(self, t) -> np.ndarray:
        return self._eval(t, 1)

    def get_acc(self, t) -> np.ndarray:
        return self._eval(t, 2)

    def get_jer(self, t) -> np.ndarray:
        return self._eval(t, 3)


class Trajectory:
    """
    分段多项式轨迹

    Args:
        durations: 各段时长
        coeffs: 各段系数列表，每个元素 (6, 3)
    """

    def __init__(self, durations: Sequence[float], coeffs: Sequence[np.ndarray]):
        if len(durations) != len(coeffs):
            raise ValueError('durations and coeffs must have the same length')
        self._pieces: Tuple[Piece, ...] = tuple(
            Piece(T, c) for T, c in zip(durations, coeffs))
        self._durations = _readonly([p.duration for p in self._pieces])
        self._starts = _readonly(np.concatenate([[0.0], np.cumsum(self._durations)])[:-1]) \
            if self._pieces else _readonly([])

    def get_piece_num(self) -> int:
        return len(self._pieces)

    def get_durations(self) -> np.ndarray:
        return self._durations

    def get_total_duration(self) -> float:
        return float(np.sum(self._durations)) if self._pieces else 0.0

    def __len__(self) -> int:
        return len(self._pieces)

    def __getitem__(self, index: int) -> Piece:
        return self._pieces[index]

    def locate_piece_idx(self, t: float) -> Tuple[int, float]:
        """
        定位时间 t 所在的分段

        Returns:
            (分段索引, 段内时间)，超出范围时截断到首/末段
        """
        if not self._pieces:
            raise IndexError('trajectory has no pieces')
        idx = int(np.searchsorted(self._starts, t, side='right')) - 1
        idx = min(max(idx, 0), len(self._pieces) - 1)
        local = t - self._starts[idx]
        local = min(max(local, 0.0), self._durations[idx])
        return idx, float(local)

    def _sample(self, t: float, order: int) -> np.ndarray:
        idx, local = self.locate_piece_idx(t)
        return self._pieces[idx]._eval(local, order)

    def get_pos(self, t: float) -> np.ndarray:
        return self._sample(t, 0)

    def get_vel(self, t: float) -> np.ndarray:
        return self._sample(t, 1)

    def get_acc(self, t: float) -> np.ndarray:
        return self._sample(t, 2)

    def get_jer(self, t: float) -> np.ndarray:
        return self._sample(t, 3)

    def get_junction_positions(self) -> np.ndarray:
        """各段起点及终点位置 (piece_num + 1, 3)"""
        if not self._pieces:
            return np.zeros((0, 3))
        points = [p.get_pos(0.0) for p in self._pieces]
        points.append(self._pieces[-1].get_pos(self._pieces[-1].duration))
        return np.array(points)

    def sample(self, dt: float) -> Tuple[np.ndarray, np.ndarray]:
        """
        等间隔采样位置

        Returns:
            (时间 (N,), 位置 (N, 3))，包含终点
        """
        total = self.get_total_duration()
        if total <= 0.0:
            return np.zeros(0), np.zeros((0, 3))
        times = np.append(np.arange(0.0, total, dt), total)
        positions = np.array([self.get_pos(t) for t in times])
        return times, positions

    def get_max_vel_rate(self, samples_per_piece: int = 64) -> float:
        """速度大小的采样最大值"""
        return self._max_norm(1, samples_per_piece)

    def get_max_acc_rate(self, samples_per_piece: int = 64) -> float:
        """加速度大小的采样最大值"""
        return self._max_norm(2, samples_per_piece)

    def _max_norm(self, order: int, samples_per_piece: int) -> float:
        best = 0.0
        for piece in self._pieces:
            ts = np.linspace(0.0, piece.duration, samples_per_piece + 1)
            values = np.linalg.norm(piece._eval(ts, order), axis=1)
            best = max(best, float(values.max()))
        return best
