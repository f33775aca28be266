"""
四旋翼微分平坦映射 (含阻力模型)

由平坦输出 (速度、加速度、jerk、偏航角及其速率) 计算:
    - 总推力 thr
    - 姿态四元数 (w, x, y, z)
    - 机体角速度 omg

阻力模型:
    w  = (1 + cp * sqrt(|v|² + veps)) * v
    zu = a + (dh / m) * w + [0, 0, g]          (推力方向，未归一化)
    f  = m * a + dv * w + [0, 0, m g]
    thr = z · f，其中 z = zu / |zu|

姿态 = 倾斜四元数 (把 e_z 转到 z 的最短旋转) 再绕 z 旋转 psi。
"""
from typing import Tuple
import logging

import numpy as np

from ..core.interfaces import IFlatnessMap
from ..core.exceptions import InitializationError

logger = logging.getLogger(__name__)


class FlatnessMap(IFlatnessMap):
    """
    微分平坦映射

    使用前必须调用 reset() 设置物理参数。
    """

    def __init__(self):
        self._initialized = False
        self.mass = 1.0
        self.grav = 9.81
        self.dh = 0.0
        self.dv = 0.0
        self.cp = 0.0
        self.veps = 1.0e-4

    def reset(self, vehicle_mass: float, gravitational_acceleration: float,
              horizontal_drag_coeff: float, vertical_drag_coeff: float,
              parasitic_drag_coeff: float, speed_smooth_factor: float) -> None:
        if vehicle_mass <= 0:
            raise InitializationError(f'vehicle mass must be positive, got {vehicle_mass}')
        self.mass = float(vehicle_mass)
        self.grav = float(gravitational_acceleration)
        self.dh = float(horizontal_drag_coeff)
        self.dv = float(vertical_drag_coeff)
        self.cp = float(parasitic_drag_coeff)
        self.veps = float(speed_smooth_factor)
        self._initialized = True

    @classmethod
    def from_physical_params(cls, params) -> 'FlatnessMap':
        """由 [mass, grav, dh, dv, cp, veps] 构建"""
        flatness = cls()
        flatness.reset(*[float(p) for p in params])
        return flatness

    def forward(self, vel: np.ndarray, acc: np.ndarray, jer: np.ndarray,
                psi: float, dpsi: float) -> Tuple[float, np.ndarray, np.ndarray]:
        thr, quat, omg = self.forward_batch(
            np.asarray(vel, dtype=float).reshape(1, 3),
            np.asarray(acc, dtype=float).reshape(1, 3),
            np.asarray(jer, dtype=float).reshape(1, 3),
            psi, dpsi)
        return float(thr[0]), quat[0], omg[0]

    def forward_batch(self, vel: np.ndarray, acc: np.ndarray, jer: np.ndarray,
                      psi=0.0, dpsi=0.0) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        批量前向映射

        Args:
            vel, acc, jer: (N, 3)
            psi, dpsi: 标量或 (N,)

        Returns:
            thr (N,), quat (N, 4), omg (N, 3)
        """
        if not self._initialized:
            raise InitializationError('FlatnessMap.reset() must be called before forward()')

        vel = np.asarray(vel, dtype=float)
        acc = np.asarray(acc, dtype=float)
        jer = np.asarray(jer, dtype=float)
        psi = np.broadcast_to(np.asarray(psi, dtype=float), vel.shape[:1])
        dpsi = np.broadcast_to(np.asarray(dpsi, dtype=float), vel.shape[:1])

        cp_term = np.sqrt(np.sum(vel * vel, axis=1) + self.veps)
        w_term = 1.0 + self.cp * cp_term
        w = w_term[:, None] * vel
        dh_over_m = self.dh / self.mass

        zu = acc + dh_over_m * w
        zu[:, 2] += self.grav
        zu_sqr_norm = np.sum(zu * zu, axis=1)
        zu_norm = np.sqrt(zu_sqr_norm)
        z = zu / zu_norm[:, None]

        # d(zu/|zu|)/d(zu) = (I |zu|² - zu zuᵀ) / |zu|³
        ng_den = zu_sqr_norm * zu_norm
        v_dot_a = np.sum(vel * acc, axis=1)
        dw = w_term[:, None] * acc + (self.cp * v_dot_a / cp_term)[:, None] * vel
        dz_term = jer + dh_over_m * dw
        dz = (zu_sqr_norm[:, None] * dz_term
              - zu * np.sum(zu * dz_term, axis=1)[:, None]) / ng_den[:, None]

        f_term = self.mass * acc + self.dv * w
        f_term[:, 2] += self.mass * self.grav
        thr = np.sum(z * f_term, axis=1)

        tilt_den = np.sqrt(2.0 * (1.0 + z[:, 2]))
        tilt0 = 0.5 * tilt_den
        tilt1 = -z[:, 1] / tilt_den
        tilt2 = z[:, 0] / tilt_den
        c_half_psi = np.cos(0.5 * psi)
        s_half_psi = np.sin(0.5 * psi)
        quat = np.stack([
            tilt0 * c_half_psi,
            tilt1 * c_half_psi + tilt2 * s_half_psi,
            tilt2 * c_half_psi - tilt1 * s_half_psi,
            tilt0 * s_half_psi,
        ], axis=1)

        c_psi = np.cos(psi)
        s_psi = np.sin(psi)
        omg_den = z[:, 2] + 1.0
        omg_term = dz[:, 2] / omg_den
        omg = np.stack([
            dz[:, 0] * s_psi - dz[:, 1] * c_psi - (z[:, 0] * s_psi - z[:, 1] * c_psi) * omg_term,
            dz[:, 0] * c_psi + dz[:, 1] * s_psi - (z[:, 0] * c_psi + z[:, 1] * s_psi) * omg_term,
            (z[:, 1] * dz[:, 0] - z[:, 0] * dz[:, 1]) / omg_den + dpsi,
        ], axis=1)

        return thr, quat, omg
