"""接口定义"""
from abc import ABC, abstractmethod
from typing import List, Tuple, Optional, Callable, Any, TYPE_CHECKING
import numpy as np

from .enums import TelemetryChannel
from .constants import START_GOAL_MARKER_RADIUS, TRAJECTORY_SAMPLE_DT

# 类型检查时导入，避免循环导入
if TYPE_CHECKING:
    from .data_types import FlightCommand
    from ..trajectory.trajectory import Trajectory


class IOccupancyMap(ABC):
    """
    占据栅格地图接口

    坐标在地图坐标系下给出；包围盒外的点查询结果为 OCCUPIED。

    批量写入/查询和 grid 提供基于单点方法的默认实现，
    实现类可以用向量化版本覆盖。
    """

    @abstractmethod
    def set_occupied(self, point: np.ndarray) -> None:
        """标记点所在体素为占据 (包围盒外的点被忽略)"""
        pass

    @abstractmethod
    def query(self, point: np.ndarray) -> int:
        """查询点所在体素的状态 (VoxelState)"""
        pass

    @abstractmethod
    def dilate(self, steps: int) -> None:
        """将占据区域膨胀 steps 层"""
        pass

    @abstractmethod
    def get_surface(self) -> np.ndarray:
        """返回障碍物表面体素中心 (N, 3)"""
        pass

    @abstractmethod
    def get_origin(self) -> np.ndarray:
        pass

    @abstractmethod
    def get_corner(self) -> np.ndarray:
        pass

    @abstractmethod
    def get_scale(self) -> float:
        pass

    @abstractmethod
    def get_size(self) -> Tuple[int, int, int]:
        """各轴体素数量 (nx, ny, nz)"""
        pass

    def set_occupied_batch(self, points: np.ndarray) -> int:
        """
        批量标记占据

        Returns:
            落在包围盒内的点数
        """
        points = np.asarray(points, dtype=float).reshape(-1, 3)
        origin, corner = self.get_origin(), self.get_corner()
        inside = 0
        for p in points:
            if np.all(p >= origin) and np.all(p < corner):
                inside += 1
            self.set_occupied(p)
        return inside

    def query_batch(self, points: np.ndarray) -> np.ndarray:
        """批量查询体素状态 (N,)"""
        points = np.asarray(points, dtype=float).reshape(-1, 3)
        return np.array([self.query(p) for p in points], dtype=np.uint8)

    @property
    def grid(self) -> np.ndarray:
        """体素状态数组，形状为 get_size()，按体素中心逐个查询"""
        size = self.get_size()
        axes = [np.arange(n) for n in size]
        idx = np.stack(np.meshgrid(*axes, indexing='ij'), axis=-1).reshape(-1, 3)
        centers = self.get_origin() + (idx + 0.5) * self.get_scale()
        return self.query_batch(centers).reshape(size)


class IPathSearch(ABC):
    """路径搜索接口"""

    @abstractmethod
    def find(self, start: np.ndarray, goal: np.ndarray,
             origin: np.ndarray, corner: np.ndarray,
             voxel_map: IOccupancyMap, timeout: float) -> List[np.ndarray]:
        """
        在自由空间中搜索从 start 到 goal 的路径

        Returns:
            路径关键点列表；失败或超时返回空列表
        """
        pass


class ICorridorBuilder(ABC):
    """安全走廊生成接口"""

    @abstractmethod
    def build(self, route: List[np.ndarray], surface: np.ndarray,
              origin: np.ndarray, corner: np.ndarray) -> List[np.ndarray]:
        """沿路径生成覆盖路径的凸多面体序列"""
        pass

    @abstractmethod
    def simplify(self, polytopes: List[np.ndarray]) -> List[np.ndarray]:
        """去除冗余多面体，保持相邻重叠"""
        pass


class ITrajectoryOptimizer(ABC):
    """轨迹优化接口"""

    @abstractmethod
    def setup(self, weight_t: float, ini_state: np.ndarray, fin_state: np.ndarray,
              h_polys: List[np.ndarray], length_per_piece: float,
              smoothing_eps: float, integral_res: int,
              magnitude_bounds: np.ndarray, penalty_weights: np.ndarray,
              physical_params: np.ndarray) -> bool:
        """设置优化问题；问题无效时返回 False"""
        pass

    @abstractmethod
    def optimize(self, rel_cost_tol: float) -> Tuple[float, Optional['Trajectory']]:
        """
        求解优化问题

        Returns:
            (cost, trajectory)；失败时 cost 为非有限值
        """
        pass


class IFlatnessMap(ABC):
    """微分平坦映射接口"""

    @abstractmethod
    def reset(self, vehicle_mass: float, gravitational_acceleration: float,
              horizontal_drag_coeff: float, vertical_drag_coeff: float,
              parasitic_drag_coeff: float, speed_smooth_factor: float) -> None:
        pass

    @abstractmethod
    def forward(self, vel: np.ndarray, acc: np.ndarray, jer: np.ndarray,
                psi: float, dpsi: float) -> Tuple[float, np.ndarray, np.ndarray]:
        """
        平坦输出 -> (推力, 四元数 (w, x, y, z), 机体角速度)
        """
        pass


class ITelemetrySink(ABC):
    """
    遥测输出接口

    实现类只需提供 publish / add_callback；
    各 publish_xxx 方法负责构建对应通道的负载。
    """

    @abstractmethod
    def publish(self, channel: TelemetryChannel, payload: Any) -> None:
        pass

    @abstractmethod
    def add_callback(self, callback: Callable[[TelemetryChannel, Any], None]) -> None:
        pass

    def publish_flight_command(self, cmd: 'FlightCommand') -> None:
        """发布一次指令循环输出: 速度、推力、倾斜角、角速度和位置标记"""
        self.publish(TelemetryChannel.SPEED, {'stamp': cmd.stamp, 'value': cmd.speed})
        self.publish(TelemetryChannel.THRUST, {'stamp': cmd.stamp, 'value': cmd.thrust})
        self.publish(TelemetryChannel.TILT, {'stamp': cmd.stamp, 'value': cmd.tilt_angle})
        self.publish(TelemetryChannel.BODY_RATE, {'stamp': cmd.stamp, 'value': cmd.body_rate_mag})
        self.publish(TelemetryChannel.POSITION, {
            'stamp': cmd.stamp,
            'position': cmd.position.tolist(),
            'radius': cmd.marker_radius,
        })

    def publish_start_goal(self, point: np.ndarray, index: int, stamp: float = 0.0) -> None:
        """起点/终点标记 (index 为该点在序列中的位置)"""
        self.publish(TelemetryChannel.START_GOAL, {
            'stamp': stamp,
            'position': np.asarray(point, dtype=float).tolist(),
            'radius': START_GOAL_MARKER_RADIUS,
            'index': int(index),
        })

    def publish_route(self, route, stamp: float = 0.0) -> None:
        self.publish(TelemetryChannel.ROUTE, {
            'stamp': stamp,
            'points': [np.asarray(p, dtype=float).tolist() for p in route],
        })

    def publish_corridor(self, h_polys, stamp: float = 0.0) -> None:
        self.publish(TelemetryChannel.CORRIDOR, {
            'stamp': stamp,
            'polytopes': [np.asarray(h, dtype=float).tolist() for h in h_polys],
        })

    def publish_trajectory(self, trajectory: 'Trajectory', stamp: float = 0.0,
                           dt: float = TRAJECTORY_SAMPLE_DT) -> None:
        times, positions = trajectory.sample(dt)
        self.publish(TelemetryChannel.TRAJECTORY, {
            'stamp': stamp,
            'duration': trajectory.get_total_duration(),
            'piece_num': trajectory.get_piece_num(),
            'times': times.tolist(),
            'positions': positions.tolist(),
        })
