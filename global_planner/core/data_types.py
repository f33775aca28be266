"""
数据类型定义

本模块定义了规划管线使用的核心数据类型。

坐标系说明:
===========

所有位置均在地图坐标系 (world) 下表示，与点云帧的坐标系一致。
地图包围盒的下角点为 map_origin，上角点为 map_corner。

数据流:
   PointCloudFrame → VoxelMap (一次性构建)
   GoalRequest → 起点/终点序列 → plan() → TrajectorySnapshot
   TrajectorySnapshot → tick() → FlightCommand

关键数据类型:
   - PlannerContext: 不可变的规划/物理参数集合
   - PointCloudFrame: 点云帧 (float32 原始字节 + 点步长)
   - GoalRequest: 目标位姿请求 (平面坐标 + 高度比例)
   - TrajectorySnapshot: 已发布轨迹的不可变快照 (含锚点时间戳与版本号)
   - FlightCommand: 指令循环每个周期的输出
"""
from dataclasses import dataclass
from typing import Tuple, Dict, Any, TYPE_CHECKING
import math
import numpy as np

if TYPE_CHECKING:
    from ..trajectory.trajectory import Trajectory


@dataclass(frozen=True)
class PlannerContext:
    """
    规划上下文 (ConfigurationContext)

    启动时由配置字典构建，之后不可修改。所有阶段共享同一个实例。

    Attributes:
        map_topic / target_topic: 话题标识 (不透明字符串)
        map_bound: 地图包围盒 [x_min, x_max, y_min, y_max, z_min, z_max]
        voxel_width: 体素边长 (m)
        dilate_radius: 膨胀半径 (m)
        timeout_search: 路径搜索时间预算 (秒)
        max_vel_mag / max_bdr_mag / max_tilt_angle / min_thrust / max_thrust: 幅值约束
        vehicle_mass / grav_acc / horiz_drag / vert_drag / paras_drag / speed_eps: 物理参数
        weight_t: 时间权重
        chi_vec: 5 维惩罚权重
        smoothing_eps: 平滑 L1 因子
        integral_intervs: 每段积分分段数
        rel_cost_tol: 相对代价收敛阈值
    """
    map_topic: str
    target_topic: str
    map_bound: Tuple[float, float, float, float, float, float]
    voxel_width: float
    dilate_radius: float
    timeout_search: float
    max_vel_mag: float
    max_bdr_mag: float
    max_tilt_angle: float
    min_thrust: float
    max_thrust: float
    vehicle_mass: float
    grav_acc: float
    horiz_drag: float
    vert_drag: float
    paras_drag: float
    speed_eps: float
    weight_t: float
    chi_vec: Tuple[float, float, float, float, float]
    smoothing_eps: float
    integral_intervs: int
    rel_cost_tol: float
    # 以下参数在模板中有默认值
    corridor_progress: float = 7.0
    corridor_range: float = 3.0
    heuristic_weight: float = 1.5
    max_iterations: int = 200
    ctrl_freq: float = 1000.0
    async_planning: bool = False
    invalidate_on_replan: bool = False
    queue_size: int = 10

    @classmethod
    def from_config(cls, config: Dict[str, Any], strict: bool = True) -> 'PlannerContext':
        """
        从配置字典构建规划上下文

        Args:
            config: 嵌套配置字典 (参见 config/default_config.py)
            strict: 严格模式，ERROR 级别验证错误时抛出异常 (FATAL 始终抛出)

        Raises:
            ConfigurationError: 缺少必需参数时
            ConfigValidationError: 验证失败时
        """
        from ..config.default_config import REQUIRED_KEYS, validate_config
        from ..config.validation import get_config_value, require_keys

        require_keys(config, REQUIRED_KEYS)
        validate_config(config, raise_on_error=strict)

        def get(key_path, default=None):
            return get_config_value(config, key_path, default)

        return cls(
            map_topic=str(get('topics.map')),
            target_topic=str(get('topics.target')),
            map_bound=tuple(float(v) for v in get('map.bound')),
            voxel_width=float(get('map.voxel_width')),
            dilate_radius=float(get('map.dilate_radius')),
            timeout_search=float(get('search.timeout')),
            max_vel_mag=float(get('constraints.max_vel_mag')),
            max_bdr_mag=float(get('constraints.max_bdr_mag')),
            max_tilt_angle=float(get('constraints.max_tilt_angle')),
            min_thrust=float(get('constraints.min_thrust')),
            max_thrust=float(get('constraints.max_thrust')),
            vehicle_mass=float(get('physical.vehicle_mass')),
            grav_acc=float(get('physical.grav_acc')),
            horiz_drag=float(get('physical.horiz_drag')),
            vert_drag=float(get('physical.vert_drag')),
            paras_drag=float(get('physical.paras_drag')),
            speed_eps=float(get('physical.speed_eps')),
            weight_t=float(get('optimizer.weight_t')),
            chi_vec=tuple(float(v) for v in get('optimizer.chi_vec')),
            smoothing_eps=float(get('optimizer.smoothing_eps')),
            integral_intervs=int(get('optimizer.integral_intervs')),
            rel_cost_tol=float(get('optimizer.rel_cost_tol')),
            corridor_progress=float(get('corridor.progress', 7.0)),
            corridor_range=float(get('corridor.range', 3.0)),
            heuristic_weight=float(get('search.heuristic_weight', 1.5)),
            max_iterations=int(get('optimizer.max_iterations', 200)),
            ctrl_freq=float(get('system.ctrl_freq', 1000.0)),
            async_planning=bool(get('system.async_planning', False)),
            invalidate_on_replan=bool(get('system.invalidate_on_replan', False)),
            queue_size=int(get('system.queue_size', 10)),
        )

    @property
    def map_origin(self) -> np.ndarray:
        """地图下角点"""
        b = self.map_bound
        return np.array([b[0], b[2], b[4]], dtype=float)

    @property
    def map_corner(self) -> np.ndarray:
        """地图上角点"""
        b = self.map_bound
        return np.array([b[1], b[3], b[5]], dtype=float)

    @property
    def map_size(self) -> Tuple[int, int, int]:
        """各轴体素数量 (截断取整)"""
        b = self.map_bound
        return (int((b[1] - b[0]) / self.voxel_width),
                int((b[3] - b[2]) / self.voxel_width),
                int((b[5] - b[4]) / self.voxel_width))

    @property
    def dilate_steps(self) -> int:
        """膨胀体素层数 ceil(dilate_radius / voxel_width)"""
        return int(math.ceil(self.dilate_radius / self.voxel_width))

    @property
    def magnitude_bounds(self) -> np.ndarray:
        """[v_max, omega_max, theta_max, thrust_min, thrust_max]"""
        return np.array([self.max_vel_mag, self.max_bdr_mag, self.max_tilt_angle,
                         self.min_thrust, self.max_thrust], dtype=float)

    @property
    def penalty_weights(self) -> np.ndarray:
        """[pos, vel, omg, theta, thrust] 惩罚权重"""
        return np.array(self.chi_vec, dtype=float)

    @property
    def physical_params(self) -> np.ndarray:
        """[mass, gravity, horiz_drag, vert_drag, paras_drag, speed_eps]"""
        return np.array([self.vehicle_mass, self.grav_acc, self.horiz_drag,
                         self.vert_drag, self.paras_drag, self.speed_eps], dtype=float)

    @property
    def ctrl_period(self) -> float:
        """指令循环周期 (秒)"""
        return 1.0 / self.ctrl_freq


@dataclass
class PointCloudFrame:
    """
    点云帧

    每个点占 point_step 字节，前三个字段为 float32 的 x, y, z。

    Attributes:
        data: 原始字节或 float32 数组
        point_step: 点步长 (字节)
        stamp: 时间戳 (秒)
        frame_id: 坐标系
    """
    data: Any
    point_step: int = 12
    stamp: float = 0.0
    frame_id: str = 'world'

    @classmethod
    def from_points(cls, points: np.ndarray, point_step: int = 12,
                    stamp: float = 0.0, frame_id: str = 'world') -> 'PointCloudFrame':
        """
        由 (N, 3) 数组构建点云帧

        point_step 大于 12 时，其余字节填零 (模拟 intensity 等附加字段)。
        """
        points = np.asarray(points, dtype=np.float32).reshape(-1, 3)
        if point_step < 12 or point_step % 4 != 0:
            raise ValueError(f'point_step must be a multiple of 4 and >= 12, got {point_step}')
        stride = point_step // 4
        buffer = np.zeros((points.shape[0], stride), dtype=np.float32)
        buffer[:, :3] = points
        return cls(data=buffer.tobytes(), point_step=point_step, stamp=stamp, frame_id=frame_id)


@dataclass
class GoalRequest:
    """
    目标位姿请求

    orientation_z 为归一化标量，其绝对值被解释为高度比例。

    Attributes:
        x: 平面 x 坐标
        y: 平面 y 坐标
        orientation_z: 位姿四元数的 z 分量 (高度比例)
        stamp: 时间戳 (秒)
    """
    x: float
    y: float
    orientation_z: float = 0.0
    stamp: float = 0.0

    @classmethod
    def from_pose(cls, position, orientation, stamp: float = 0.0) -> 'GoalRequest':
        """
        由位姿构建请求

        Args:
            position: (x, y, z)，z 被忽略
            orientation: 四元数 (x, y, z, w)
        """
        return cls(x=float(position[0]), y=float(position[1]),
                   orientation_z=float(orientation[2]), stamp=stamp)

    def altitude(self, context: PlannerContext) -> float:
        """
        由高度比例换算目标高度

        z = z_min + r + |orientation_z| * (z_span - 2r)
        """
        z_min, z_max = context.map_bound[4], context.map_bound[5]
        r = context.dilate_radius
        return z_min + r + abs(self.orientation_z) * (z_max - z_min - 2.0 * r)

    def to_point(self, context: PlannerContext) -> np.ndarray:
        """候选 3D 点"""
        return np.array([self.x, self.y, self.altitude(context)], dtype=float)


@dataclass(frozen=True)
class TrajectorySnapshot:
    """
    已发布轨迹的不可变快照

    规划成功后整体替换，指令循环只持有引用，不会观察到部分更新的轨迹。

    Attributes:
        trajectory: 分段多项式轨迹
        stamp: 锚点时间戳 (采样时间零点)
        version: 发布版本号 (单调递增)
        route: 生成该轨迹的路径关键点
        corridor: 安全走廊多面体
    """
    trajectory: 'Trajectory'
    stamp: float
    version: int
    route: Tuple[np.ndarray, ...] = ()
    corridor: Tuple[np.ndarray, ...] = ()

    @property
    def total_duration(self) -> float:
        return self.trajectory.get_total_duration()

    def elapsed(self, now: float) -> float:
        """相对锚点的经过时间"""
        return now - self.stamp

    def is_active(self, now: float) -> bool:
        """经过时间是否在开区间 (0, total_duration) 内"""
        delta = now - self.stamp
        return 0.0 < delta < self.total_duration


@dataclass
class FlightCommand:
    """
    指令循环输出

    Attributes:
        stamp: 采样时刻
        elapsed: 相对轨迹锚点的时间
        position / velocity / acceleration / jerk: 轨迹采样值
        thrust: 总推力 (N)
        quaternion: 姿态四元数 (w, x, y, z)
        body_rate: 机体角速度 (rad/s)
        speed: 速度大小
        tilt_angle: 倾斜角 (rad)
        body_rate_mag: 机体角速度大小
        marker_radius: 位置标记半径 (膨胀半径)
        version: 被采样轨迹的版本号
    """
    stamp: float
    elapsed: float
    position: np.ndarray
    velocity: np.ndarray
    acceleration: np.ndarray
    jerk: np.ndarray
    thrust: float
    quaternion: np.ndarray
    body_rate: np.ndarray
    speed: float
    tilt_angle: float
    body_rate_mag: float
    marker_radius: float = 0.0
    version: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典 (用于遥测回调)"""
        return {
            'stamp': self.stamp,
            'elapsed': self.elapsed,
            'position': self.position.tolist(),
            'velocity': self.velocity.tolist(),
            'acceleration': self.acceleration.tolist(),
            'jerk': self.jerk.tolist(),
            'thrust': self.thrust,
            'quaternion': self.quaternion.tolist(),
            'body_rate': self.body_rate.tolist(),
            'speed': self.speed,
            'tilt_angle': self.tilt_angle,
            'body_rate_mag': self.body_rate_mag,
            'marker_radius': self.marker_radius,
            'version': self.version,
        }


__all__ = [
    'PlannerContext',
    'PointCloudFrame',
    'GoalRequest',
    'TrajectorySnapshot',
    'FlightCommand',
]
