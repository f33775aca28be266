"""枚举定义"""
from enum import Enum, IntEnum


class MapLifecycle(IntEnum):
    """
    地图生命周期

    只允许一次转换: UNINITIALIZED -> READY
    """
    UNINITIALIZED = 0
    READY = 1


class GoalState(IntEnum):
    """起点/终点序列状态 (值即已接受的点数)"""
    IDLE = 0
    HAVE_START = 1
    HAVE_GOAL = 2


class VoxelState(IntEnum):
    """体素占据状态"""
    UNOCCUPIED = 0
    OCCUPIED = 1
    DILATED = 2


class PlanStatus(IntEnum):
    """单次规划尝试的结果"""
    SUCCESS = 0
    NOT_READY = 1            # 前置条件不满足 (地图未就绪或点数不足 2)
    ROUTE_FAILED = 2         # 路径搜索失败 (路径点数 < 2)
    CORRIDOR_EMPTY = 3       # 安全走廊为空
    SETUP_FAILED = 4         # 优化器拒绝问题设置
    OPTIMIZATION_FAILED = 5  # 优化代价非有限值
    EMPTY_TRAJECTORY = 6     # 优化结果没有任何分段

    def is_success(self) -> bool:
        return self == PlanStatus.SUCCESS


class TelemetryChannel(Enum):
    """遥测通道"""
    SPEED = 'speed'
    THRUST = 'thrust'
    TILT = 'tilt'
    BODY_RATE = 'body_rate'
    POSITION = 'position'
    ROUTE = 'route'
    CORRIDOR = 'corridor'
    TRAJECTORY = 'trajectory'
    START_GOAL = 'start_goal'
