"""
四旋翼全局规划器 (Global Planner)

版本: v1.0.0

在未知三维环境中为四旋翼规划动力学可行的最小时间轨迹，并以固定频率输出参考信号。

流程:
- 地图: 第一帧点云 -> 体素占据栅格 -> 按机体半径膨胀
- 目标: 依次接收起点和终点 (高度由位姿四元数 z 分量换算)
- 规划: A* 路径搜索 -> 凸多面体安全走廊 -> 走廊约束下的轨迹优化
- 指令: 按经过时间采样轨迹，经微分平坦映射得到推力、姿态和机体角速度

使用示例:
    from global_planner import PlannerContext, PlanningPipeline, DEFAULT_CONFIG

    context = PlannerContext.from_config(DEFAULT_CONFIG)
    pipeline = PlanningPipeline(context)
    pipeline.ingest(frame)
    pipeline.accept_goal(start_request)
    pipeline.accept_goal(goal_request)
    cmd = pipeline.tick()
"""

__version__ = "1.0.0"
__author__ = "Global Planner Team"

from .config.default_config import DEFAULT_CONFIG, copy_default_config, get_config_value
from .config.loader import load_config_file
from .core.enums import MapLifecycle, GoalState, VoxelState, PlanStatus, TelemetryChannel
from .core.data_types import (
    PlannerContext, PointCloudFrame, GoalRequest, TrajectorySnapshot, FlightCommand,
)
from .core.interfaces import (
    IOccupancyMap, IPathSearch, ICorridorBuilder, ITrajectoryOptimizer,
    IFlatnessMap, ITelemetrySink,
)
from .planner.pipeline import PlanningPipeline
from .planner.node import PlannerNode

__all__ = [
    # 版本
    '__version__',
    # 管线
    'PlanningPipeline', 'PlannerNode',
    # 配置
    'DEFAULT_CONFIG', 'copy_default_config', 'get_config_value', 'load_config_file',
    # 枚举
    'MapLifecycle', 'GoalState', 'VoxelState', 'PlanStatus', 'TelemetryChannel',
    # 数据类型
    'PlannerContext', 'PointCloudFrame', 'GoalRequest', 'TrajectorySnapshot', 'FlightCommand',
    # 接口
    'IOccupancyMap', 'IPathSearch', 'ICorridorBuilder', 'ITrajectoryOptimizer',
    'IFlatnessMap', 'ITelemetrySink',
]
