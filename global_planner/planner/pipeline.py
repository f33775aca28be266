"""
全局规划管线

负责:
- 地图一次性构建 (ingest)
- 起点/终点接收 (accept_goal / receive_goal)
- 规划流程编排 (plan): 路径搜索 -> 安全走廊 -> 轨迹优化 -> 发布
- 实时指令循环 (tick): 轨迹采样 -> 微分平坦映射 -> 遥测

线程模型:
- 地图就绪由 MapLatch 锁存，只转换一次
- 起点/终点序列在 _goal_lock 内访问；序列完成时在锁内取出起点/终点对，
  plan(pair) 规划的就是这一对，不受之后到达的请求影响
- _plan_lock 保证同一时刻最多一个 plan() 在执行，后到的调用等待
- 已发布轨迹是不可变的 TrajectorySnapshot，在 _traj_lock 内整体替换；
  tick() 只读取一次引用，不会看到部分更新的轨迹

所有公开方法都不向外抛出异常: 数值引擎抛出的 PlanningError / LinAlgError
被转换为失败的 PlanStatus，已发布的轨迹和地图保持不变。
"""
from typing import Callable, List, Optional, Tuple
import logging
import math
import threading
import time

import numpy as np

from ..core.data_types import (
    PlannerContext, PointCloudFrame, GoalRequest, TrajectorySnapshot, FlightCommand,
)
from ..core.enums import GoalState, MapLifecycle, PlanStatus, VoxelState
from ..core.exceptions import PlanningError, SearchError, CorridorError
from ..core.constants import tilt_from_quaternion
from ..core.interfaces import (
    IOccupancyMap, IPathSearch, ICorridorBuilder, ITrajectoryOptimizer,
    IFlatnessMap, ITelemetrySink,
)
from ..core.logging_config import ThrottledLogger
from ..mapping.voxel_map import VoxelMap
from ..mapping.point_cloud import finite_points
from ..search.path_search import VoxelAStarSearch
from ..corridor.sfc_gen import ConvexCorridorBuilder
from ..trajectory.optimizer import PolytopeSFCOptimizer
from ..flatness.flatness_map import FlatnessMap
from ..telemetry.publisher import TelemetryPublisher
from .state_machine import GoalStateMachine, MapLatch

logger = logging.getLogger(__name__)

GoalPair = Tuple[np.ndarray, np.ndarray]


class PlanningPipeline:
    """
    全局规划管线

    Args:
        context: 规划上下文
        voxel_map / path_search / corridor_builder / optimizer / flatness / telemetry:
            可替换的组件，默认使用本包提供的实现
        clock: 时间源，默认 time.monotonic

    使用示例:
        context = PlannerContext.from_config(config)
        pipeline = PlanningPipeline(context)
        pipeline.ingest(frame)
        pipeline.accept_goal(GoalRequest(0.0, 0.0, 0.5))
        pipeline.accept_goal(GoalRequest(10.0, 0.0, 0.5))
        cmd = pipeline.tick()
    """

    def __init__(self, context: PlannerContext,
                 voxel_map: Optional[IOccupancyMap] = None,
                 path_search: Optional[IPathSearch] = None,
                 corridor_builder: Optional[ICorridorBuilder] = None,
                 optimizer: Optional[ITrajectoryOptimizer] = None,
                 flatness: Optional[IFlatnessMap] = None,
                 telemetry: Optional[ITelemetrySink] = None,
                 clock: Optional[Callable[[], float]] = None):
        self._context = context
        self._clock = clock if clock is not None else time.monotonic

        self._map = voxel_map if voxel_map is not None else VoxelMap.from_context(context)
        self._search = path_search if path_search is not None \
            else VoxelAStarSearch(heuristic_weight=context.heuristic_weight)
        self._corridor = corridor_builder if corridor_builder is not None \
            else ConvexCorridorBuilder(context.corridor_progress, context.corridor_range)
        self._optimizer = optimizer if optimizer is not None \
            else PolytopeSFCOptimizer(max_iterations=context.max_iterations)
        self._telemetry = telemetry if telemetry is not None else TelemetryPublisher()

        if flatness is None:
            flatness = FlatnessMap()
        flatness.reset(*context.physical_params.tolist())
        self._flatness = flatness

        self._latch = MapLatch()
        self._goals = GoalStateMachine()
        self._goal_lock = threading.Lock()
        self._plan_lock = threading.Lock()
        self._traj_lock = threading.Lock()
        self._snapshot: Optional[TrajectorySnapshot] = None
        self._version = 0
        self._last_status: Optional[PlanStatus] = None

        self._throttled = ThrottledLogger(logger, min_interval=5.0)

    # ==================== 地图 ====================

    def ingest(self, frame: PointCloudFrame) -> bool:
        """
        用第一帧点云构建地图

        Returns:
            本帧是否被用于构建地图 (之后的帧返回 False)
        """
        if self._latch.is_ready or not self._latch.claim():
            logger.debug("Map already built, frame ignored")
            return False

        try:
            points = finite_points(frame)
        except ValueError as e:
            logger.error(f"Cannot decode map frame: {e}")
            self._latch.abandon()
            return False

        try:
            inside = self._map.set_occupied_batch(points)
            self._map.dilate(self._context.dilate_steps)
        except Exception as e:
            logger.error(f"Map build failed, frame discarded: {type(e).__name__}: {e}")
            self._latch.abandon()
            return False
        self._latch.set_ready()
        logger.info(f"Voxel map ready: {inside}/{points.shape[0]} points inside bounds, "
                    f"dilated by {self._context.dilate_steps} voxels")
        return True

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._latch.wait(timeout)

    # ==================== 目标 ====================

    def altitude_for(self, orientation_z: float) -> float:
        """由高度比例换算目标高度"""
        return GoalRequest(0.0, 0.0, orientation_z).altitude(self._context)

    def accept_goal(self, request: GoalRequest, trigger_plan: bool = True) -> bool:
        """
        接收一个起点/终点请求

        Args:
            request: 目标请求
            trigger_plan: 是否在接收后立即调用 plan() (异步规划时由调用者调度)

        Returns:
            请求是否被接受
        """
        accepted, pair = self.receive_goal(request)
        if trigger_plan:
            self.plan(pair)
        return accepted

    def receive_goal(self, request: GoalRequest) -> Tuple[bool, Optional[GoalPair]]:
        """
        接收请求但不规划

        Returns:
            (是否接受, 本次请求完成的起点/终点对)；
            序列未因本次请求进入 HAVE_GOAL 时第二项为 None
        """
        if not self._latch.is_ready:
            logger.debug("Map not ready, goal request ignored")
            return False, None

        pair = None
        with self._goal_lock:
            if self._goals.reset_if_complete():
                logger.debug("Previous start/goal pair cleared")

            point = request.to_point(self._context)
            if self._map.query(point) != VoxelState.UNOCCUPIED:
                logger.warning(f"Infeasible position selected: {point.tolist()}")
                accepted = False
            else:
                index = self._goals.append(point)
                accepted = True
                # 在锁内取出完成的起点/终点对，之后的请求不会影响它
                pair = self._goals.get_pair()

        if accepted:
            self._telemetry.publish_start_goal(point, index, request.stamp)
            logger.info(f"{'Start' if index == 0 else 'Goal'} accepted: {point.tolist()}")
        return accepted, pair

    # ==================== 规划 ====================

    def plan(self, pair: Optional[GoalPair] = None) -> PlanStatus:
        """
        执行一次规划

        Args:
            pair: 要规划的 (起点, 终点)；默认使用当前序列中的起点/终点

        Returns:
            本次规划的结果
        """
        with self._plan_lock:
            status = self._plan_locked(pair)
            self._last_status = status
            if status not in (PlanStatus.SUCCESS, PlanStatus.NOT_READY):
                logger.warning(f"Planning attempt abandoned: {status.name}")
            return status

    def _plan_locked(self, pair: Optional[GoalPair]) -> PlanStatus:
        if not self._latch.is_ready:
            return PlanStatus.NOT_READY
        if pair is None:
            with self._goal_lock:
                pair = self._goals.get_pair()
        if pair is None:
            return PlanStatus.NOT_READY
        start, goal = pair

        if self._context.invalidate_on_replan:
            with self._traj_lock:
                self._snapshot = None

        ctx = self._context
        origin, corner = self._map.get_origin(), self._map.get_corner()
        stage = PlanStatus.ROUTE_FAILED
        try:
            route = self._search.find(start, goal, origin, corner, self._map, ctx.timeout_search)
            if len(route) < 2:
                return PlanStatus.ROUTE_FAILED

            stage = PlanStatus.CORRIDOR_EMPTY
            surface = self._map.get_surface()
            corridor = self._corridor.build(route, surface, origin, corner)
            corridor = self._corridor.simplify(corridor)
            if not corridor:
                return PlanStatus.CORRIDOR_EMPTY

            ini_state = np.vstack([route[0], np.zeros(3), np.zeros(3)])
            fin_state = np.vstack([route[-1], np.zeros(3), np.zeros(3)])

            stage = PlanStatus.SETUP_FAILED
            ok = self._optimizer.setup(
                ctx.weight_t, ini_state, fin_state, corridor, math.inf,
                ctx.smoothing_eps, ctx.integral_intervs,
                ctx.magnitude_bounds, ctx.penalty_weights, ctx.physical_params)
            if not ok:
                return PlanStatus.SETUP_FAILED

            stage = PlanStatus.OPTIMIZATION_FAILED
            cost, traj = self._optimizer.optimize(ctx.rel_cost_tol)
            if not math.isfinite(cost):
                return PlanStatus.OPTIMIZATION_FAILED
            if traj is None or traj.get_piece_num() < 1:
                return PlanStatus.EMPTY_TRAJECTORY
        except SearchError as e:
            logger.error(f"Path search raised: {e}")
            return PlanStatus.ROUTE_FAILED
        except CorridorError as e:
            logger.error(f"Corridor generation raised: {e}")
            return PlanStatus.CORRIDOR_EMPTY
        except (PlanningError, np.linalg.LinAlgError) as e:
            logger.error(f"Planning stage {stage.name} raised {type(e).__name__}: {e}")
            return stage

        stamp = self._clock()
        with self._traj_lock:
            self._version += 1
            snapshot = TrajectorySnapshot(
                trajectory=traj, stamp=stamp, version=self._version,
                route=tuple(np.array(p, dtype=float) for p in route),
                corridor=tuple(np.array(h, dtype=float) for h in corridor))
            self._snapshot = snapshot

        logger.info(f"Trajectory v{snapshot.version} published: {traj.get_piece_num()} pieces, "
                    f"{traj.get_total_duration():.2f}s, cost {cost:.3f}")
        self._telemetry.publish_route(route, stamp)
        self._telemetry.publish_corridor(corridor, stamp)
        self._telemetry.publish_trajectory(traj, stamp)
        return PlanStatus.SUCCESS

    # ==================== 指令循环 ====================

    def tick(self, now: Optional[float] = None) -> Optional[FlightCommand]:
        """
        采样已发布的轨迹并输出参考信号

        只在 0 < now - stamp < total_duration 时输出，其他情况不做任何事。
        """
        snapshot = self._snapshot
        if snapshot is None:
            return None

        if now is None:
            now = self._clock()
        elapsed = snapshot.elapsed(now)
        if not snapshot.is_active(now):
            self._throttled.debug(f"Trajectory v{snapshot.version} not active at {elapsed:.3f}s",
                                  key='tick_inactive')
            return None

        traj = snapshot.trajectory
        pos = traj.get_pos(elapsed)
        vel = traj.get_vel(elapsed)
        acc = traj.get_acc(elapsed)
        jer = traj.get_jer(elapsed)
        thr, quat, omg = self._flatness.forward(vel, acc, jer, 0.0, 0.0)

        cmd = FlightCommand(
            stamp=now,
            elapsed=elapsed,
            position=pos,
            velocity=vel,
            acceleration=acc,
            jerk=jer,
            thrust=float(thr),
            quaternion=np.asarray(quat, dtype=float),
            body_rate=np.asarray(omg, dtype=float),
            speed=float(np.linalg.norm(vel)),
            tilt_angle=tilt_from_quaternion(quat),
            body_rate_mag=float(np.linalg.norm(omg)),
            marker_radius=self._context.dilate_radius,
            version=snapshot.version,
        )
        self._telemetry.publish_flight_command(cmd)
        return cmd

    # ==================== 状态查询 ====================

    @property
    def context(self) -> PlannerContext:
        return self._context

    @property
    def voxel_map(self) -> IOccupancyMap:
        return self._map

    @property
    def telemetry(self) -> ITelemetrySink:
        return self._telemetry

    @property
    def map_state(self) -> MapLifecycle:
        return self._latch.state

    @property
    def is_map_ready(self) -> bool:
        return self._latch.is_ready

    @property
    def goal_state(self) -> GoalState:
        with self._goal_lock:
            return self._goals.state

    def get_goal_points(self) -> List[np.ndarray]:
        with self._goal_lock:
            return self._goals.get_points()

    @property
    def snapshot(self) -> Optional[TrajectorySnapshot]:
        return self._snapshot

    @property
    def last_plan_status(self) -> Optional[PlanStatus]:
        return self._last_status

    def now(self) -> float:
        return self._clock()
