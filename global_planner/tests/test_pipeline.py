"""
规划管线端到端测试

场景:
- A: 带开口的墙，起点 (0, 0, 5) -> 终点 (40, 0, 5)，轨迹穿过开口
- B: 目标位于墙内被拒绝，序列不变
- C: 开阔走廊，简化后的走廊最小
- D: 最小推力大于最大推力，setup 失败，已发布轨迹保持不变
"""
import logging

import numpy as np
import pytest

from global_planner.core.data_types import PlannerContext, GoalRequest, PointCloudFrame
from global_planner.core.enums import GoalState, MapLifecycle, PlanStatus, TelemetryChannel, VoxelState
from global_planner.core.exceptions import SearchError
from global_planner.core.interfaces import IPathSearch, IOccupancyMap, ITelemetrySink
from global_planner.corridor import geo_utils
from global_planner.mapping.voxel_map import VoxelMap
from global_planner.planner.pipeline import PlanningPipeline
from global_planner.search.path_search import VoxelAStarSearch
from global_planner.trajectory.optimizer import PolytopeSFCOptimizer
from global_planner.mock.scene_generator import (
    create_test_config,
    create_scene_frame,
    goal_for_altitude,
)

STAMP = 100.0


class FixedClock:
    def __init__(self, value=STAMP):
        self.value = value

    def __call__(self):
        return self.value


class SwitchableOptimizer(PolytopeSFCOptimizer):
    """可以在运行时替换幅值约束的优化器"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.bounds_override = None

    def setup(self, weight_t, ini_state, fin_state, h_polys, length_per_piece,
              smoothing_eps, integral_res, magnitude_bounds, penalty_weights,
              physical_params):
        if self.bounds_override is not None:
            magnitude_bounds = self.bounds_override
        return super().setup(weight_t, ini_state, fin_state, h_polys, length_per_piece,
                             smoothing_eps, integral_res, magnitude_bounds,
                             penalty_weights, physical_params)


class RaisingSearch(IPathSearch):
    def find(self, start, goal, origin, corner, voxel_map, timeout):
        raise SearchError('search backend unavailable')


def _request(context, x, y, z):
    return goal_for_altitude(x, y, z, context.map_bound, context.dilate_radius)


def _make_pipeline(scene, strict=True, optimizer_factory=None, **overrides):
    config = create_test_config(scene, **overrides)
    context = PlannerContext.from_config(config, strict=strict)
    optimizer = optimizer_factory(context) if optimizer_factory is not None else None
    pipeline = PlanningPipeline(context, optimizer=optimizer, clock=FixedClock())
    assert pipeline.ingest(create_scene_frame(scene))
    return pipeline


def _assert_hover_to_hover(snapshot):
    traj = snapshot.trajectory
    total = traj.get_total_duration()
    ini_state = np.vstack([snapshot.route[0], np.zeros(3), np.zeros(3)])
    sampled = np.vstack([traj.get_pos(0.0), traj.get_vel(0.0), traj.get_acc(0.0)])
    assert np.allclose(sampled, ini_state, atol=1e-6)
    assert np.allclose(traj.get_pos(total), snapshot.route[-1], atol=1e-6)
    assert np.allclose(traj.get_vel(total), 0.0, atol=1e-6)
    assert np.allclose(traj.get_acc(total), 0.0, atol=1e-6)


@pytest.fixture(scope='module')
def scenario_a():
    """带开口的墙上规划一次，记录遥测"""
    config = create_test_config('gapped_wall')
    context = PlannerContext.from_config(config)
    pipeline = PlanningPipeline(context, clock=FixedClock())
    channels = []
    pipeline.telemetry.add_callback(lambda channel, payload: channels.append(channel))

    pipeline.ingest(create_scene_frame('gapped_wall'))
    pipeline.accept_goal(_request(context, 0.0, 0.0, 5.0))
    pipeline.accept_goal(_request(context, 40.0, 0.0, 5.0))
    return pipeline, channels


@pytest.fixture(scope='module')
def open_pipeline():
    """开阔场景，优化器可切换约束"""
    pipeline = _make_pipeline(
        'open', optimizer_factory=lambda ctx: SwitchableOptimizer(ctx.max_iterations))
    context = pipeline.context
    pipeline.accept_goal(_request(context, 0.0, 0.0, 3.0))
    pipeline.accept_goal(_request(context, 20.0, 0.0, 3.0))
    return pipeline


# =============================================================================
# 场景 A
# =============================================================================

def test_scenario_a_success(scenario_a):
    """测试穿过开口的完整规划"""
    pipeline, _ = scenario_a
    assert pipeline.map_state == MapLifecycle.READY
    assert pipeline.goal_state == GoalState.HAVE_GOAL
    assert pipeline.last_plan_status == PlanStatus.SUCCESS

    snapshot = pipeline.snapshot
    assert snapshot is not None
    assert snapshot.version == 1
    assert snapshot.stamp == STAMP
    assert len(snapshot.route) >= 3
    assert len(snapshot.corridor) >= 1

    traj = snapshot.trajectory
    assert traj.get_piece_num() >= 1
    assert traj.get_total_duration() > 0.0
    assert np.allclose(traj.get_pos(0.0), [0.0, 0.0, 5.0])
    assert np.allclose(traj.get_pos(traj.get_total_duration()), [40.0, 0.0, 5.0])


def test_scenario_a_map_extent(scenario_a):
    """测试 50 x 50 x 20 地图，体素 0.5，膨胀 1.0"""
    pipeline, _ = scenario_a
    context = pipeline.context
    assert context.map_size == (100, 100, 40)
    assert context.dilate_steps == 2
    assert np.allclose(pipeline.voxel_map.get_corner() - pipeline.voxel_map.get_origin(),
                       [50.0, 50.0, 20.0])


def test_scenario_a_hover_to_hover(scenario_a):
    """测试轨迹首末端速度、加速度为零，elapsed = 0 处复现初始边界状态"""
    pipeline, _ = scenario_a
    _assert_hover_to_hover(pipeline.snapshot)


def test_scenario_a_route_is_collision_free(scenario_a):
    pipeline, _ = scenario_a
    vmap = pipeline.voxel_map
    route = pipeline.snapshot.route
    for a, b in zip(route[:-1], route[1:]):
        samples = a + np.linspace(0.0, 1.0, 200)[:, None] * (b - a)
        assert np.all(vmap.query_batch(samples) == VoxelState.UNOCCUPIED)


def test_scenario_a_corridor_chain(scenario_a):
    """测试走廊首尾覆盖起点/终点，且相邻多面体重叠"""
    pipeline, _ = scenario_a
    snapshot = pipeline.snapshot
    corridor = snapshot.corridor
    assert geo_utils.contains(corridor[0], snapshot.route[0], tol=1e-3)
    assert geo_utils.contains(corridor[-1], snapshot.route[-1], tol=1e-3)
    for h0, h1 in zip(corridor[:-1], corridor[1:]):
        assert geo_utils.overlap(h0, h1)


def test_scenario_a_trajectory_passes_gap(scenario_a):
    """测试轨迹在 x = 20 处位于墙的开口内"""
    pipeline, _ = scenario_a
    _, positions = pipeline.snapshot.trajectory.sample(0.01)
    crossing = np.nonzero((positions[:-1, 0] < 20.0) & (positions[1:, 0] >= 20.0))[0]
    assert crossing.size >= 1
    y, z = positions[crossing[0], 1:]
    assert 3.0 < y < 9.0
    assert 2.0 < z < 8.0


def test_scenario_a_telemetry(scenario_a):
    pipeline, channels = scenario_a
    assert channels.count(TelemetryChannel.START_GOAL) == 2
    assert channels.count(TelemetryChannel.ROUTE) == 1
    assert channels.count(TelemetryChannel.CORRIDOR) == 1
    assert channels.count(TelemetryChannel.TRAJECTORY) == 1

    traj_payload = pipeline.telemetry.get_last_published(TelemetryChannel.TRAJECTORY)
    assert traj_payload['stamp'] == STAMP
    assert np.isclose(traj_payload['times'][-1], pipeline.snapshot.total_duration)


def test_tick_window(scenario_a):
    """测试只在 0 < elapsed < total 时输出指令"""
    pipeline, _ = scenario_a
    snapshot = pipeline.snapshot
    total = snapshot.total_duration

    assert pipeline.tick(STAMP - 1.0) is None
    assert pipeline.tick(STAMP) is None
    assert pipeline.tick(STAMP + total) is None
    assert pipeline.tick(STAMP + total + 1.0) is None

    early = pipeline.tick(STAMP + 1e-6)
    assert early is not None
    assert np.allclose(early.position, [0.0, 0.0, 5.0], atol=1e-4)


def test_tick_command_contents(scenario_a):
    pipeline, _ = scenario_a
    snapshot = pipeline.snapshot
    t = 0.5 * snapshot.total_duration
    cmd = pipeline.tick(STAMP + t)

    traj = snapshot.trajectory
    assert cmd is not None
    assert np.isclose(cmd.elapsed, t)
    assert np.allclose(cmd.position, traj.get_pos(t))
    assert np.isclose(cmd.speed, np.linalg.norm(traj.get_vel(t)))
    assert cmd.thrust > 0.0
    assert 0.0 <= cmd.tilt_angle < np.pi / 2.0
    assert np.isclose(cmd.body_rate_mag, np.linalg.norm(cmd.body_rate))
    assert cmd.marker_radius == pipeline.context.dilate_radius
    assert cmd.version == snapshot.version

    position = pipeline.telemetry.get_last_published(TelemetryChannel.POSITION)
    assert np.allclose(position['position'], cmd.position)
    assert pipeline.telemetry.get_last_published(TelemetryChannel.SPEED)['value'] == cmd.speed


def test_tick_uses_clock_by_default(scenario_a):
    pipeline, _ = scenario_a
    # FixedClock 与锚点时间相同，elapsed = 0
    assert pipeline.tick() is None


# =============================================================================
# 场景 B
# =============================================================================

def test_scenario_b_goal_inside_wall_rejected(caplog):
    """测试墙内目标被拒绝，序列不变"""
    pipeline = _make_pipeline('gapped_wall')
    context = pipeline.context
    assert pipeline.accept_goal(_request(context, 0.0, 0.0, 5.0))
    before = pipeline.get_goal_points()

    with caplog.at_level(logging.WARNING, logger='global_planner.planner.pipeline'):
        accepted = pipeline.accept_goal(_request(context, 20.0, 0.0, 5.0))

    assert not accepted
    assert 'Infeasible position selected' in caplog.text
    assert pipeline.goal_state == GoalState.HAVE_START
    after = pipeline.get_goal_points()
    assert len(after) == 1 and np.allclose(after[0], before[0])
    assert pipeline.last_plan_status == PlanStatus.NOT_READY
    assert pipeline.snapshot is None


def test_goal_on_dilated_floor_rejected():
    """测试高度比例为 0 时目标落在膨胀层上"""
    pipeline = _make_pipeline('open')
    z = pipeline.altitude_for(0.0)
    assert np.isclose(z, pipeline.context.dilate_radius)
    assert pipeline.voxel_map.query(np.array([5.0, 0.0, z])) == VoxelState.DILATED
    assert not pipeline.accept_goal(GoalRequest(x=5.0, y=0.0, orientation_z=0.0), trigger_plan=False)
    assert pipeline.goal_state == GoalState.IDLE


def test_goal_ignored_before_map():
    """测试地图未就绪时目标被忽略"""
    context = PlannerContext.from_config(create_test_config('open'))
    pipeline = PlanningPipeline(context)
    assert not pipeline.accept_goal(GoalRequest(0.0, 0.0, 0.5))
    assert pipeline.goal_state == GoalState.IDLE
    assert pipeline.plan() == PlanStatus.NOT_READY


def test_map_built_once():
    """测试只有第一帧点云用于建图"""
    pipeline = _make_pipeline('open')
    occupied = pipeline.voxel_map.count(VoxelState.OCCUPIED)
    assert not pipeline.ingest(create_scene_frame('gapped_wall'))
    assert pipeline.voxel_map.count(VoxelState.OCCUPIED) == occupied


def test_invalid_frame_does_not_latch():
    context = PlannerContext.from_config(create_test_config('open'))
    pipeline = PlanningPipeline(context)
    assert not pipeline.ingest(PointCloudFrame(data=b'\x00' * 32, point_step=8))
    assert pipeline.map_state == MapLifecycle.UNINITIALIZED
    assert pipeline.ingest(create_scene_frame('open'))
    assert pipeline.is_map_ready
    assert pipeline.wait_until_ready(timeout=0.0)


def test_altitude_mapping():
    context = PlannerContext.from_config(create_test_config('open'))
    pipeline = PlanningPipeline(context)
    # bound z: [0, 6], r = 0.5
    assert np.isclose(pipeline.altitude_for(0.5), 3.0)
    assert np.isclose(pipeline.altitude_for(-1.0), 5.5)


# =============================================================================
# 场景 C
# =============================================================================

def test_scenario_c_open_corridor(open_pipeline):
    """测试开阔走廊: 直线路径，简化后的走廊不含冗余多面体"""
    pipeline = open_pipeline
    snapshot = pipeline.snapshot
    assert snapshot is not None and snapshot.version == 1
    assert len(snapshot.route) == 2

    corridor = snapshot.corridor
    # 20 m 路径、步长 7 m 时最多 3 个多面体
    assert 1 <= len(corridor) <= 3
    for i in range(len(corridor) - 2):
        assert not geo_utils.overlap(corridor[i], corridor[i + 2], 0.01)
    for h0, h1 in zip(corridor[:-1], corridor[1:]):
        assert geo_utils.overlap(h0, h1)


def test_scenario_c_hover_to_hover(open_pipeline):
    _assert_hover_to_hover(open_pipeline.snapshot)


# =============================================================================
# 场景 D
# =============================================================================

def test_scenario_d_inverted_thrust_context():
    """测试非严格模式下推力范围颠倒: setup 失败"""
    pipeline = _make_pipeline('open', strict=False,
                              constraints__min_thrust=15.0, constraints__max_thrust=12.0)
    context = pipeline.context
    pipeline.accept_goal(_request(context, 0.0, 0.0, 3.0))
    pipeline.accept_goal(_request(context, 20.0, 0.0, 3.0))
    assert pipeline.last_plan_status == PlanStatus.SETUP_FAILED
    assert pipeline.snapshot is None


def test_scenario_d_prior_trajectory_kept(open_pipeline):
    """测试 setup 失败时已发布的轨迹保持不变"""
    pipeline = open_pipeline
    previous = pipeline.snapshot
    assert previous is not None

    optimizer = pipeline._optimizer
    bounds = pipeline.context.magnitude_bounds.copy()
    bounds[3], bounds[4] = 15.0, 12.0
    optimizer.bounds_override = bounds
    try:
        assert pipeline.plan() == PlanStatus.SETUP_FAILED
    finally:
        optimizer.bounds_override = None

    assert pipeline.snapshot is previous
    t = 0.5 * previous.total_duration
    assert pipeline.tick(previous.stamp + t) is not None


def test_new_request_clears_pair_and_keeps_trajectory(open_pipeline):
    """测试 HAVE_GOAL 下的新请求先清空序列，已发布轨迹不受影响"""
    pipeline = open_pipeline
    previous = pipeline.snapshot
    context = pipeline.context
    assert pipeline.accept_goal(_request(context, 10.0, 1.0, 3.0), trigger_plan=False)
    assert pipeline.goal_state == GoalState.HAVE_START
    assert pipeline.snapshot is previous
    assert pipeline.plan() == PlanStatus.NOT_READY


# =============================================================================
# 其他
# =============================================================================

def test_invalidate_on_replan():
    """测试 invalidate_on_replan 时规划失败会清除旧轨迹"""
    pipeline = _make_pipeline(
        'open', optimizer_factory=lambda ctx: SwitchableOptimizer(ctx.max_iterations),
        system__invalidate_on_replan=True)
    context = pipeline.context
    pipeline.accept_goal(_request(context, 0.0, 0.0, 3.0))
    pipeline.accept_goal(_request(context, 12.0, 0.0, 3.0))
    assert pipeline.last_plan_status == PlanStatus.SUCCESS
    assert pipeline.snapshot is not None

    bounds = context.magnitude_bounds.copy()
    bounds[3], bounds[4] = 15.0, 12.0
    pipeline._optimizer.bounds_override = bounds
    assert pipeline.plan() == PlanStatus.SETUP_FAILED
    assert pipeline.snapshot is None


def test_search_error_maps_to_route_failed():
    context = PlannerContext.from_config(create_test_config('open'))
    pipeline = PlanningPipeline(context, path_search=RaisingSearch(), clock=FixedClock())
    pipeline.ingest(create_scene_frame('open'))
    pipeline.accept_goal(_request(context, 0.0, 0.0, 3.0))
    status_before = pipeline.last_plan_status
    pipeline.accept_goal(_request(context, 20.0, 0.0, 3.0))
    assert status_before == PlanStatus.NOT_READY
    assert pipeline.last_plan_status == PlanStatus.ROUTE_FAILED
    assert pipeline.snapshot is None


def test_search_timeout_route_failed():
    """测试搜索时间预算耗尽时规划失败"""
    pipeline = _make_pipeline('gapped_wall', search__timeout=1e-3)
    context = pipeline.context
    pipeline.accept_goal(_request(context, 0.0, 0.0, 5.0))
    pipeline.accept_goal(_request(context, 40.0, 0.0, 5.0))
    assert pipeline.last_plan_status == PlanStatus.ROUTE_FAILED
    assert pipeline.snapshot is None


# =============================================================================
# 组件替换
# =============================================================================

class ListSink(ITelemetrySink):
    """只实现 publish / add_callback 的遥测输出"""

    def __init__(self):
        self.records = []

    def publish(self, channel, payload):
        self.records.append((channel, payload))

    def add_callback(self, callback):
        pass


class PointQueryMap(IOccupancyMap):
    """只实现单点接口的地图，批量操作和 grid 使用接口默认实现"""

    def __init__(self, context):
        self._inner = VoxelMap.from_context(context)

    def set_occupied(self, point):
        self._inner.set_occupied(point)

    def query(self, point):
        return self._inner.query(point)

    def dilate(self, steps):
        self._inner.dilate(steps)

    def get_surface(self):
        return self._inner.get_surface()

    def get_origin(self):
        return self._inner.get_origin()

    def get_corner(self):
        return self._inner.get_corner()

    def get_scale(self):
        return self._inner.get_scale()

    def get_size(self):
        return self._inner.get_size()


class FlakyVoxelMap(VoxelMap):
    """第一次膨胀时抛出异常"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.failures_left = 1

    def dilate(self, steps):
        if self.failures_left > 0:
            self.failures_left -= 1
            raise MemoryError('dilation buffer')
        super().dilate(steps)


def test_minimal_telemetry_sink():
    """测试只实现基本接口的遥测输出可以用于规划和指令循环"""
    context = PlannerContext.from_config(create_test_config('open'))
    sink = ListSink()
    pipeline = PlanningPipeline(context, telemetry=sink, clock=FixedClock())
    pipeline.ingest(create_scene_frame('open'))
    assert pipeline.accept_goal(_request(context, 0.0, 0.0, 3.0))
    assert pipeline.accept_goal(_request(context, 12.0, 0.0, 3.0))
    assert pipeline.last_plan_status == PlanStatus.SUCCESS

    snapshot = pipeline.snapshot
    assert pipeline.tick(STAMP + 0.5 * snapshot.total_duration) is not None

    channels = [channel for channel, _ in sink.records]
    assert channels.count(TelemetryChannel.START_GOAL) == 2
    assert TelemetryChannel.TRAJECTORY in channels
    assert channels[-5:] == [
        TelemetryChannel.SPEED, TelemetryChannel.THRUST, TelemetryChannel.TILT,
        TelemetryChannel.BODY_RATE, TelemetryChannel.POSITION,
    ]
    start_goal = [payload for channel, payload in sink.records
                  if channel == TelemetryChannel.START_GOAL]
    assert [p['index'] for p in start_goal] == [0, 1]
    assert start_goal[0]['radius'] == 0.5


def test_minimal_occupancy_map():
    """测试只实现单点接口的地图: 建图、目标检查与路径搜索"""
    context = PlannerContext.from_config(create_test_config('open'))
    vmap = PointQueryMap(context)
    pipeline = PlanningPipeline(context, voxel_map=vmap, clock=FixedClock())
    assert pipeline.ingest(create_scene_frame('open'))

    assert np.array_equal(vmap.grid, vmap._inner.grid)
    assert not pipeline.accept_goal(GoalRequest(5.0, 0.0, 0.0), trigger_plan=False)

    start = _request(context, 0.0, 0.0, 3.0).to_point(context)
    goal = _request(context, 12.0, 0.0, 3.0).to_point(context)
    route = VoxelAStarSearch().find(start, goal, vmap.get_origin(), vmap.get_corner(),
                                    vmap, timeout=5.0)
    assert len(route) == 2
    assert np.allclose(route[0], start) and np.allclose(route[-1], goal)


def test_failed_map_build_releases_latch():
    """测试建图过程中抛出异常时帧被丢弃，下一帧可以重新建图"""
    context = PlannerContext.from_config(create_test_config('open'))
    pipeline = PlanningPipeline(context, voxel_map=FlakyVoxelMap.from_context(context))
    frame = create_scene_frame('open')

    assert not pipeline.ingest(frame)
    assert pipeline.map_state == MapLifecycle.UNINITIALIZED
    assert pipeline.ingest(frame)
    assert pipeline.is_map_ready


def test_receive_goal_returns_completed_pair():
    """测试序列完成时返回起点/终点对，之后的请求不影响该对"""
    pipeline = _make_pipeline('open')
    context = pipeline.context

    accepted, pair = pipeline.receive_goal(_request(context, 0.0, 0.0, 3.0))
    assert accepted and pair is None
    accepted, pair = pipeline.receive_goal(_request(context, 20.0, 0.0, 3.0))
    assert accepted and pair is not None
    accepted, later = pipeline.receive_goal(_request(context, 5.0, 0.0, 3.0))
    assert accepted and later is None
    assert pipeline.goal_state == GoalState.HAVE_START

    assert np.allclose(pair[0], [0.0, 0.0, 3.0])
    assert np.allclose(pair[1], [20.0, 0.0, 3.0])
    assert pipeline.plan() == PlanStatus.NOT_READY

    accepted, pair = pipeline.receive_goal(GoalRequest(5.0, 0.0, 0.0))
    assert not accepted and pair is None
