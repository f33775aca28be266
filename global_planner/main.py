"""
全局规划器主入口 - 演示脚本

使用模拟点云 (地面 + 带开口的墙) 运行一次完整的规划，并以模拟时钟采样指令。

生产环境使用示例:
    from global_planner import PlannerContext, PlannerNode, load_config_file

    config = load_config_file('global_planning.yaml')
    node = PlannerNode(PlannerContext.from_config(config))
    node.start()
    node.submit_map(frame)
    node.submit_goal(request)

演示用法:
    python -m global_planner.main
"""
import logging
import time

import numpy as np

from .core.data_types import PlannerContext
from .core.logging_config import configure_logging
from .core.enums import TelemetryChannel
from .planner.pipeline import PlanningPipeline
from .mock.scene_generator import create_test_config, create_scene_frame, goal_for_altitude


def main():
    """主函数"""
    configure_logging(logging.INFO)

    print("=" * 60)
    print("四旋翼全局规划器 (Global Planner) v1.0.0")
    print("=" * 60)

    config = create_test_config('gapped_wall')
    context = PlannerContext.from_config(config)
    pipeline = PlanningPipeline(context)

    print(f"\n地图范围: {list(context.map_bound)}")
    print(f"体素边长: {context.voxel_width} m, 膨胀半径: {context.dilate_radius} m")
    print(f"地图尺寸: {context.map_size}")

    frame = create_scene_frame('gapped_wall')
    pipeline.ingest(frame)
    print(f"地图状态: {pipeline.map_state.name}")

    bound, radius = context.map_bound, context.dilate_radius
    start = goal_for_altitude(0.0, 0.0, 5.0, bound, radius)
    goal = goal_for_altitude(40.0, 0.0, 5.0, bound, radius)

    print("\n开始规划...")
    print("-" * 60)
    t0 = time.monotonic()
    pipeline.accept_goal(start)
    pipeline.accept_goal(goal)
    elapsed = time.monotonic() - t0
    print(f"规划结果: {pipeline.last_plan_status.name} (耗时 {elapsed:.2f}s)")

    snapshot = pipeline.snapshot
    if snapshot is None:
        print("没有可用的轨迹")
        return

    traj = snapshot.trajectory
    route = pipeline.telemetry.get_last_published(TelemetryChannel.ROUTE)
    print(f"路径关键点: {len(route['points'])}")
    print(f"走廊多面体: {len(snapshot.corridor)}")
    print(f"轨迹分段: {traj.get_piece_num()}, 时长: {traj.get_total_duration():.2f}s")
    print(f"最大速度: {traj.get_max_vel_rate():.2f} m/s, "
          f"最大加速度: {traj.get_max_acc_rate():.2f} m/s²")

    print("\n指令采样...")
    print("-" * 60)
    total = traj.get_total_duration()
    for t in np.linspace(0.0, total, 11)[1:-1]:
        cmd = pipeline.tick(snapshot.stamp + t)
        print(f"t={t:6.2f}s: pos=({cmd.position[0]:6.2f}, {cmd.position[1]:6.2f}, "
              f"{cmd.position[2]:5.2f}), speed={cmd.speed:.2f}, thrust={cmd.thrust:.2f}, "
              f"tilt={np.degrees(cmd.tilt_angle):5.1f}°, bdr={cmd.body_rate_mag:.2f}")

    print("-" * 60)
    print("演示完成")


if __name__ == '__main__':
    main()
