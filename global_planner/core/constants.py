"""
通用常量和基础数学函数定义

本模块定义了整个规划系统使用的通用常量和不依赖其他模块的基础数学函数。

常量分类:
=========

1. 数值稳定性常量 (Numerical Stability)
   - 用于避免除零、数值溢出等问题

2. 轨迹常量 (Trajectory)
   - 多项式阶次、边界状态维度

3. 走廊 / 可视化常量
   - 原始节点中硬编码的数值

基础数学函数:
=============

本模块包含不依赖其他模块的基础数学函数（如倾斜角计算），
这些函数被放在这里以避免循环导入问题。

使用示例:
=========

    from global_planner.core.constants import EPSILON, tilt_from_quaternion

    if denominator > EPSILON:
        result = numerator / denominator
"""

import numpy as np


# =============================================================================
# 基础数学函数 (不依赖其他模块，避免循环导入)
# =============================================================================

def tilt_from_quaternion(quat) -> float:
    """
    由姿态四元数计算倾斜角

    tilt = arccos(1 - 2 (qx² + qy²))

    偏航角不影响该定义，因此只需要 x、y 分量。

    Args:
        quat: 四元数 (w, x, y, z)

    Returns:
        倾斜角 (弧度)，范围 [0, π]
    """
    cos_tilt = 1.0 - 2.0 * (quat[1] * quat[1] + quat[2] * quat[2])
    return float(np.arccos(np.clip(cos_tilt, -1.0, 1.0)))


def smoothed_l1(x: np.ndarray, mu: float):
    """
    平滑 L1 惩罚函数

    x <= 0 时为 0；0 < x < mu 时为三次过渡段；x >= mu 时为 x - mu/2。

    Args:
        x: 约束违反量 (标量或数组)
        mu: 平滑因子 (> 0)

    Returns:
        与 x 同形状的惩罚值
    """
    x = np.asarray(x, dtype=float)
    out = np.zeros_like(x)
    inner = (x > 0.0) & (x < mu)
    outer = x >= mu
    xi = x[inner]
    out[inner] = (mu - 0.5 * xi) * xi ** 3 / mu ** 3
    out[outer] = x[outer] - 0.5 * mu
    return out


# =============================================================================
# 数值稳定性常量 (Numerical Stability Constants)
# =============================================================================

# 通用小量阈值
EPSILON = 1e-6

# 更严格的小量阈值
EPSILON_SMALL = 1e-9

# 最小线段长度
# 用于几何计算中判断点是否重合
MIN_SEGMENT_LENGTH = 1e-6


# =============================================================================
# 轨迹常量 (Trajectory Constants)
# =============================================================================

# 每段多项式阶次 (五次多项式，最小 jerk)
TRAJECTORY_DEGREE = 5

# 每段多项式系数个数
TRAJECTORY_COEFF_NUM = TRAJECTORY_DEGREE + 1

# 最小分段时长 (秒)
MIN_PIECE_DURATION = 1e-3


# =============================================================================
# 走廊常量 (Corridor Constants)
# =============================================================================

# 相邻多面体重叠判定裕度
OVERLAP_EPSILON = 0.01

# 点在半空间边界上的判定阈值
BOUNDARY_EPSILON = 1e-6


# =============================================================================
# 可视化常量 (Visualization Constants)
# =============================================================================

# 起点/终点标记半径 (m)
START_GOAL_MARKER_RADIUS = 0.5

# 轨迹可视化采样间隔 (秒)
TRAJECTORY_SAMPLE_DT = 0.01


# =============================================================================
# 导出列表
# =============================================================================

__all__ = [
    'EPSILON',
    'EPSILON_SMALL',
    'MIN_SEGMENT_LENGTH',
    'TRAJECTORY_DEGREE',
    'TRAJECTORY_COEFF_NUM',
    'MIN_PIECE_DURATION',
    'OVERLAP_EPSILON',
    'BOUNDARY_EPSILON',
    'START_GOAL_MARKER_RADIUS',
    'TRAJECTORY_SAMPLE_DT',
    'tilt_from_quaternion',
    'smoothed_l1',
]
