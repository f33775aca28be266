"""地图、搜索与走廊配置

包含环境表示和前端规划相关的参数：
- 地图包围盒与体素分辨率
- 障碍物膨胀半径
- 路径搜索时间预算
- 安全走廊生成参数

包围盒说明:
===========
map.bound = [x_min, x_max, y_min, y_max, z_min, z_max]，必须构成非退化的盒子。
体素数量按 (max - min) / voxel_width 截断取整。

目标高度说明:
=============
目标点的高度由位姿消息的 orientation.z 换算:
    z = z_min + dilate_radius + |orientation.z| * (z_max - z_min - 2 * dilate_radius)
因此要求 2 * dilate_radius < z_max - z_min。
"""

# 地图配置
MAP_CONFIG = {
    'bound': [-25.0, 25.0, -25.0, 25.0, 0.0, 5.0],  # 地图包围盒 (m)
    'voxel_width': 0.25,          # 体素边长 (m)
    'dilate_radius': 0.5,         # 膨胀半径 (m)，机体半径 + 安全裕度
}

# 路径搜索配置
# 注意: 原始 RRT* 使用 0.02s 预算；体素 A* 在 Python 中需要更长的时间预算
SEARCH_CONFIG = {
    'timeout': 1.0,               # 搜索时间预算 (秒)
    'heuristic_weight': 1.5,      # A* 启发式权重 (>= 1，越大越贪心)
}

# 安全走廊配置
CORRIDOR_CONFIG = {
    'progress': 7.0,              # 相邻锚点最大间距 (m)
    'range': 3.0,                 # 多面体相对路径的最大扩展距离 (m)
}

# 地图配置验证规则
MAP_VALIDATION_RULES = {
    'map.voxel_width': (1e-3, 10.0, '体素边长 (m)'),
    'map.dilate_radius': (0.0, 10.0, '膨胀半径 (m)'),
    'search.timeout': (1e-3, 600.0, '搜索时间预算 (秒)'),
    'search.heuristic_weight': (1.0, 10.0, 'A* 启发式权重'),
    'corridor.progress': (0.1, 100.0, '相邻锚点最大间距 (m)'),
    'corridor.range': (0.1, 100.0, '多面体最大扩展距离 (m)'),
}
