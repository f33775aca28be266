"""系统基础配置

包含规划节点的基础系统参数：
- 话题标识 (对核心库是不透明字符串)
- 控制循环频率
- 规划线程模型
- 调度队列容量
"""

# 话题配置
# 注意: 核心库不解释话题名称，只原样保存，供传输层订阅使用
TOPICS_CONFIG = {
    'map': '/voxel_map',                   # 点云地图话题
    'target': '/move_base_simple/goal',    # 目标位姿话题
}

# 系统配置
SYSTEM_CONFIG = {
    'ctrl_freq': 1000,            # 指令循环频率 (Hz)
    'async_planning': False,      # True: 规划在独立工作线程执行，不阻塞指令循环
    'invalidate_on_replan': False,  # True: 新的起终点对开始规划时撤回旧轨迹
    'queue_size': 10,             # 调度队列容量 (地图帧 + 目标请求)
}

# 系统配置验证规则
SYSTEM_VALIDATION_RULES = {
    'system.ctrl_freq': (1, 10000, '指令循环频率 (Hz)'),
    'system.queue_size': (1, 10000, '调度队列容量'),
}
