"""轨迹优化配置

包含轨迹优化器和微分平坦映射的参数：
- 幅值约束 (magnitudeBounds)
- 物理参数 (physicalParams)
- 代价函数参数 (时间权重、惩罚权重、平滑因子、积分分段数、相对收敛阈值)

向量约定:
=========
magnitude_bounds = [v_max, omega_max, theta_max, thrust_min, thrust_max]
penalty_weights  = [pos_weight, vel_weight, omg_weight, theta_weight, thrust_weight]
physical_params  = [vehicle_mass, gravitational_acceleration, horizontal_drag_coeff,
                    vertical_drag_coeff, parasitic_drag_coeff, speed_smooth_factor]
"""

# 幅值约束配置
CONSTRAINTS_CONFIG = {
    'max_vel_mag': 4.0,           # 最大速度 (m/s)
    'max_bdr_mag': 2.1,           # 最大机体角速度 (rad/s)
    'max_tilt_angle': 1.05,       # 最大倾斜角 (rad)
    'min_thrust': 2.0,            # 最小推力 (N)
    'max_thrust': 12.0,           # 最大推力 (N)
}

# 物理参数配置
PHYSICAL_CONFIG = {
    'vehicle_mass': 0.61,         # 机体质量 (kg)
    'grav_acc': 9.8,              # 重力加速度 (m/s²)
    'horiz_drag': 0.70,           # 水平阻力系数
    'vert_drag': 0.80,            # 垂直阻力系数
    'paras_drag': 0.01,           # 寄生阻力系数
    'speed_eps': 0.0001,          # 速度平滑因子
}

# 优化器配置
OPTIMIZER_CONFIG = {
    'weight_t': 20.0,             # 时间权重
    'chi_vec': [1.0e4, 1.0e4, 1.0e4, 1.0e4, 1.0e5],  # 惩罚权重
    'smoothing_eps': 1.0e-2,      # 平滑 L1 因子
    'integral_intervs': 16,       # 每段积分分段数
    'rel_cost_tol': 1.0e-5,       # 相对代价收敛阈值
    'max_iterations': 200,        # L-BFGS 最大迭代次数
}

# 优化配置验证规则
OPTIMIZER_VALIDATION_RULES = {
    'constraints.max_vel_mag': (None, 100.0, '最大速度 (m/s)'),
    'constraints.max_bdr_mag': (None, 100.0, '最大机体角速度 (rad/s)'),
    'constraints.max_tilt_angle': (None, 3.1416, '最大倾斜角 (rad)'),
    'constraints.min_thrust': (0.0, None, '最小推力 (N)'),
    'constraints.max_thrust': (None, None, '最大推力 (N)'),
    'physical.vehicle_mass': (None, 1000.0, '机体质量 (kg)'),
    'physical.grav_acc': (0.1, 20.0, '重力加速度 (m/s²)'),
    'physical.horiz_drag': (0.0, 100.0, '水平阻力系数'),
    'physical.vert_drag': (0.0, 100.0, '垂直阻力系数'),
    'physical.paras_drag': (0.0, 100.0, '寄生阻力系数'),
    'physical.speed_eps': (0.0, 1.0, '速度平滑因子'),
    'optimizer.weight_t': (0.0, 1e6, '时间权重'),
    'optimizer.smoothing_eps': (1e-9, 10.0, '平滑 L1 因子'),
    'optimizer.integral_intervs': (1, 1000, '每段积分分段数'),
    'optimizer.rel_cost_tol': (1e-15, 1.0, '相对代价收敛阈值'),
    'optimizer.max_iterations': (1, 100000, 'L-BFGS 最大迭代次数'),
}
