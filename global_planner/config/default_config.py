"""默认配置

本模块合并所有配置子模块，提供统一的配置接口。

配置结构:
- system_config.py: 话题、指令循环频率、线程模型
- map_config.py: 地图、路径搜索、安全走廊
- optimizer_config.py: 幅值约束、物理参数、优化器参数
- validation.py: 配置验证

注意:
    DEFAULT_CONFIG 是启动层的参数模板 (与原始节点的 launch 参数一致)。
    核心库本身不提供默认值：PlannerContext.from_config() 要求 REQUIRED_KEYS 全部存在。

使用示例:
    from global_planner.config import copy_default_config

    config = copy_default_config()
    config['map']['voxel_width'] = 0.5
"""
from typing import Dict, Any
import copy

from .system_config import TOPICS_CONFIG, SYSTEM_CONFIG, SYSTEM_VALIDATION_RULES
from .map_config import (
    MAP_CONFIG,
    SEARCH_CONFIG,
    CORRIDOR_CONFIG,
    MAP_VALIDATION_RULES,
)
from .optimizer_config import (
    CONSTRAINTS_CONFIG,
    PHYSICAL_CONFIG,
    OPTIMIZER_CONFIG,
    OPTIMIZER_VALIDATION_RULES,
)
from .validation import (
    ConfigValidationError,
    ValidationSeverity,
    get_config_value,
    validate_config as _validate_config,
    validate_logical_consistency,
    validate_full_config,
)


# =============================================================================
# 合并所有配置
# =============================================================================
DEFAULT_CONFIG: Dict[str, Any] = {
    'topics': TOPICS_CONFIG.copy(),
    'map': copy.deepcopy(MAP_CONFIG),
    'search': SEARCH_CONFIG.copy(),
    'corridor': CORRIDOR_CONFIG.copy(),
    'constraints': CONSTRAINTS_CONFIG.copy(),
    'physical': PHYSICAL_CONFIG.copy(),
    'optimizer': copy.deepcopy(OPTIMIZER_CONFIG),
    'system': SYSTEM_CONFIG.copy(),
}


# =============================================================================
# 必需参数 (原始节点启动时读取的全部参数)
# =============================================================================
REQUIRED_KEYS = (
    'topics.map',
    'topics.target',
    'map.bound',
    'map.voxel_width',
    'map.dilate_radius',
    'search.timeout',
    'constraints.max_vel_mag',
    'constraints.max_bdr_mag',
    'constraints.max_tilt_angle',
    'constraints.min_thrust',
    'constraints.max_thrust',
    'physical.vehicle_mass',
    'physical.grav_acc',
    'physical.horiz_drag',
    'physical.vert_drag',
    'physical.paras_drag',
    'physical.speed_eps',
    'optimizer.weight_t',
    'optimizer.chi_vec',
    'optimizer.smoothing_eps',
    'optimizer.integral_intervs',
    'optimizer.rel_cost_tol',
)


# =============================================================================
# 合并所有验证规则
# =============================================================================
CONFIG_VALIDATION_RULES: Dict[str, tuple] = {}
CONFIG_VALIDATION_RULES.update(SYSTEM_VALIDATION_RULES)
CONFIG_VALIDATION_RULES.update(MAP_VALIDATION_RULES)
CONFIG_VALIDATION_RULES.update(OPTIMIZER_VALIDATION_RULES)


def copy_default_config() -> Dict[str, Any]:
    """返回 DEFAULT_CONFIG 的深拷贝，修改不会影响模板"""
    return copy.deepcopy(DEFAULT_CONFIG)


def validate_config(config: Dict[str, Any], raise_on_error: bool = True) -> list:
    """
    验证配置参数（范围检查 + 逻辑一致性检查）

    Args:
        config: 配置字典
        raise_on_error: 是否在发现 ERROR 级别错误时抛出异常 (FATAL 始终抛出)

    Returns:
        错误列表，每个元素为 (key_path, error_message, severity)

    Example:
        >>> config = copy_default_config()
        >>> config['constraints']['min_thrust'] = 20.0
        >>> errors = validate_config(config, raise_on_error=False)
    """
    return validate_full_config(config, CONFIG_VALIDATION_RULES, raise_on_error)


# =============================================================================
# 导出
# =============================================================================
__all__ = [
    'DEFAULT_CONFIG',
    'REQUIRED_KEYS',
    'CONFIG_VALIDATION_RULES',
    'copy_default_config',
    'validate_config',
    'validate_logical_consistency',
    'get_config_value',
    'ConfigValidationError',
    'ValidationSeverity',
    'TOPICS_CONFIG',
    'SYSTEM_CONFIG',
    'MAP_CONFIG',
    'SEARCH_CONFIG',
    'CORRIDOR_CONFIG',
    'CONSTRAINTS_CONFIG',
    'PHYSICAL_CONFIG',
    'OPTIMIZER_CONFIG',
]
