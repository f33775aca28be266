"""配置验证模块

提供配置参数的验证功能：
- 必需参数检查
- 范围检查
- 类型检查
- 逻辑一致性检查
- 错误严重级别分类

错误严重级别:
- FATAL: 致命错误，必须阻止启动（如地图包围盒退化、体素边长 <= 0）
- ERROR: 严重错误，严格模式下阻止启动（如最小推力大于最大推力）
- WARNING: 警告，记录但不阻止启动
"""
from typing import Dict, Any, List, Tuple, Optional, Iterable
from enum import Enum
import logging

from ..core.exceptions import ConfigValidationError, ConfigurationError

logger = logging.getLogger(__name__)


class ValidationSeverity(Enum):
    """验证错误严重级别"""
    FATAL = 'fatal'      # 致命错误，必须阻止启动
    ERROR = 'error'      # 严重错误，严格模式下阻止启动
    WARNING = 'warning'  # 警告，记录但不阻止启动


_MISSING = object()


def get_config_value(
    config: Dict[str, Any],
    key_path: str,
    default: Any = None,
    fallback_config: Optional[Dict[str, Any]] = None
) -> Any:
    """
    从配置字典中获取值，支持点分隔的路径

    Args:
        config: 配置字典
        key_path: 点分隔的键路径，如 'map.voxel_width'
        default: 默认值
        fallback_config: 备选配置字典，当 config 中找不到时从此获取

    Returns:
        配置值或默认值

    Example:
        >>> config = {'map': {'voxel_width': 0.25}}
        >>> get_config_value(config, 'map.voxel_width')
        0.25
    """
    keys = key_path.split('.')
    value = config
    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            if fallback_config is not None:
                return get_config_value(fallback_config, key_path, default, None)
            return default
    return value


def require_keys(config: Dict[str, Any], key_paths: Iterable[str]) -> None:
    """
    检查必需参数是否全部存在

    核心库不提供默认值，缺少任何一个参数都无法启动。

    Raises:
        ConfigurationError: 缺少必需参数时
    """
    missing = [key for key in key_paths
               if get_config_value(config, key, _MISSING) is _MISSING]
    if missing:
        raise ConfigurationError(
            '缺少必需配置参数:\n' + '\n'.join(f'  - {key}' for key in missing))


def _is_numeric(value) -> bool:
    """检查值是否为数值类型"""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(
    config: Dict[str, Any],
    validation_rules: Dict[str, Tuple],
    raise_on_error: bool = True
) -> List[Tuple[str, str]]:
    """
    验证配置参数范围

    Args:
        config: 配置字典
        validation_rules: 验证规则字典，格式为 {key_path: (min, max, description)}
        raise_on_error: 是否在发现错误时抛出异常

    Returns:
        错误列表，每个元素为 (key_path, error_message)

    Raises:
        ConfigValidationError: 当 raise_on_error=True 且发现错误时
    """
    errors = []

    for key_path, (min_val, max_val, description) in validation_rules.items():
        value = get_config_value(config, key_path)

        if value is None:
            continue  # 缺失由 require_keys 负责

        if not _is_numeric(value):
            errors.append((key_path, f'{description} 类型错误，期望数值，实际为 {type(value).__name__}'))
            continue

        if min_val is not None and value < min_val:
            errors.append((key_path, f'{description} 值 {value} 小于最小值 {min_val}'))
        elif max_val is not None and value > max_val:
            errors.append((key_path, f'{description} 值 {value} 大于最大值 {max_val}'))

    if errors and raise_on_error:
        error_messages = '\n'.join([f'  - {key}: {msg}' for key, msg in errors])
        raise ConfigValidationError(f'配置验证失败:\n{error_messages}', errors)

    return errors


def validate_logical_consistency(config: Dict[str, Any]) -> List[Tuple[str, str, ValidationSeverity]]:
    """
    验证配置的逻辑一致性

    检查配置参数之间的逻辑关系，返回带严重级别的错误列表。

    Args:
        config: 配置字典

    Returns:
        错误列表，每个元素为 (key_path, error_message, severity)
    """
    errors = []

    def add_error(key: str, msg: str, severity: ValidationSeverity = ValidationSeverity.ERROR):
        errors.append((key, msg, severity))

    # ==========================================================================
    # 致命错误 (FATAL 级别) - 地图无法构建或优化问题无意义
    # ==========================================================================

    bound = get_config_value(config, 'map.bound')
    voxel_width = get_config_value(config, 'map.voxel_width')
    bound_valid = False
    if bound is not None:
        if (not isinstance(bound, (list, tuple)) or len(bound) != 6
                or not all(_is_numeric(v) for v in bound)):
            add_error('map.bound', f'地图包围盒必须是 6 个数值，实际为 {bound!r}',
                      ValidationSeverity.FATAL)
        else:
            for axis, name in enumerate('xyz'):
                lo, hi = bound[2 * axis], bound[2 * axis + 1]
                if hi <= lo:
                    add_error('map.bound',
                              f'地图包围盒 {name} 轴退化: max ({hi}) 必须大于 min ({lo})',
                              ValidationSeverity.FATAL)
            bound_valid = not any(key == 'map.bound' for key, _, _ in errors)

    if voxel_width is not None and _is_numeric(voxel_width):
        if voxel_width <= 0:
            add_error('map.voxel_width', f'体素边长 ({voxel_width}) 必须大于 0',
                      ValidationSeverity.FATAL)
        elif bound_valid:
            for axis, name in enumerate('xyz'):
                span = bound[2 * axis + 1] - bound[2 * axis]
                if int(span / voxel_width) < 1:
                    add_error('map.voxel_width',
                              f'体素边长 ({voxel_width}) 大于 {name} 轴跨度 ({span})，地图为空',
                              ValidationSeverity.FATAL)

    for key_path, description in (
        ('constraints.max_vel_mag', '最大速度'),
        ('constraints.max_bdr_mag', '最大机体角速度'),
        ('constraints.max_tilt_angle', '最大倾斜角'),
        ('physical.vehicle_mass', '机体质量'),
    ):
        value = get_config_value(config, key_path)
        if _is_numeric(value) and value <= 0:
            add_error(key_path, f'{description} ({value}) 必须大于 0', ValidationSeverity.FATAL)

    chi_vec = get_config_value(config, 'optimizer.chi_vec')
    if chi_vec is not None:
        if (not isinstance(chi_vec, (list, tuple)) or len(chi_vec) != 5
                or not all(_is_numeric(v) for v in chi_vec)):
            add_error('optimizer.chi_vec', f'惩罚权重必须是 5 个数值，实际为 {chi_vec!r}',
                      ValidationSeverity.FATAL)
        elif any(v < 0 for v in chi_vec):
            add_error('optimizer.chi_vec', f'惩罚权重 {list(chi_vec)} 不能为负',
                      ValidationSeverity.ERROR)

    intervs = get_config_value(config, 'optimizer.integral_intervs')
    if intervs is not None and (not isinstance(intervs, int) or isinstance(intervs, bool)):
        add_error('optimizer.integral_intervs',
                  f'积分分段数必须为整数，实际为 {type(intervs).__name__}',
                  ValidationSeverity.FATAL)

    # ==========================================================================
    # 严重错误 (ERROR 级别) - 规划会持续失败
    # ==========================================================================

    min_thrust = get_config_value(config, 'constraints.min_thrust')
    max_thrust = get_config_value(config, 'constraints.max_thrust')
    if _is_numeric(min_thrust) and _is_numeric(max_thrust) and min_thrust > max_thrust:
        add_error('constraints.min_thrust',
                  f'最小推力 ({min_thrust}) 不应大于最大推力 ({max_thrust})',
                  ValidationSeverity.ERROR)

    dilate_radius = get_config_value(config, 'map.dilate_radius')
    if bound_valid and _is_numeric(dilate_radius):
        z_span = bound[5] - bound[4]
        if 2.0 * dilate_radius >= z_span:
            add_error('map.dilate_radius',
                      f'膨胀半径 ({dilate_radius}) 的两倍不小于高度跨度 ({z_span})，无法换算目标高度',
                      ValidationSeverity.ERROR)

    # ==========================================================================
    # 警告 (WARNING 级别)
    # ==========================================================================

    if _is_numeric(dilate_radius) and dilate_radius == 0:
        add_error('map.dilate_radius', '膨胀半径为 0，障碍物不会膨胀，机体被视为质点',
                  ValidationSeverity.WARNING)

    mass = get_config_value(config, 'physical.vehicle_mass')
    grav = get_config_value(config, 'physical.grav_acc')
    if all(_is_numeric(v) for v in (mass, grav, min_thrust, max_thrust)):
        hover_thrust = mass * grav
        if not min_thrust <= hover_thrust <= max_thrust:
            add_error('physical.vehicle_mass',
                      f'悬停推力 ({hover_thrust:.3f}) 不在推力范围 [{min_thrust}, {max_thrust}] 内，'
                      f'悬停到悬停的轨迹将不可行',
                      ValidationSeverity.WARNING)

    return errors


def validate_full_config(
    config: Dict[str, Any],
    validation_rules: Dict[str, Tuple],
    raise_on_error: bool = True
) -> List[Tuple[str, str, ValidationSeverity]]:
    """
    完整配置验证（包括范围检查和逻辑一致性检查）

    FATAL 级别错误始终抛出异常；ERROR 级别错误只在 raise_on_error=True 时抛出，
    否则记录警告日志。

    Args:
        config: 配置字典
        validation_rules: 验证规则字典
        raise_on_error: 是否在发现 ERROR 级别错误时抛出异常

    Returns:
        错误列表，每个元素为 (key_path, error_message, severity)

    Raises:
        ConfigValidationError: 存在 FATAL 错误，或 raise_on_error=True 且存在 ERROR 错误时
    """
    range_errors = validate_config(config, validation_rules, raise_on_error=False)
    errors = [(key, msg, ValidationSeverity.ERROR) for key, msg in range_errors]
    errors.extend(validate_logical_consistency(config))

    fatal_errors = [(k, m) for k, m, s in errors if s == ValidationSeverity.FATAL]
    error_errors = [(k, m) for k, m, s in errors if s == ValidationSeverity.ERROR]
    warning_errors = [(k, m) for k, m, s in errors if s == ValidationSeverity.WARNING]

    for key, msg in warning_errors:
        logger.warning(f"配置警告 [{key}]: {msg}")

    if fatal_errors:
        fatal_msgs = '\n'.join([f'  - [FATAL] {key}: {msg}' for key, msg in fatal_errors])
        raise ConfigValidationError(f'配置存在致命错误，无法启动:\n{fatal_msgs}', fatal_errors)

    if error_errors:
        error_msgs = '\n'.join([f'  - [ERROR] {key}: {msg}' for key, msg in error_errors])
        if raise_on_error:
            raise ConfigValidationError(f'配置验证失败:\n{error_msgs}', error_errors)
        logger.warning(f'配置验证发现问题 (非严格模式，继续运行):\n{error_msgs}')

    return errors
