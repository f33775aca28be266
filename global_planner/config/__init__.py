"""配置模块

提供统一的配置接口，支持：
- 默认配置模板 (DEFAULT_CONFIG)
- 配置验证 (validate_config)
- YAML 配置文件加载 (load_config_file)

配置文件结构:
- system_config.py: 话题、指令循环频率、线程模型
- map_config.py: 地图、路径搜索、安全走廊
- optimizer_config.py: 幅值约束、物理参数、优化器参数
- validation.py: 配置验证逻辑
- loader.py: YAML 加载与合并

使用示例:
    from global_planner.config import copy_default_config, validate_config

    config = copy_default_config()
    config['map']['dilate_radius'] = 1.0
    errors = validate_config(config, raise_on_error=False)
"""

from .default_config import (
    DEFAULT_CONFIG,
    REQUIRED_KEYS,
    CONFIG_VALIDATION_RULES,
    copy_default_config,
    validate_config,
    validate_logical_consistency,
    get_config_value,
    ConfigValidationError,
    ValidationSeverity,
)
from .loader import load_config_file, merge_config, LEGACY_KEY_MAP

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
    'load_config_file',
    'merge_config',
    'LEGACY_KEY_MAP',
]
