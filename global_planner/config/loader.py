"""
配置文件加载器

从 YAML 文件加载配置，并合并到 DEFAULT_CONFIG 模板上。

设计说明:
=========
1. 深拷贝 DEFAULT_CONFIG 作为基础配置
2. 读取 YAML 文件 (yaml.safe_load)
3. 嵌套键直接递归覆盖；原始规划节点的驼峰参数名 (MapTopic, DilateRadius, ...)
   通过 LEGACY_KEY_MAP 映射到嵌套路径
4. 未知键记录警告并忽略

支持的文件格式:
===============

嵌套格式:
    map:
      voxel_width: 0.25
      bound: [-25.0, 25.0, -25.0, 25.0, 0.0, 5.0]

原始节点格式:
    VoxelWidth: 0.25
    MapBound: [-25.0, 25.0, -25.0, 25.0, 0.0, 5.0]
"""
from typing import Dict, Any, Optional, Union
from pathlib import Path
import copy
import logging

import yaml

from .default_config import DEFAULT_CONFIG
from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# 原始节点参数名 -> 嵌套键路径
LEGACY_KEY_MAP = {
    'MapTopic': 'topics.map',
    'TargetTopic': 'topics.target',
    'DilateRadius': 'map.dilate_radius',
    'VoxelWidth': 'map.voxel_width',
    'MapBound': 'map.bound',
    'TimeoutRRT': 'search.timeout',
    'MaxVelMag': 'constraints.max_vel_mag',
    'MaxBdrMag': 'constraints.max_bdr_mag',
    'MaxTiltAngle': 'constraints.max_tilt_angle',
    'MinThrust': 'constraints.min_thrust',
    'MaxThrust': 'constraints.max_thrust',
    'VehicleMass': 'physical.vehicle_mass',
    'GravAcc': 'physical.grav_acc',
    'HorizDrag': 'physical.horiz_drag',
    'VertDrag': 'physical.vert_drag',
    'ParasDrag': 'physical.paras_drag',
    'SpeedEps': 'physical.speed_eps',
    'WeightT': 'optimizer.weight_t',
    'ChiVec': 'optimizer.chi_vec',
    'SmoothingEps': 'optimizer.smoothing_eps',
    'IntegralIntervs': 'optimizer.integral_intervs',
    'RelCostTol': 'optimizer.rel_cost_tol',
}


def set_config_value(config: Dict[str, Any], key_path: str, value: Any) -> None:
    """按点分隔路径写入配置值，中间字典不存在时创建"""
    keys = key_path.split('.')
    node = config
    for key in keys[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[keys[-1]] = value


def merge_config(base: Dict[str, Any], override: Dict[str, Any],
                 top_level: bool = True) -> Dict[str, Any]:
    """
    递归合并配置

    Args:
        base: 基础配置 (不会被修改)
        override: 覆盖配置
        top_level: 是否为顶层 (驼峰参数名只在顶层识别)

    Returns:
        合并后的新配置字典
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if top_level and key in LEGACY_KEY_MAP:
            set_config_value(merged, LEGACY_KEY_MAP[key], copy.deepcopy(value))
        elif isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value, top_level=False)
        elif key in merged:
            merged[key] = copy.deepcopy(value)
        else:
            logger.warning(f"Unknown config key '{key}' ignored")
    return merged


def load_config_file(path: Union[str, Path],
                     base: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    从 YAML 文件加载配置

    Args:
        path: YAML 文件路径
        base: 基础配置，默认为 DEFAULT_CONFIG

    Returns:
        合并后的配置字典

    Raises:
        ConfigurationError: 文件不存在、无法解析或顶层不是映射时
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f'配置文件不存在: {path}')

    try:
        with path.open('r', encoding='utf-8') as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f'配置文件解析失败 {path}: {e}') from e

    if content is None:
        content = {}
    if not isinstance(content, dict):
        raise ConfigurationError(f'配置文件顶层必须是映射: {path}')

    logger.info(f"Loaded config file {path}")
    return merge_config(base if base is not None else DEFAULT_CONFIG, content)
