"""
自定义异常类

本模块定义了规划系统使用的自定义异常类。

异常层次结构:
=============

PlannerError (基类)
├── ConfigurationError
│   └── ConfigValidationError
├── ComponentError
│   └── InitializationError
└── PlanningError
    ├── SearchError
    ├── CorridorError
    └── SolverError

使用指南:
=========

1. 配置错误 (ConfigurationError)
   - 在系统启动时抛出
   - 应该阻止系统启动
   - 示例：缺少必需参数、地图包围盒退化

2. 组件错误 (ComponentError)
   - 组件初始化失败
   - 示例：体素地图尺寸为零

3. 规划错误 (PlanningError)
   - 由数值引擎（路径搜索、走廊生成、轨迹优化）抛出
   - 由 PlanningPipeline 统一捕获，转换为失败的 PlanStatus
   - 不会导致进程退出，也不会破坏已发布的轨迹

注意:
=====

- ingest / accept_goal / plan / tick 均不向外抛出异常
- 在控制循环中应避免抛出异常，以保持实时性
"""


class PlannerError(Exception):
    """规划器错误基类"""
    pass


# =============================================================================
# 配置错误
# =============================================================================

class ConfigurationError(PlannerError):
    """配置错误基类"""
    pass


class ConfigValidationError(ConfigurationError):
    """
    配置验证错误

    当配置参数不满足验证规则时抛出。

    Attributes:
        errors: 错误列表，每个元素为 (key_path, error_message)
    """

    def __init__(self, message: str, errors: list = None):
        super().__init__(message)
        self.errors = errors or []


# =============================================================================
# 组件错误
# =============================================================================

class ComponentError(PlannerError):
    """组件错误基类"""
    pass


class InitializationError(ComponentError):
    """
    组件初始化错误

    当组件初始化失败时抛出。
    """
    pass


# =============================================================================
# 规划错误
# =============================================================================

class PlanningError(PlannerError):
    """
    规划错误基类

    单次规划尝试失败，只影响当前尝试。
    """
    pass


class SearchError(PlanningError):
    """路径搜索错误"""
    pass


class CorridorError(PlanningError):
    """安全走廊生成错误"""
    pass


class SolverError(PlanningError):
    """
    求解器错误

    线性系统奇异或数值发散时抛出。
    """
    pass


# =============================================================================
# 导出列表
# =============================================================================

__all__ = [
    'PlannerError',
    'ConfigurationError',
    'ConfigValidationError',
    'ComponentError',
    'InitializationError',
    'PlanningError',
    'SearchError',
    'CorridorError',
    'SolverError',
]
