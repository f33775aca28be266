"""
统一日志配置模块

使用方式:
=========

方式 1: 标准 Python 日志 (推荐)
    import logging
    logger = logging.getLogger(__name__)

    # 日志配置由应用层统一设置 (configure_logging)

方式 2: 使用 ThrottledLogger (高频日志场景)
    from global_planner.core.logging_config import ThrottledLogger
    throttled = ThrottledLogger(logger, min_interval=5.0)

    # 控制循环以 1kHz 运行，其中的日志必须节流

日志级别规范:
=============

DEBUG:
    - 循环内部状态、每次 tick 的采样结果
    - 示例：logger.debug(f"A* expanded {n} nodes")

INFO:
    - 生命周期事件：地图就绪、轨迹发布、节点启动/关闭
    - 示例：logger.info("Voxel map ready: 1234 occupied voxels")

WARNING:
    - 被拒绝的目标点、单次规划尝试失败
    - 示例：logger.warning("Infeasible position selected")

ERROR:
    - 组件异常被捕获并降级处理
    - 示例：logger.error("Optimizer raised SolverError, attempt abandoned")
"""
import logging
import sys
import time

# 默认日志格式
DEFAULT_FORMAT = '[%(name)s] %(levelname)s: %(message)s'
DEFAULT_LEVEL = logging.INFO


def configure_logging(level: int = DEFAULT_LEVEL,
                      format_str: str = DEFAULT_FORMAT) -> None:
    """
    配置全局日志设置

    Args:
        level: 日志级别
        format_str: 日志格式字符串
    """
    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[logging.StreamHandler(sys.stdout)]
    )


class ThrottledLogger:
    """
    节流日志器

    用于避免频繁触发的日志消息导致日志泛滥。

    使用示例:
        throttled = ThrottledLogger(logger, min_interval=5.0)
        # 以下消息最多每 5 秒记录一次
        throttled.debug("Trajectory expired", key="traj_expired")
    """

    def __init__(self, logger: logging.Logger, min_interval: float = 1.0):
        """
        Args:
            logger: 底层日志器
            min_interval: 同一 key 的最小日志间隔（秒）
        """
        self._logger = logger
        self._min_interval = min_interval
        self._last_log_times: dict = {}

    def _should_log(self, key: str) -> bool:
        """检查是否应该记录日志"""
        current_time = time.monotonic()
        last_time = self._last_log_times.get(key)

        if last_time is None or current_time - last_time >= self._min_interval:
            self._last_log_times[key] = current_time
            return True
        return False

    def debug(self, msg: str, key: str = None, *args, **kwargs):
        """记录 DEBUG 级别日志（带节流）"""
        if key is None or self._should_log(key):
            self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, key: str = None, *args, **kwargs):
        """记录 INFO 级别日志（带节流）"""
        if key is None or self._should_log(key):
            self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, key: str = None, *args, **kwargs):
        """记录 WARNING 级别日志（带节流）"""
        if key is None or self._should_log(key):
            self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, key: str = None, *args, **kwargs):
        """记录 ERROR 级别日志（带节流）"""
        if key is None or self._should_log(key):
            self._logger.error(msg, *args, **kwargs)
