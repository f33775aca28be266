"""状态机"""
from typing import List, Optional, Tuple
import logging
import threading

import numpy as np

from ..core.enums import GoalState, MapLifecycle

logger = logging.getLogger(__name__)


class MapLatch:
    """
    地图就绪锁存器

    只允许一次转换 UNINITIALIZED -> READY。第一个调用 claim() 的帧获得构建权，
    之后的帧全部被忽略；构建完成后调用 set_ready()。

    线程安全性:
    - claim() 在锁内检查并设置，保证只有一个调用者返回 True
    - is_ready 使用 threading.Event，跨线程可见
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._claimed = False

    def claim(self) -> bool:
        """尝试获得地图构建权，只有第一次调用返回 True"""
        with self._lock:
            if self._claimed:
                return False
            self._claimed = True
            return True

    def set_ready(self) -> None:
        self._event.set()

    def abandon(self) -> None:
        """构建失败时释放构建权 (地图尚未就绪)"""
        with self._lock:
            if not self._event.is_set():
                self._claimed = False

    @property
    def is_ready(self) -> bool:
        return self._event.is_set()

    @property
    def state(self) -> MapLifecycle:
        return MapLifecycle.READY if self._event.is_set() else MapLifecycle.UNINITIALIZED

    def wait(self, timeout: Optional[float] = None) -> bool:
        """等待地图就绪"""
        return self._event.wait(timeout)


class GoalStateMachine:
    """
    起点/终点序列状态机

    IDLE -> HAVE_START -> HAVE_GOAL，在 HAVE_GOAL 下收到新请求时先清空。

    线程安全性:
    - 本类不加锁，调用者 (PlanningPipeline) 负责在目标锁内访问
    """

    def __init__(self):
        self._points: List[np.ndarray] = []

    @property
    def state(self) -> GoalState:
        return GoalState(len(self._points))

    def clear(self) -> None:
        self._points = []

    def reset_if_complete(self) -> bool:
        """HAVE_GOAL 时清空序列，返回是否清空"""
        if self.state == GoalState.HAVE_GOAL:
            self.clear()
            return True
        return False

    def append(self, point: np.ndarray) -> int:
        """
        追加一个已通过可行性检查的点

        Returns:
            该点在序列中的索引

        Raises:
            RuntimeError: 序列已满时
        """
        if self.state == GoalState.HAVE_GOAL:
            raise RuntimeError('goal sequence already holds start and goal')
        self._points.append(np.array(point, dtype=float))
        return len(self._points) - 1

    @property
    def is_complete(self) -> bool:
        return self.state == GoalState.HAVE_GOAL

    def get_pair(self) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        """(起点, 终点) 的副本；序列未满时返回 None"""
        if not self.is_complete:
            return None
        return self._points[0].copy(), self._points[1].copy()

    def get_points(self) -> List[np.ndarray]:
        return [p.copy() for p in self._points]

    def __len__(self) -> int:
        return len(self._points)
