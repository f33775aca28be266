"""
遥测发布器

负责把规划结果和指令循环输出通过回调发布出去。

职责说明:
- TelemetryPublisher: 管理回调并在各通道上发布负载 (负载由 ITelemetrySink 的 publish_xxx 构建)
- 实际的传输 (ROS 话题、可视化等) 由回调的提供者负责

发布是尽力而为的: 回调异常被捕获并记录，连续失败 5 次的回调被移除，
不会影响规划或指令循环。
"""
from typing import Dict, Any, Optional, Callable, List
import logging
import threading

from ..core.interfaces import ITelemetrySink
from ..core.enums import TelemetryChannel

logger = logging.getLogger(__name__)

TelemetryCallback = Callable[[TelemetryChannel, Dict[str, Any]], None]


class TelemetryPublisher(ITelemetrySink):
    """
    遥测发布器

    使用示例:
        publisher = TelemetryPublisher()
        publisher.add_callback(lambda channel, payload: print(channel.value, payload))
        publisher.publish(TelemetryChannel.SPEED, {'value': 1.0})
    """

    def __init__(self, max_failures: int = 5):
        self._callbacks: List[TelemetryCallback] = []
        self._callbacks_lock = threading.Lock()
        self._callback_fail_counts: Dict[int, int] = {}
        self._callback_max_failures = max_failures

        self._last_published: Dict[TelemetryChannel, Dict[str, Any]] = {}
        self._last_lock = threading.Lock()

    def add_callback(self, callback: TelemetryCallback) -> None:
        """
        添加遥测回调

        Args:
            callback: 签名为 callback(channel, payload) -> None
        """
        with self._callbacks_lock:
            if callback not in self._callbacks:
                self._callbacks.append(callback)
                self._callback_fail_counts[id(callback)] = 0

    def remove_callback(self, callback: TelemetryCallback) -> None:
        with self._callbacks_lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)
                self._callback_fail_counts.pop(id(callback), None)

    def clear_callbacks(self) -> None:
        with self._callbacks_lock:
            self._callbacks.clear()
            self._callback_fail_counts.clear()

    @property
    def callback_count(self) -> int:
        with self._callbacks_lock:
            return len(self._callbacks)

    def publish(self, channel: TelemetryChannel, payload: Dict[str, Any]) -> None:
        """在指定通道上发布负载"""
        with self._last_lock:
            self._last_published[channel] = payload

        with self._callbacks_lock:
            callbacks_copy = list(self._callbacks)

        callbacks_to_remove = []
        for callback in callbacks_copy:
            try:
                callback(channel, payload)
                with self._callbacks_lock:
                    self._callback_fail_counts[id(callback)] = 0
            except Exception as e:
                callback_id = id(callback)
                with self._callbacks_lock:
                    fail_count = self._callback_fail_counts.get(callback_id, 0) + 1
                    self._callback_fail_counts[callback_id] = fail_count

                if fail_count >= self._callback_max_failures:
                    logger.warning(
                        f"Telemetry callback {callback} failed {fail_count} times consecutively, "
                        f"removing it. Last error: {e}"
                    )
                    callbacks_to_remove.append(callback)
                elif fail_count == 1:
                    logger.warning(f"Telemetry callback error on '{channel.value}': {e}")
                else:
                    logger.debug(f"Telemetry callback error (fail #{fail_count}): {e}")

        if callbacks_to_remove:
            with self._callbacks_lock:
                for callback in callbacks_to_remove:
                    if callback in self._callbacks:
                        self._callbacks.remove(callback)
                        self._callback_fail_counts.pop(id(callback), None)

    def get_last_published(self, channel: TelemetryChannel) -> Optional[Dict[str, Any]]:
        """获取某通道最后发布的负载"""
        with self._last_lock:
            return self._last_published.get(channel)
