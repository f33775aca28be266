"""
规划节点

把 PlanningPipeline 包装成一个可运行的节点:
- 分发线程: 从队列中依次取出地图帧和目标请求并处理，处理函数之间不会重叠
- 定时线程: 以 ctrl_freq 调用 pipeline.tick()
- 规划线程 (可选): async_planning 启用时，plan() 在单线程执行器中运行，
  耗时的优化不会阻塞 tick()

不启动线程时，可以用 spin_once() 同步处理队列中的消息 (用于测试)。
"""
from concurrent.futures import ThreadPoolExecutor, Future, TimeoutError as FutureTimeoutError
from typing import Optional, Union
import logging
import queue
import threading
import time

from ..core.data_types import PlannerContext, PointCloudFrame, GoalRequest, FlightCommand
from ..core.logging_config import ThrottledLogger
from .pipeline import PlanningPipeline

logger = logging.getLogger(__name__)

Message = Union[PointCloudFrame, GoalRequest]

_STOP = object()


class PlannerNode:
    """
    规划节点

    Args:
        context: 规划上下文
        pipeline: 已构建的管线，默认由 context 创建

    使用示例:
        node = PlannerNode(context)
        node.start()
        node.submit_map(frame)
        node.submit_goal(GoalRequest(0.0, 0.0, 0.5))
        ...
        node.stop()
    """

    def __init__(self, context: PlannerContext, pipeline: Optional[PlanningPipeline] = None):
        self._context = context
        self.pipeline = pipeline if pipeline is not None else PlanningPipeline(context)

        self._queue: queue.Queue = queue.Queue(maxsize=max(1, context.queue_size))
        self._stop_event = threading.Event()
        self._dispatch_thread: Optional[threading.Thread] = None
        self._timer_thread: Optional[threading.Thread] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._plan_future: Optional[Future] = None
        self._future_lock = threading.Lock()

        self._last_command: Optional[FlightCommand] = None
        self._tick_count = 0
        self._dropped = 0
        self._throttled = ThrottledLogger(logger, min_interval=5.0)

    # ==================== 生命周期 ====================

    def start(self) -> None:
        """启动分发线程和定时线程"""
        if self.is_running:
            return
        self._stop_event.clear()
        if self._context.async_planning:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='planner')
        self._dispatch_thread = threading.Thread(
            target=self._dispatch_loop, name='planner-dispatch', daemon=True)
        self._timer_thread = threading.Thread(
            target=self._timer_loop, name='planner-timer', daemon=True)
        self._dispatch_thread.start()
        self._timer_thread.start()
        logger.info(f"Planner node started (ctrl_freq={self._context.ctrl_freq}Hz, "
                    f"async_planning={self._context.async_planning})")

    def stop(self, timeout: float = 5.0) -> None:
        """停止所有线程 (正在进行的规划会执行完)"""
        if not self.is_running:
            return
        self._stop_event.set()
        try:
            self._queue.put_nowait(_STOP)
        except queue.Full:
            # 分发线程在下一次取消息超时后检查停止标志
            pass
        for thread in (self._dispatch_thread, self._timer_thread):
            if thread is not None:
                thread.join(timeout)
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self._dispatch_thread = None
        self._timer_thread = None
        logger.info(f"Planner node stopped after {self._tick_count} ticks")

    @property
    def is_running(self) -> bool:
        return self._dispatch_thread is not None and self._dispatch_thread.is_alive()

    def __enter__(self) -> 'PlannerNode':
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    # ==================== 输入 ====================

    def _submit(self, message: Message) -> bool:
        try:
            self._queue.put_nowait(message)
            return True
        except queue.Full:
            self._dropped += 1
            logger.warning(f"Message queue full, dropped {type(message).__name__}")
            return False

    def submit_map(self, frame: PointCloudFrame) -> bool:
        return self._submit(frame)

    def submit_goal(self, request: GoalRequest) -> bool:
        return self._submit(request)

    # ==================== 分发 ====================

    def _handle(self, message: Message) -> None:
        if isinstance(message, PointCloudFrame):
            self.pipeline.ingest(message)
        elif isinstance(message, GoalRequest):
            if self._executor is not None:
                _, pair = self.pipeline.receive_goal(message)
                if pair is not None:
                    # 单线程执行器按提交顺序依次规划各个起点/终点对
                    with self._future_lock:
                        self._plan_future = self._executor.submit(self.pipeline.plan, pair)
            else:
                self.pipeline.accept_goal(message)
        else:
            logger.warning(f"Unknown message type {type(message).__name__} ignored")

    def spin_once(self, timeout: float = 0.0) -> int:
        """
        同步处理队列中已有的消息

        Args:
            timeout: 等待第一条消息的时间 (秒)

        Returns:
            处理的消息数
        """
        handled = 0
        block = timeout > 0.0
        while True:
            try:
                message = self._queue.get(block=block, timeout=timeout if block else None)
            except queue.Empty:
                return handled
            block = False
            if message is _STOP:
                return handled
            self._handle(message)
            handled += 1

    def _dispatch_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                message = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            if message is _STOP:
                break
            try:
                self._handle(message)
            except Exception as e:
                logger.error(f"Message handler raised {type(e).__name__}: {e}")

    # ==================== 定时 ====================

    def tick_once(self) -> Optional[FlightCommand]:
        cmd = self.pipeline.tick()
        self._tick_count += 1
        if cmd is not None:
            self._last_command = cmd
        return cmd

    def _timer_loop(self) -> None:
        period = self._context.ctrl_period
        next_time = time.monotonic()
        while not self._stop_event.is_set():
            next_time += period
            try:
                self.tick_once()
            except Exception as e:
                self._throttled.error(f"tick() raised {type(e).__name__}: {e}", key='tick_error')
            delay = next_time - time.monotonic()
            if delay < 0.0:
                # 落后超过一个周期时重新对齐
                next_time = time.monotonic()
                delay = 0.0
            self._stop_event.wait(delay)

    # ==================== 状态查询 ====================

    def wait_for_planning(self, timeout: Optional[float] = None) -> bool:
        """等待最近一次异步规划完成 (同步规划时立即返回 True)"""
        with self._future_lock:
            future = self._plan_future
        if future is None:
            return True
        try:
            future.result(timeout)
        except FutureTimeoutError:
            return False
        return True

    @property
    def last_command(self) -> Optional[FlightCommand]:
        return self._last_command

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def dropped_messages(self) -> int:
        return self._dropped

    @property
    def pending_messages(self) -> int:
        return self._queue.qsize()
