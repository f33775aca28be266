"""
体素栅格上的路径搜索

加权 A* (26 邻域)，启发函数为欧氏距离乘以 heuristic_weight。
搜索得到体素中心序列后，首尾替换为精确的起点/终点，再做视线剪枝:
从当前关键点出发，保留最远的无碰撞可见点。

时间预算在扩展过程中检查 (每 CHECK_INTERVAL 次扩展一次)，
超时返回空列表。
"""
from typing import List, Optional
import heapq
import itertools
import logging
import math
import time

import numpy as np

from ..core.interfaces import IPathSearch, IOccupancyMap
from ..core.enums import VoxelState
from ..core.exceptions import SearchError

logger = logging.getLogger(__name__)

# 超时检查间隔 (扩展次数)
CHECK_INTERVAL = 256

# 26 邻域偏移及其代价
_OFFSETS = [d for d in itertools.product((-1, 0, 1), repeat=3) if d != (0, 0, 0)]
_STEP_COST = [math.sqrt(dx * dx + dy * dy + dz * dz) for dx, dy, dz in _OFFSETS]


class VoxelAStarSearch(IPathSearch):
    """
    加权 A* 路径搜索

    Args:
        heuristic_weight: 启发函数权重 (>= 1，越大越贪婪)
        prune: 是否做视线剪枝
    """

    def __init__(self, heuristic_weight: float = 1.5, prune: bool = True):
        self.heuristic_weight = max(1.0, float(heuristic_weight))
        self.prune = prune
        self.last_expansions = 0

    def find(self, start: np.ndarray, goal: np.ndarray,
             origin: np.ndarray, corner: np.ndarray,
             voxel_map: IOccupancyMap, timeout: float) -> List[np.ndarray]:
        start = np.asarray(start, dtype=float).reshape(3)
        goal = np.asarray(goal, dtype=float).reshape(3)
        if not (np.all(np.isfinite(start)) and np.all(np.isfinite(goal))):
            raise SearchError(f'non-finite search endpoints: {start.tolist()} -> {goal.tolist()}')
        deadline = time.monotonic() + max(0.0, float(timeout))
        self.last_expansions = 0

        if not self._inside(start, origin, corner) or not self._inside(goal, origin, corner):
            logger.debug("Start or goal outside search bounds")
            return []
        if voxel_map.query(start) != VoxelState.UNOCCUPIED \
                or voxel_map.query(goal) != VoxelState.UNOCCUPIED:
            logger.debug("Start or goal voxel is blocked")
            return []

        cells = self._search(start, goal, voxel_map, deadline)
        if cells is None:
            return []

        scale = voxel_map.get_scale()
        map_origin = voxel_map.get_origin()
        path = [start]
        for cell in cells[1:-1]:
            path.append(map_origin + (np.array(cell, dtype=float) + 0.5) * scale)
        path.append(goal)

        if self.prune and len(path) > 2:
            path = self._prune(path, voxel_map)
        logger.debug(f"A* finished: {self.last_expansions} expansions, {len(path)} waypoints")
        return path

    @staticmethod
    def _inside(point, origin, corner) -> bool:
        return bool(np.all(point >= origin) and np.all(point <= corner))

    def _search(self, start, goal, voxel_map, deadline) -> Optional[list]:
        grid = voxel_map.grid
        nx, ny, nz = grid.shape
        scale = voxel_map.get_scale()
        map_origin = voxel_map.get_origin()

        s = tuple(int(v) for v in np.floor((start - map_origin) / scale))
        g = tuple(int(v) for v in np.floor((goal - map_origin) / scale))
        if s == g:
            return [s, g]

        weight = self.heuristic_weight

        def heuristic(c):
            return weight * math.sqrt((c[0] - g[0]) ** 2 + (c[1] - g[1]) ** 2 + (c[2] - g[2]) ** 2)

        open_set = []
        counter = itertools.count()
        heapq.heappush(open_set, (heuristic(s), next(counter), s))
        came_from = {}
        g_score = {s: 0.0}
        closed = set()

        while open_set:
            _, _, current = heapq.heappop(open_set)
            if current in closed:
                continue
            closed.add(current)
            self.last_expansions += 1

            if self.last_expansions % CHECK_INTERVAL == 0 and time.monotonic() > deadline:
                logger.debug(f"A* timed out after {self.last_expansions} expansions")
                return None

            if current == g:
                cells = [current]
                while current in came_from:
                    current = came_from[current]
                    cells.append(current)
                return cells[::-1]

            cx, cy, cz = current
            base = g_score[current]
            for (dx, dy, dz), cost in zip(_OFFSETS, _STEP_COST):
                neighbor = (cx + dx, cy + dy, cz + dz)
                if neighbor in closed:
                    continue
                ix, iy, iz = neighbor
                if not (0 <= ix < nx and 0 <= iy < ny and 0 <= iz < nz):
                    continue
                if grid[ix, iy, iz] != VoxelState.UNOCCUPIED:
                    continue
                tentative_g = base + cost
                if tentative_g < g_score.get(neighbor, math.inf):
                    came_from[neighbor] = current
                    g_score[neighbor] = tentative_g
                    heapq.heappush(open_set, (tentative_g + heuristic(neighbor), next(counter), neighbor))

        logger.debug("A* exhausted the free space without reaching the goal")
        return None

    @staticmethod
    def segment_free(a: np.ndarray, b: np.ndarray, voxel_map: IOccupancyMap) -> bool:
        """以半个体素为间隔采样线段，检查是否全部自由"""
        length = float(np.linalg.norm(b - a))
        num = max(2, int(math.ceil(length / (0.5 * voxel_map.get_scale()))) + 1)
        samples = a + np.linspace(0.0, 1.0, num)[:, None] * (b - a)
        return bool(np.all(voxel_map.query_batch(samples) == VoxelState.UNOCCUPIED))

    def _prune(self, path: List[np.ndarray], voxel_map) -> List[np.ndarray]:
        pruned = [path[0]]
        i = 0
        last = len(path) - 1
        while i < last:
            j = last
            while j > i + 1 and not self.segment_free(path[i], path[j], voxel_map):
                j -= 1
            pruned.append(path[j])
            i = j
        return pruned
