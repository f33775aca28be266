"""
体素占据栅格地图

地图由包围盒下角点 origin、体素边长 scale 和各轴体素数量 size 定义。
体素状态:
    UNOCCUPIED (0): 自由
    OCCUPIED   (1): 被点云直接占据
    DILATED    (2): 膨胀产生的占据

索引约定: grid[ix, iy, iz]，ix = floor((x - origin_x) / scale)。
包围盒外的点写入时被忽略，查询时视为 OCCUPIED。
"""
from typing import Tuple
import logging

import numpy as np
from scipy import ndimage

from ..core.interfaces import IOccupancyMap
from ..core.enums import VoxelState
from ..core.exceptions import InitializationError

logger = logging.getLogger(__name__)


class VoxelMap(IOccupancyMap):
    """
    三维体素地图

    Args:
        size: 各轴体素数量 (nx, ny, nz)
        origin: 包围盒下角点
        scale: 体素边长
    """

    def __init__(self, size: Tuple[int, int, int], origin, scale: float):
        size = tuple(int(n) for n in size)
        if len(size) != 3 or min(size) < 1:
            raise InitializationError(f'体素地图尺寸无效: {size}')
        if scale <= 0:
            raise InitializationError(f'体素边长必须大于 0: {scale}')

        self._size = np.array(size, dtype=int)
        self._origin = np.asarray(origin, dtype=float).reshape(3).copy()
        self._scale = float(scale)
        self._corner = self._origin + self._scale * self._size
        self._grid = np.zeros(size, dtype=np.uint8)
        self._surface = None

    @classmethod
    def from_context(cls, context) -> 'VoxelMap':
        """由 PlannerContext 构建空地图"""
        return cls(context.map_size, context.map_origin, context.voxel_width)

    # ==================== 索引 ====================

    def _to_index(self, points: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """点坐标 -> (体素索引 (N, 3), 是否在包围盒内 (N,))"""
        idx = np.floor((points - self._origin) / self._scale).astype(np.int64)
        inside = np.all((idx >= 0) & (idx < self._size), axis=1)
        return idx, inside

    def index_to_position(self, index) -> np.ndarray:
        """体素索引 -> 体素中心坐标"""
        return self._origin + (np.asarray(index, dtype=float) + 0.5) * self._scale

    # ==================== 写入 ====================

    def set_occupied(self, point: np.ndarray) -> None:
        self.set_occupied_batch(np.asarray(point, dtype=float).reshape(1, 3))

    def set_occupied_batch(self, points: np.ndarray) -> int:
        """
        批量标记占据

        Returns:
            落在包围盒内的点数
        """
        points = np.asarray(points, dtype=float).reshape(-1, 3)
        if points.shape[0] == 0:
            return 0
        idx, inside = self._to_index(points)
        idx = idx[inside]
        self._grid[idx[:, 0], idx[:, 1], idx[:, 2]] = VoxelState.OCCUPIED
        self._surface = None
        return int(idx.shape[0])

    def dilate(self, steps: int) -> None:
        """
        以 26 邻域立方体结构元膨胀 steps 层

        新增的体素标记为 DILATED，原有 OCCUPIED 体素不变。
        """
        if steps <= 0:
            return
        occupied = self._grid != VoxelState.UNOCCUPIED
        if not occupied.any():
            return
        structure = np.ones((3, 3, 3), dtype=bool)
        dilated = ndimage.binary_dilation(occupied, structure=structure, iterations=int(steps))
        self._grid[dilated & ~occupied] = VoxelState.DILATED
        self._surface = None
        logger.debug(f"Dilated map by {steps} voxels: "
                     f"{int(np.count_nonzero(dilated))} blocked voxels")

    # ==================== 查询 ====================

    def query(self, point: np.ndarray) -> int:
        return int(self.query_batch(np.asarray(point, dtype=float).reshape(1, 3))[0])

    def query_batch(self, points: np.ndarray) -> np.ndarray:
        """批量查询体素状态，包围盒外为 OCCUPIED"""
        points = np.asarray(points, dtype=float).reshape(-1, 3)
        idx, inside = self._to_index(points)
        states = np.full(points.shape[0], VoxelState.OCCUPIED, dtype=np.uint8)
        valid = idx[inside]
        states[inside] = self._grid[valid[:, 0], valid[:, 1], valid[:, 2]]
        return states

    def is_occupied(self, point: np.ndarray) -> bool:
        """体素是否被占据 (含膨胀)"""
        return self.query(point) != VoxelState.UNOCCUPIED

    def is_free_index(self, index) -> bool:
        """按索引查询是否自由 (索引越界视为占据)"""
        ix, iy, iz = index
        if not (0 <= ix < self._size[0] and 0 <= iy < self._size[1] and 0 <= iz < self._size[2]):
            return False
        return self._grid[ix, iy, iz] == VoxelState.UNOCCUPIED

    def get_surface(self) -> np.ndarray:
        """
        障碍物表面体素中心

        表面体素: 被占据且 6 邻域内至少有一个自由体素。地图边界之外视为占据，
        因此贴着包围盒的障碍物内侧不会被当作表面。
        """
        if self._surface is None:
            blocked = self._grid != VoxelState.UNOCCUPIED
            cross = ndimage.generate_binary_structure(3, 1)
            interior = ndimage.binary_erosion(blocked, structure=cross, border_value=1)
            idx = np.argwhere(blocked & ~interior)
            self._surface = self.index_to_position(idx) if idx.size else np.zeros((0, 3))
        return self._surface

    # ==================== 属性 ====================

    def get_origin(self) -> np.ndarray:
        return self._origin.copy()

    def get_corner(self) -> np.ndarray:
        return self._corner.copy()

    def get_scale(self) -> float:
        return self._scale

    def get_size(self) -> Tuple[int, int, int]:
        return tuple(int(n) for n in self._size)

    @property
    def grid(self) -> np.ndarray:
        """只读网格视图"""
        view = self._grid.view()
        view.setflags(write=False)
        return view

    def count(self, state: VoxelState) -> int:
        return int(np.count_nonzero(self._grid == state))
