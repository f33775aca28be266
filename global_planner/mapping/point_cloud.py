"""
点云帧解码

每个点占 point_step 字节，前 12 字节为 float32 的 x, y, z。
帧末尾不足一个点的字节被忽略；含 NaN/inf 坐标的点被丢弃。
"""
import logging

import numpy as np

from ..core.data_types import PointCloudFrame

logger = logging.getLogger(__name__)


def decode_points(frame: PointCloudFrame) -> np.ndarray:
    """
    解码点云帧为 (N, 3) float64 数组 (未过滤非有限值)

    Raises:
        ValueError: point_step 小于 12 或不是 4 的倍数
    """
    step = int(frame.point_step)
    if step < 12 or step % 4 != 0:
        raise ValueError(f'point_step must be a multiple of 4 and >= 12, got {step}')

    if isinstance(frame.data, np.ndarray) and frame.data.dtype == np.float32:
        raw = frame.data.reshape(-1)
    else:
        buffer = bytes(frame.data)
        usable = (len(buffer) // step) * step
        raw = np.frombuffer(buffer[:usable], dtype=np.float32)

    stride = step // 4
    count = raw.size // stride
    if count == 0:
        return np.zeros((0, 3))
    return raw[:count * stride].reshape(count, stride)[:, :3].astype(float)


def finite_points(frame: PointCloudFrame) -> np.ndarray:
    """解码并丢弃含非有限坐标的点"""
    points = decode_points(frame)
    mask = np.all(np.isfinite(points), axis=1)
    dropped = points.shape[0] - int(np.count_nonzero(mask))
    if dropped:
        logger.debug(f"Dropped {dropped} non-finite points")
    return points[mask]
