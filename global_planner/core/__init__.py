"""核心模块"""
from .enums import MapLifecycle, GoalState, VoxelState, PlanStatus, TelemetryChannel
from .data_types import (
    PlannerContext, PointCloudFrame, GoalRequest, TrajectorySnapshot, FlightCommand,
)
from .interfaces import (
    IOccupancyMap, IPathSearch, ICorridorBuilder, ITrajectoryOptimizer,
    IFlatnessMap, ITelemetrySink,
)
from .constants import (
    EPSILON, EPSILON_SMALL, MIN_SEGMENT_LENGTH,
    TRAJECTORY_DEGREE, TRAJECTORY_COEFF_NUM, MIN_PIECE_DURATION,
    OVERLAP_EPSILON, BOUNDARY_EPSILON, START_GOAL_MARKER_RADIUS,
    tilt_from_quaternion, smoothed_l1,
)
from .exceptions import (
    PlannerError, ConfigurationError, ConfigValidationError,
    ComponentError, InitializationError,
    PlanningError, SearchError, CorridorError, SolverError,
)
