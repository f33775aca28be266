"""规划管线模块"""
from .state_machine import GoalStateMachine, MapLatch
from .pipeline import PlanningPipeline
from .node import PlannerNode

__all__ = ['GoalStateMachine', 'MapLatch', 'PlanningPipeline', 'PlannerNode']
