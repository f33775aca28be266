"""轨迹模块"""
from .trajectory import Piece, Trajectory
from .minco import MinJerkOpt
from .optimizer import PolytopeSFCOptimizer, forward_t, backward_t

__all__ = ['Piece', 'Trajectory', 'MinJerkOpt', 'PolytopeSFCOptimizer', 'forward_t', 'backward_t']
