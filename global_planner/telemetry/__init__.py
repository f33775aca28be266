"""遥测模块"""
from .publisher import TelemetryPublisher

__all__ = ['TelemetryPublisher']
