"""
Read-only monitoring API for tracked file statuses.
"""

from .server import create_monitor_app, run_monitor_server

__all__ = ["create_monitor_app", "run_monitor_server"]
