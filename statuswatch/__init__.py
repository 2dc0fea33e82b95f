"""
statuswatch: tracks files through an import directory and a failed directory.

Reconciles directory contents with persisted status records on a fixed
polling interval and applies time-based cleanup rules.
"""

__version__ = "0.1.0"
