"""Executors perform built-in actions (read, write, edit, shell).

Public API:
    Executor       - Protocol every executor implements
    LocalExecutor  - Local filesystem and subprocess implementation
"""

from taskloop.executors.base import Executor
from taskloop.executors.local import LocalExecutor

__all__ = ["Executor", "LocalExecutor"]
