"""
Application layer wiring the plugin and execution subsystems.
"""

from .orchestrator import Orchestrator

__all__ = ['Orchestrator']
