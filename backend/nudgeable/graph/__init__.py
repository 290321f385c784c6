"""Workflow graphs."""
from .workflow import create_evaluation_workflow, route_after_parse

__all__ = ["create_evaluation_workflow", "route_after_parse"]
