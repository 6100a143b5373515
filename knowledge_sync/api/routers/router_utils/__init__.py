"""
Router utility functions.

Contains helpers shared by router endpoints to keep them clean.
"""

from knowledge_sync.api.routers.router_utils.error_handling import handle_pipeline_errors

__all__ = ["handle_pipeline_errors"]
