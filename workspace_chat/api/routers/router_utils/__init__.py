"""
Router utility functions.

Contains helper functions extracted from router endpoints to keep them clean.
"""

from workspace_chat.api.routers.router_utils.error_utils import client_ip, error_response

__all__ = ["client_ip", "error_response"]
