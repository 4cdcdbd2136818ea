"""
API routes for the BaaS proxy
"""

from . import health, subscriptions, variables, workflows

__all__ = ["health", "subscriptions", "variables", "workflows"]
