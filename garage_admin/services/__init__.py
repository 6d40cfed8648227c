"""
REST collaborators for the garage admin core.
"""

from .auth_session import AuthSession
from .api_client import ApiError, AuthApiClient, EntityApiClient, StatisticsApiClient

__all__ = [
    "AuthSession",
    "ApiError",
    "AuthApiClient",
    "EntityApiClient",
    "StatisticsApiClient",
]
