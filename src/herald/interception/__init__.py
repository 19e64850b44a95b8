"""Operation interception point that triggers notification dispatch."""

from herald.interception.interceptor import (
    NotificationInterceptor,
    actor_context,
    create_interceptor,
    current_actor_id,
)

__all__ = [
    "NotificationInterceptor",
    "actor_context",
    "create_interceptor",
    "current_actor_id",
]
