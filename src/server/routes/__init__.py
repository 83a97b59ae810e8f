"""Route registration helpers."""

from .content import register_content_routes
from .interaction import register_interaction_routes
from .monitor import register_monitor_routes
from .sources import register_source_routes
from .system import register_system_routes

__all__ = [
    "register_content_routes",
    "register_interaction_routes",
    "register_monitor_routes",
    "register_source_routes",
    "register_system_routes",
]
