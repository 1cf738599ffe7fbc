from . import auth, connect_to_services, logging

__all__ = [
    "auth",
    "connect_to_services",
    "logging",
]
