from evcharge.api.app import create_app
from evcharge.api.auth import TokenRegistry

__all__ = ["create_app", "TokenRegistry"]
