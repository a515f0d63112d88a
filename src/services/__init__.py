"""Services package."""
from src.services import (
    activity_service,
    auth_service,
    rbac_seed_service,
    rbac_service,
    stores,
)

__all__ = [
    "activity_service",
    "auth_service",
    "rbac_seed_service",
    "rbac_service",
    "stores",
]
