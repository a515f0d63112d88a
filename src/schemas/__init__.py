"""Pydantic schemas package."""
from src.schemas.activity import (
    ActivityLogListResponse,
    ActivityLogSchema,
    ActivityStatsResponse,
)
from src.schemas.auth import AuthResponse, LoginRequest, SessionUserResponse
from src.schemas.common import HealthResponse, MessageResponse
from src.schemas.rbac import (
    CapabilityCheckResponse,
    CustomPermissionsSchema,
    GrantSchema,
    PermissionGroupSchema,
    PermissionSchema,
    RoleCreateSchema,
    RolePermissionsUpdateSchema,
    RoleSchema,
    RoleSummarySchema,
    UserRoleAssignmentSchema,
)
from src.schemas.user import PasswordReset, UserCreate, UserResponse

__all__ = [
    "ActivityLogListResponse",
    "ActivityLogSchema",
    "ActivityStatsResponse",
    "AuthResponse",
    "CapabilityCheckResponse",
    "CustomPermissionsSchema",
    "GrantSchema",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "PasswordReset",
    "PermissionGroupSchema",
    "PermissionSchema",
    "RoleCreateSchema",
    "RolePermissionsUpdateSchema",
    "RoleSchema",
    "RoleSummarySchema",
    "SessionUserResponse",
    "UserCreate",
    "UserResponse",
    "UserRoleAssignmentSchema",
]
