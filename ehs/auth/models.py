"""Pydantic models for authentication."""
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .roles import Role, normalize_role


class SessionUser(BaseModel):
    """Authenticated user as carried in the session token."""

    id: UUID = Field(..., description="User UUID from token sub claim")
    email: str = Field("", description="User email address")
    name: Optional[str] = Field(None, description="Display name")
    tenant_id: Optional[UUID] = Field(None, description="Currently selected tenant")
    tenant_name: Optional[str] = Field(None, description="Name of the selected tenant")
    role: Optional[Role] = Field(None, description="Role within the selected tenant")
    department: Optional[str] = Field(None, description="Department within the tenant")
    is_superadmin: bool = Field(False, description="Cross-tenant platform operator")
    is_support: bool = Field(False, description="Cross-tenant support operator")
    has_multiple_tenants: bool = Field(False, description="User belongs to more than one tenant")

    @field_validator("role", mode="before")
    @classmethod
    def _coerce_role(cls, value: Any) -> Optional[Role]:
        # Unknown roles degrade to no role rather than rejecting the session.
        return normalize_role(value)

    @property
    def is_operator(self) -> bool:
        """Superadmin or support staff."""
        return self.is_superadmin or self.is_support

    @property
    def needs_tenant_selection(self) -> bool:
        return self.has_multiple_tenants and self.tenant_id is None


class TenantMembership(BaseModel):
    """A tenant the user belongs to, with their role in it."""

    tenant_id: UUID
    tenant_name: str
    tenant_slug: str
    status: str
    role: Role
    department: Optional[str] = None
