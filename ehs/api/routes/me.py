"""Current user's permissions and navigation."""
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ehs.auth.ability import Ability
from ehs.auth.models import SessionUser
from ehs.auth.roles import (
    get_permissions,
    get_role_description,
    get_role_display_name,
    get_visible_nav_items,
)
from ehs.dependencies import get_ability, get_current_user

router = APIRouter(prefix="/api/me", tags=["me"])


class PermissionsResponse(BaseModel):
    role: Optional[str]
    role_display_name: str
    role_description: str
    is_superadmin: bool
    is_support: bool
    permissions: dict[str, bool]
    navigation: dict[str, bool]
    rules: list[dict[str, Any]]


@router.get("/permissions", response_model=PermissionsResponse)
def my_permissions(
    user: Annotated[SessionUser, Depends(get_current_user)],
    ability: Annotated[Ability, Depends(get_ability)],
) -> PermissionsResponse:
    """Permission flags, visible navigation and ability rules for the UI."""
    return PermissionsResponse(
        role=user.role.value if user.role else None,
        role_display_name=get_role_display_name(user.role),
        role_description=get_role_description(user.role),
        is_superadmin=user.is_superadmin,
        is_support=user.is_support,
        permissions={p.value: granted for p, granted in get_permissions(user.role).items()},
        navigation=get_visible_nav_items(user.role),
        rules=ability.to_rules(),
    )
