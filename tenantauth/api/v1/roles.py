"""Read-only view of the cached role -> permission map (requires adminsettings)."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request

from tenantauth.api.v1.auth import require_permission
from tenantauth.core.permissions import PermissionCode
from tenantauth.schemas.auth import UserDetails
from tenantauth.schemas.envelope import success_response
from tenantauth.services.permission_cache import PermissionCache

router = APIRouter()


def get_permission_cache(request: Request) -> PermissionCache:
    return request.app.state.permission_cache


@router.get("/permissions")
def cached_role_permissions(
    _admin: Annotated[
        UserDetails, Depends(require_permission(PermissionCode.ADMIN_SETTINGS.value))
    ],
    cache: Annotated[PermissionCache, Depends(get_permission_cache)],
) -> dict[str, Any]:
    snapshot = cache.snapshot()
    return success_response(
        data={
            "loaded": cache.loaded,
            "refreshedAt": cache.last_refreshed_at.isoformat() if cache.last_refreshed_at else None,
            "roles": {str(role_id): sorted(codes) for role_id, codes in snapshot.items()},
        }
    )


@router.get("/permissions/effective")
def effective_permissions(
    role_ids: Annotated[list[int], Query(alias="roleId")],
    _admin: Annotated[
        UserDetails, Depends(require_permission(PermissionCode.ADMIN_SETTINGS.value))
    ],
    cache: Annotated[PermissionCache, Depends(get_permission_cache)],
) -> dict[str, Any]:
    """Union of the cached permissions of the given roles, as a user holding them all would get."""
    return success_response(
        data={"roleIds": role_ids, "permissions": cache.permissions_for_roles(role_ids)}
    )


@router.get("/{role_id}/permissions/{permission_code}")
def check_role_access(
    role_id: int,
    permission_code: str,
    _admin: Annotated[
        UserDetails, Depends(require_permission(PermissionCode.ADMIN_SETTINGS.value))
    ],
    cache: Annotated[PermissionCache, Depends(get_permission_cache)],
) -> dict[str, Any]:
    """Single-role check served from the cache snapshot; no database access."""
    return success_response(
        data={
            "roleId": role_id,
            "permission": permission_code,
            "allowed": cache.check_access(role_id, permission_code),
            "rolePermissions": sorted(cache.permissions_for(role_id)),
        }
    )
