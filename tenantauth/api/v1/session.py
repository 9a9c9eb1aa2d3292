"""Current session: the identity and permissions resolved by the authenticator."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from tenantauth.api.v1.auth import get_current_user
from tenantauth.schemas.auth import UserDetails
from tenantauth.schemas.envelope import success_response

router = APIRouter()


@router.get("")
def fetch_profile(
    current_user: Annotated[UserDetails, Depends(get_current_user)],
) -> dict[str, Any]:
    return success_response(
        data=current_user.model_dump(mode="json", by_alias=True),
        message="Session Data Fetched Successfully",
    )
