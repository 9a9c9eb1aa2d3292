"""Profile returned by the federated identity provider (Microsoft Graph /me shape)."""

from pydantic import BaseModel, ConfigDict, Field


class FederatedProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    display_name: str | None = Field(default=None, alias="displayName")
    mail: str | None = None
    user_principal_name: str | None = Field(default=None, alias="userPrincipalName")

    def normalized_email(self) -> str | None:
        """mail if present, else userPrincipalName; stripped and lower-cased."""
        for candidate in (self.mail, self.user_principal_name):
            if candidate and candidate.strip():
                return candidate.strip().lower()
        return None
