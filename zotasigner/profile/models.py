# zotasigner/profile/models.py: merchant credential profile

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ZotaProfile(BaseModel):
    """
    Merchant credentials for one Zota environment.

    Stored under camelCase keys (``merchantId``, ``apiBase``...) so that saved
    project data stays readable by other tooling; attribute access is snake_case.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    name: str = Field(min_length=1, max_length=128)
    merchant_id: str = Field(default="", alias="merchantId")
    merchant_secret_key: str = Field(default="", alias="merchantSecretKey")
    # e.g. https://api.zotapay-stage.com or https://api.zotapay.com
    api_base: str = Field(default="", alias="apiBase")
    default_endpoint_id: Optional[str] = Field(default=None, alias="defaultEndpointId")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("profile name must not be blank")
        return v

    @field_validator("merchant_id", "merchant_secret_key", "api_base", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return "" if v is None else v

    def to_storage(self) -> dict:
        return self.model_dump(by_alias=True)
