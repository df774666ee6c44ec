"""Request bodies accepted by the MFA endpoints, validated once at the edge."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _Request(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
    )


class ProvisionRequest(_Request):
    user_label: str = Field(alias="userLabel", min_length=1, max_length=255)


class VerifyRequest(_Request):
    secret_text: str = Field(alias="secretText", min_length=1, max_length=256)
    # Format is checked by the core so malformed codes are classified, not 422'd.
    submitted_code: str = Field(alias="submittedCode", max_length=64)
    claimed_user_id: str = Field(alias="claimedUserId", min_length=1, max_length=64)


class ChallengeRequest(_Request):
    submitted_code: str = Field(alias="submittedCode", max_length=64)
    claimed_user_id: str = Field(alias="claimedUserId", min_length=1, max_length=64)


class DisableRequest(_Request):
    claimed_user_id: str = Field(alias="claimedUserId", min_length=1, max_length=64)
