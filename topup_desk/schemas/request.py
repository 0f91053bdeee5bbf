"""
Pydantic schemas for replacement and change-access requests.
"""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from topup_desk.models.enums import RequestType, ReviewStatus


class AccountRequestCreate(BaseModel):
    request_type: RequestType
    ad_account_id: int
    email: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def change_access_needs_email(self):
        if self.request_type == RequestType.CHANGE_ACCESS and not self.email:
            raise ValueError("change-access requests need the new access email")
        return self


class AccountRequestResponse(BaseModel):
    id: int
    user_id: int
    ad_account_id: int | None
    request_type: RequestType
    email: str | None
    description: str | None
    status: ReviewStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RequestSubmissionResponse(BaseModel):
    request: AccountRequestResponse
    notification_sent: bool
