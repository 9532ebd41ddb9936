"""Lead data models."""

import re
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError, field_validator

from leadintake.uploads.models import UploadTags

E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")


class LeadSubmission(BaseModel):
    """Validated contact fields of a lead-capture form."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    lead_id: str = Field(default_factory=lambda: str(uuid4()))
    email: EmailStr
    mobile: str
    first_name: str = Field(..., alias="firstName", min_length=1)
    last_name: str = Field(..., alias="lastName", min_length=1)
    enquiry: str = Field(..., min_length=1)

    @field_validator("mobile")
    @classmethod
    def validate_mobile(cls, value: str) -> str:
        if not E164_PATTERN.match(value):
            raise ValueError("must be an E.164 phone number")
        return value

    def upload_tags(self) -> UploadTags:
        """Metadata attached to every attachment of this lead."""
        return UploadTags(
            lead=self.lead_id,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            mobile=self.mobile,
        )


class LeadResponse(BaseModel):
    """Response model for an accepted lead."""

    lead_id: str
    enquiry: str
    attachments: list[str]


def format_validation_errors(error: ValidationError) -> str:
    """Render pydantic errors as a field-level bullet list."""
    lines = []
    for item in error.errors():
        field_name = ".".join(str(part) for part in item["loc"]) or "body"
        lines.append(f"- {field_name}: {item['msg']}")
    return "Invalid field values:\n" + "\n".join(lines)
