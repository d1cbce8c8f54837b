from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GiftBase(CamelModel):
    recipient_name: str
    greeting: str = ""
    message: str = ""
    images: list[str] = Field(default_factory=list)


class GiftRecord(GiftBase):
    """Stored representation. Never returned to clients as-is."""

    slug: str
    created_at: datetime
    edit_key: str

    def to_public(self) -> "GiftPublic":
        return GiftPublic(
            slug=self.slug,
            recipient_name=self.recipient_name,
            greeting=self.greeting,
            message=self.message,
            images=list(self.images),
            created_at=self.created_at,
        )

    def to_summary(self) -> "GiftSummary":
        return GiftSummary(
            slug=self.slug,
            recipient_name=self.recipient_name,
            created_at=self.created_at,
        )


class GiftPublic(GiftBase):
    slug: str
    created_at: datetime


class GiftSummary(CamelModel):
    slug: str
    recipient_name: str
    created_at: datetime


class GiftCreate(CamelModel):
    # extra fields (a client-minted editKey/createdAt) are ignored
    recipient_name: str | None = None
    greeting: str | None = None
    message: str | None = None
    images: list[str] | None = None
    slug: str | None = None

    @field_validator("recipient_name")
    @classmethod
    def _recipient_name_strip(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip()


class GiftUpdate(CamelModel):
    recipient_name: str | None = None
    greeting: str | None = None
    message: str | None = None
    images: list[str] | None = None

    @field_validator("recipient_name")
    @classmethod
    def _recipient_name_strip(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip()


class GiftCreated(CamelModel):
    slug: str
    edit_key: str


class GiftListRequest(CamelModel):
    slugs: list[str]


class UploadUrlRequest(CamelModel):
    filename: str = ""
    content_type: str = ""


class UploadUrlResponse(CamelModel):
    upload_url: str
    public_url: str


class RewriteRequest(CamelModel):
    text: str = ""


class RewriteResponse(CamelModel):
    rewritten_text: str
