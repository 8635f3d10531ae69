"""Request payloads accepted by the HTTP surface.

Field names follow the web client's camelCase wire format through aliases.
Identity fields (creator, reporter, author emails) are never accepted from the
body; they come from the verified bearer token.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from app.schema.documents import ReportStatus

MAX_TEXT_CHARS = 10_000


class _WireModel(BaseModel):
  # Unknown keys (e.g. a client-sent `creatorEmail`) are dropped rather than rejected.
  model_config = ConfigDict(populate_by_name=True, extra="ignore")


class LessonCreateRequest(_WireModel):
  title: StrictStr = Field(min_length=1, max_length=200)
  description: StrictStr = Field(min_length=1, max_length=MAX_TEXT_CHARS)
  category: StrictStr = Field(min_length=1)
  emotional_tone: StrictStr = Field(min_length=1, alias="emotionalTone")
  image: StrictStr | None = None
  privacy: StrictStr = "public"
  access_level: StrictStr = Field(default="free", alias="accessLevel")


class LessonUpdateRequest(_WireModel):
  """Partial lesson edit. Only fields present in the body are applied."""

  title: StrictStr | None = Field(default=None, min_length=1, max_length=200)
  description: StrictStr | None = Field(default=None, min_length=1, max_length=MAX_TEXT_CHARS)
  category: StrictStr | None = None
  emotional_tone: StrictStr | None = Field(default=None, alias="emotionalTone")
  image: StrictStr | None = None
  privacy: StrictStr | None = None
  access_level: StrictStr | None = Field(default=None, alias="accessLevel")

  @field_validator("title", "description", "category", "emotional_tone", "privacy", "access_level")
  @classmethod
  def _reject_null(cls, value: str | None) -> str | None:
    # Omitting a field leaves it unchanged; only `image` may be cleared.
    if value is None:
      raise ValueError("Field cannot be null")
    return value


class UserLoginRequest(_WireModel):
  name: StrictStr | None = None
  photo_url: StrictStr | None = Field(default=None, alias="photoURL")


class FavoriteRequest(_WireModel):
  lesson_id: StrictStr = Field(min_length=1, alias="lessonId")


class ReportRequest(_WireModel):
  lesson_id: StrictStr = Field(min_length=1, alias="lessonId")
  reason: StrictStr = Field(min_length=1, max_length=2000)
  reporter_name: StrictStr | None = Field(default=None, alias="reporterName")


class ReportStatusUpdate(_WireModel):
  status: ReportStatus


class CommentRequest(_WireModel):
  lesson_id: StrictStr = Field(min_length=1, alias="lessonId")
  comment: StrictStr = Field(min_length=1, max_length=2000)


class CheckoutSessionRequest(_WireModel):
  amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
  display_name: StrictStr = Field(default="Premium Membership", min_length=1, alias="displayName")
  customer_email: StrictStr | None = Field(default=None, alias="customerEmail")
