from pydantic import BaseModel, Field


class GenerateIn(BaseModel):
    image: str = Field(min_length=1, description="Base64 image or data URL")
    media_type: str | None = None  # overrides the type declared in a data URL
    instructions: str | None = None  # clothing, e.g. "navy blazer and white shirt"


class GenerateOut(BaseModel):
    image_data_url: str


class GenerationErrorOut(BaseModel):
    kind: str
    message: str
    retry_after_seconds: int | None = None


class CooldownOut(BaseModel):
    remaining_seconds: int
    cooling: bool


class HistoryOut(BaseModel):
    items: list[str]
