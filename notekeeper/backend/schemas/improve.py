"""
Text Improvement Schemas.

Wire contract of the improve-text gateway. The request carries the raw
paragraph; the gateway wraps it in the instruction prompt.
"""

from pydantic import BaseModel, Field

DEFAULT_MAX_LENGTH = 512
DEFAULT_TEMPERATURE = 0.3


class ImproveRequest(BaseModel):
    """Body of POST /improve-text."""

    text: str | None = Field(
        default=None,
        description="Paragraph to improve",
        examples=["this is my note it has no punctuation"],
    )
    max_length: int = Field(
        default=DEFAULT_MAX_LENGTH,
        ge=1,
        le=4096,
        description="Upper bound on generated length",
    )
    temperature: float = Field(
        default=DEFAULT_TEMPERATURE,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )


class ImproveResponse(BaseModel):
    """Successful gateway answer."""

    generated_text: str
    success: bool = True
    model: str
    message: str | None = None
