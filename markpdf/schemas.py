from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

Channel = Annotated[int, Field(ge=0, le=255)]
RGB = tuple[Channel, Channel, Channel]


class StyleSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    font: str | None = None
    size: float | None = Field(default=None, gt=0)
    spacing: float | None = Field(default=None, ge=0)
    bold: bool | None = None
    italic: bool | None = None
    underline: bool | None = None
    text_color: RGB | None = None
    fill_color: RGB | None = None


class ThemeFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base: Literal["light", "dark"] = "light"
    background: RGB | None = None
    styles: dict[str, StyleSpec] = Field(default_factory=dict)
