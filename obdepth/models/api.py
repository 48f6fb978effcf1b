"""crypto-chassis market-depth API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Timestamp(BaseModel):
    seconds: int
    iso: str = ""


class DepthUrlWindow(BaseModel):
    """One time-windowed, signed download link."""

    start_time: Timestamp | None = Field(default=None, alias="startTime")
    end_time: Timestamp | None = Field(default=None, alias="endTime")
    url: str

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class MarketDepthResponse(BaseModel):
    """Body of GET /market-depth/{market}/{pair}?startTime=YYYY-MM-DD."""

    urls: list[DepthUrlWindow]
    expiration: str = ""

    model_config = ConfigDict(extra="ignore", frozen=True)
