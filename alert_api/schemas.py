"""Esquemas de respuesta HTTP."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class MetricSetOut(BaseModel):
    temperatureC: Optional[float] = None
    temperatureF: Optional[float] = None
    humidityPercent: Optional[float] = None
    stepCount: Optional[int] = None
    heartRateBpm: Optional[float] = None


class EventRecordOut(BaseModel):
    id: str
    eventType: str
    message: str = ""
    deviceTimestamp: Optional[int] = None
    receivedAt: int
    metrics: MetricSetOut = Field(default_factory=MetricSetOut)


class ChannelResultOut(BaseModel):
    channel: str
    destination: str
    ok: bool
    error: Optional[str] = None


class IngestResponse(BaseModel):
    ok: bool = True
    id: str
    kvOk: bool
    kvError: Optional[str] = None
    channels: List[ChannelResultOut] = Field(default_factory=list)


class RecentEventsResponse(BaseModel):
    ok: bool = True
    count: int
    items: List[EventRecordOut] = Field(default_factory=list)


class LastEventResponse(BaseModel):
    ok: bool = True
    last: Optional[EventRecordOut] = None
