"""Chart models -- labeled series sharing one label axis."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from core.models.market import AssetSymbol


class ChartPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str = ""
    value: Decimal


class ChartSeries(BaseModel):
    """One asset's price series, ready for a line chart."""

    model_config = ConfigDict(frozen=True)

    asset: AssetSymbol
    name: str
    color: str
    points: list[ChartPoint] = Field(default_factory=list)

    @property
    def values(self) -> list[Decimal]:
        return [p.value for p in self.points]


class ChartData(BaseModel):
    """A multi-series chart. Every series has exactly len(labels) points."""

    model_config = ConfigDict(frozen=True)

    labels: list[str] = Field(default_factory=list)
    series: list[ChartSeries] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.series
