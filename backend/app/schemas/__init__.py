"""Schemas package."""
from app.schemas.clickstream import ClickstreamEventIn, ClickstreamIngestResponse

__all__ = ["ClickstreamEventIn", "ClickstreamIngestResponse"]
