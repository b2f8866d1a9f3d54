"""
Thai CPI monthly change records.
"""

from sqlalchemy import Column, Float, Index, Integer, String

from .db_base import Base, TimestampMixin, UUIDMixin


class InflationIndex(Base, UUIDMixin, TimestampMixin):
    """Monthly CPI change in percent. Several rows per period are allowed; the newest wins."""

    __tablename__ = "inflation_index"

    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    rate_pct = Column(Float, nullable=False)
    source = Column(String(100), nullable=False, default="manual")

    __table_args__ = (Index("ix_inflation_period", "year", "month"),)
