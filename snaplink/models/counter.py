from sqlalchemy import BigInteger, Column, String

from snaplink.database.connection import Base


class CounterRow(Base):
    """Named durable sequence, used by the database counter backend"""
    __tablename__ = "counters"

    name = Column(String(64), primary_key=True)
    value = Column(BigInteger, nullable=False, default=0)
