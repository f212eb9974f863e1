"""
Delta token model.

Stores one incremental-sync watermark per table/query combination.
"""

from sqlalchemy import BigInteger, Column
from sqlmodel import Field, SQLModel


class DeltaToken(SQLModel, table=True):
    """
    Persisted delta token.

    The timestamp is kept as UTC file-time ticks rather than a datetime column
    because SQLite does not preserve UTC offsets.
    """
    __tablename__ = "delta_tokens"

    token_id: str = Field(primary_key=True, max_length=255, description="Table/query key")
    timestamp: int = Field(
        default=0,
        sa_column=Column(BigInteger, nullable=False, default=0),
        description="Watermark in file-time ticks"
    )
