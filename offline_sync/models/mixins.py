"""
Base model for entities managed through an offline table.
"""

import uuid

from sqlmodel import Field, SQLModel


class OfflineEntity(SQLModel):
    """
    Base for locally stored entities that sync through the operations queue.

    The only capability the offline table relies on is a string ``id``.

    Usage:
        class TodoItem(OfflineEntity, table=True):
            __tablename__ = "todo_items"
            title: str
            done: bool = False
    """

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        max_length=255,
        description="Entity id shared with the remote table"
    )
