from enum import Enum as PyEnum
from typing import Type

from sqlalchemy import Enum


def str_enum(enum_cls: Type[PyEnum], name: str) -> Enum:
    """Enum column stored as VARCHAR of the member values."""
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )
