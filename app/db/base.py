"""Declarative base shared by every SQLAlchemy model."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    # Models annotate plain Column() attributes for editors, not Mapped[].
    __allow_unmapped__ = True
