from __future__ import annotations


from sqlalchemy import Boolean, Column, Integer, Text
from sqlalchemy.orm import declarative_base


Base = declarative_base()


class Url(Base):
    __tablename__ = "urls"

    id = Column(Integer, primary_key=True)
    url = Column(Text, nullable=False)
    # The same URL may be stored many times; rows are an append-only log.
    visited = Column(Boolean, nullable=False, default=False)
