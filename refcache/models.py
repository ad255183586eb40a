"""
Database models for the reference collections
SQLAlchemy ORM models for categories, tags, currencies and their media
"""
from datetime import datetime
from sqlalchemy import (
    Boolean, Column, Integer, String, DateTime, ForeignKey
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Media(Base):
    """
    Media entity - an uploaded image referenced by other collections
    """
    __tablename__ = "media"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url = Column(String, nullable=False)
    alt = Column(String, nullable=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)

    def __repr__(self):
        return f"<Media(id={self.id}, url='{self.url}')>"


class Category(Base):
    """
    Category entity - small, slug-addressed lookup collection
    """
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, nullable=True, index=True)
    description = Column(String, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    image_id = Column(Integer, ForeignKey("media.id"), nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    image = relationship("Media", lazy="joined")

    def __repr__(self):
        return f"<Category(id={self.id}, slug='{self.slug}')>"


class Tag(Base):
    """
    Tag entity - slug-addressed labels
    """
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, nullable=True, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Tag(id={self.id}, slug='{self.slug}')>"


class Currency(Base):
    """
    Currency entity - lookup table addressed by id only
    """
    __tablename__ = "currencies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(3), unique=True, nullable=False)
    name = Column(String, nullable=False)
    symbol = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<Currency(id={self.id}, code='{self.code}')>"
