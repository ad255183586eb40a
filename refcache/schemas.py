"""
Pydantic schemas for cached DTOs and API request models
DTOs are frozen: the caches replace them, never mutate them
"""
from pydantic import BaseModel
from typing import Optional


# ===== SHARED =====

class ImageDTO(BaseModel):
    """Image fields of a media record"""
    src: Optional[str] = None
    alt: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None

    class Config:
        from_attributes = True
        frozen = True


# ===== CATEGORY SCHEMAS =====

class CategoryDTO(BaseModel):
    """Cached category"""
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    sort_order: int = 0
    image: Optional[ImageDTO] = None

    class Config:
        from_attributes = True
        frozen = True


class CategoryCreate(BaseModel):
    """Payload for creating a category"""
    name: str
    slug: Optional[str] = None
    description: Optional[str] = None
    sort_order: int = 0
    image_id: Optional[int] = None


class CategoryUpdate(BaseModel):
    """Partial category update"""
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    sort_order: Optional[int] = None
    image_id: Optional[int] = None


# ===== TAG SCHEMAS =====

class TagDTO(BaseModel):
    """Cached tag"""
    id: int
    name: str
    slug: str

    class Config:
        from_attributes = True
        frozen = True


# ===== CURRENCY SCHEMAS =====

class CurrencyDTO(BaseModel):
    """Cached currency"""
    id: int
    code: str
    name: str
    symbol: Optional[str] = None

    class Config:
        from_attributes = True
        frozen = True


# ===== CACHE ADMIN SCHEMAS =====

class InvalidateRequest(BaseModel):
    """Manual invalidation of one service's cache"""
    service: str
    id: Optional[int] = None
