from pydantic import BaseModel, Field
from typing import Literal, List, Optional
from datetime import datetime

from app.models.asset import AssetCategory


class AssetCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    category: AssetCategory
    price: float = Field(0, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    type: Literal["free", "premium"]
    tags: Optional[str] = None

    image: str
    file_url: Optional[str] = None
    file_size: Optional[str] = None
    file_type: Optional[str] = None

    is_trending: bool = False
    is_best_selling: bool = False
    is_featured: bool = False


class AssetUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    category: Optional[AssetCategory] = None
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    tags: Optional[str] = None

    image: Optional[str] = None
    file_url: Optional[str] = None

    is_trending: Optional[bool] = None
    is_best_selling: Optional[bool] = None
    is_featured: Optional[bool] = None


class AssetResponse(BaseModel):
    id: int
    title: str
    description: str
    category: str
    price: float
    original_price: Optional[float]
    rating: float
    downloads: int
    image: str
    is_premium: bool
    is_trending: bool
    is_best_selling: bool
    is_featured: bool
    tags: List[str]
    author_id: int
    author_name: str
    file_size: Optional[str]
    file_type: Optional[str]
    created_at: datetime
    updated_at: datetime


class DownloadResponse(BaseModel):
    asset_id: int
    download_url: Optional[str]
    message: str = "Download started"
