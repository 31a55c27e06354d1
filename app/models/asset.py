from sqlmodel import SQLModel, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum
from sqlalchemy import DateTime

from app.utils.timestamps import utcnow


class AssetCategory(str, Enum):
    code = "Code"
    video = "Video"
    audio = "Audio"
    plugins = "Plugins"
    graphics = "Graphics"
    mobile_apps = "Mobile Apps"
    themes = "Themes"
    assets_3d = "3D Assets"
    templates = "Templates"


class Asset(SQLModel, table=True):
    #main info
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=100)
    description: str = Field(max_length=1000)
    category: str = Field(index=True)

    #pricing
    price: float = Field(default=0, ge=0, index=True)
    original_price: Optional[float] = None
    rating: float = 0.0
    downloads: int = Field(default=0, ge=0)

    #files (object-store keys or absolute URLs)
    image: str
    file_url: Optional[str] = None
    file_size: Optional[str] = None
    file_type: Optional[str] = None

    #flags
    is_premium: bool = False
    is_trending: bool = False
    is_best_selling: bool = False
    is_featured: bool = False

    #author
    author_id: int = Field(foreign_key="user.id")
    author_name: str

    #tags
    tags: Optional[str] = None  # comma separated string

    #timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    @property
    def tag_list(self) -> List[str]:
        if not self.tags:
            return []
        return [t.strip() for t in self.tags.split(",") if t.strip()]
