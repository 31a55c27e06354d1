import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select

from app.database import get_session
from app.models.asset import Asset, AssetCategory
from app.models.user import User
from app.schemas.asset_schemas import AssetResponse, DownloadResponse
from app.services import entitlement_service
from app.services.r2_helper import to_download_url
from app.utils.errors import ForbiddenError, NotFoundError
from app.utils.pagination import paginate
from app.utils.token import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()

HIGHLIGHT_LIMIT = 8

SORTS = {
    "popular": Asset.downloads.desc(),
    "newest": Asset.created_at.desc(),
    "price-low": Asset.price.asc(),
    "price-high": Asset.price.desc(),
    "rating": Asset.rating.desc(),
}


def asset_to_dict(asset: Asset) -> dict:
    # file_url stays private: it is only handed out by the download route
    return AssetResponse(
        id=asset.id,
        title=asset.title,
        description=asset.description,
        category=asset.category,
        price=asset.price,
        original_price=asset.original_price,
        rating=asset.rating,
        downloads=asset.downloads,
        image=asset.image,
        is_premium=asset.is_premium,
        is_trending=asset.is_trending,
        is_best_selling=asset.is_best_selling,
        is_featured=asset.is_featured,
        tags=asset.tag_list,
        author_id=asset.author_id,
        author_name=asset.author_name,
        file_size=asset.file_size,
        file_type=asset.file_type,
        created_at=asset.created_at,
        updated_at=asset.updated_at,
    ).model_dump()


def _highlight(session: Session, *conditions, order_by=None):
    query = select(Asset).where(*conditions)
    if order_by is not None:
        query = query.order_by(order_by)
    assets = session.exec(query.limit(HIGHLIGHT_LIMIT)).all()
    return {"assets": [asset_to_dict(a) for a in assets]}


# ---------- LIST / SEARCH ----------
@router.get("")
def list_assets(
    category: Optional[str] = None,
    search: Optional[str] = None,
    price_filter: Optional[Literal["free", "paid"]] = Query(None, alias="priceFilter"),
    sort_by: str = Query("popular", alias="sortBy"),
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    session: Session = Depends(get_session),
):
    query = select(Asset)

    if category and category != "All Categories":
        query = query.where(Asset.category == category)

    if search:
        like = f"%{search}%"
        query = query.where(
            Asset.title.ilike(like) |
            Asset.description.ilike(like) |
            Asset.tags.ilike(like) |
            Asset.author_name.ilike(like)
        )

    if price_filter == "free":
        query = query.where(Asset.price == 0)
    elif price_filter == "paid":
        query = query.where(Asset.price > 0)

    query = query.order_by(SORTS.get(sort_by, SORTS["popular"]), Asset.id.desc())

    return paginate(session=session, query=query, page=page, limit=limit, transform=asset_to_dict)


@router.get("/featured")
def featured_assets(session: Session = Depends(get_session)):
    return _highlight(session, Asset.is_featured == True)  # noqa: E712


@router.get("/trending")
def trending_assets(session: Session = Depends(get_session)):
    return _highlight(session, Asset.is_trending == True)  # noqa: E712


@router.get("/bestselling")
def best_selling_assets(session: Session = Depends(get_session)):
    return _highlight(session, Asset.is_best_selling == True)  # noqa: E712


@router.get("/free")
def free_assets(session: Session = Depends(get_session)):
    return _highlight(session, Asset.price == 0, order_by=Asset.downloads.desc())


@router.get("/categories")
def categories():
    return {"categories": [c.value for c in AssetCategory]}


@router.get("/{asset_id}")
def get_asset(asset_id: int, session: Session = Depends(get_session)):
    asset = session.get(Asset, asset_id)
    if not asset:
        raise NotFoundError("Asset not found")
    return {"asset": asset_to_dict(asset)}


# ---------- DOWNLOAD ----------
@router.post("/{asset_id}/download", response_model=DownloadResponse)
def download_asset(
    asset_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    asset = session.get(Asset, asset_id)
    if not asset:
        raise NotFoundError("Asset not found")

    if not entitlement_service.is_entitled(session, current_user.id, asset):
        logger.info("User %s denied download of premium asset %s", current_user.id, asset_id)
        raise ForbiddenError("Asset not purchased")

    download_url = to_download_url(asset.file_url)

    entitlement_service.record_download(session, current_user.id, asset.id)
    session.commit()

    return DownloadResponse(asset_id=asset.id, download_url=download_url)
