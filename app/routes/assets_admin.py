import logging
from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlmodel import Session, select

from app.config import settings
from app.database import get_session
from app.dependencies.admin import require_admin
from app.models.asset import Asset
from app.models.user import User
from app.routes.assets_public import asset_to_dict
from app.schemas.asset_schemas import AssetCreate, AssetUpdate
from app.services.r2_helper import delete_stored_file, upload_asset_file
from app.utils.errors import NotFoundError, ValidationError
from app.utils.pagination import paginate
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

# columns an update may not clear
NON_NULLABLE_FIELDS = {
    "title", "description", "category", "price", "image",
    "is_trending", "is_best_selling", "is_featured",
}


def sync_premium_flag(asset: Asset) -> None:
    """is_premium is derived from price on every admin write."""
    asset.is_premium = asset.price > 0


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_asset(
    data: AssetCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    asset = Asset(
        title=data.title,
        description=data.description,
        category=data.category.value,
        price=0 if data.type == "free" else data.price,
        original_price=data.original_price,
        image=data.image,
        file_url=data.file_url,
        file_size=data.file_size,
        file_type=data.file_type,
        tags=data.tags,
        is_trending=data.is_trending,
        is_best_selling=data.is_best_selling,
        is_featured=data.is_featured,
        author_id=current_user.id,
        author_name=current_user.name,
    )
    sync_premium_flag(asset)

    session.add(asset)
    session.commit()
    session.refresh(asset)

    logger.info("Admin %s created asset %s", current_user.id, asset.id)
    return {"message": "Asset uploaded successfully", "asset": asset_to_dict(asset)}


@router.get("/")
def list_assets_admin(
    page: int = 1,
    limit: int = 20,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin),
):
    query = select(Asset).order_by(Asset.created_at.desc(), Asset.id.desc())
    return paginate(session=session, query=query, page=page, limit=limit, transform=asset_to_dict)


@router.put("/{asset_id}")
def update_asset(
    asset_id: int,
    data: AssetUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    asset = session.get(Asset, asset_id)
    if not asset:
        raise NotFoundError("Asset not found")

    changes = data.model_dump(exclude_unset=True)
    nulled = sorted(f for f, v in changes.items() if v is None and f in NON_NULLABLE_FIELDS)
    if nulled:
        raise ValidationError(f"Fields cannot be null: {', '.join(nulled)}")

    if changes.get("category") is not None:
        changes["category"] = changes["category"].value

    for field, value in changes.items():
        setattr(asset, field, value)

    # past orders keep their own snapshot; only the live catalog changes
    sync_premium_flag(asset)
    asset.updated_at = utcnow()

    session.add(asset)
    session.commit()
    session.refresh(asset)

    logger.info("Admin %s updated asset %s (%s)", current_user.id, asset.id, ", ".join(changes))
    return {"message": "Asset updated successfully", "asset": asset_to_dict(asset)}


@router.post("/{asset_id}/file")
def upload_file(
    asset_id: int,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
    _: User = Depends(require_admin),
):
    if not settings.storage_enabled:
        raise ValidationError("File storage is not configured")

    asset = session.get(Asset, asset_id)
    if not asset:
        raise NotFoundError("Asset not found")

    previous = asset.file_url
    asset.file_url = upload_asset_file(file, asset.title)
    asset.file_type = file.content_type
    asset.updated_at = utcnow()

    session.add(asset)
    session.commit()

    delete_stored_file(previous)

    return {"message": "File uploaded", "asset_id": asset.id}


@router.delete("/{asset_id}")
def delete_asset(
    asset_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    asset = session.get(Asset, asset_id)
    if not asset:
        raise NotFoundError("Asset not found")

    file_key = asset.file_url
    session.delete(asset)
    session.commit()

    delete_stored_file(file_key)

    logger.info("Admin %s deleted asset %s", current_user.id, asset_id)
    return {"message": "Asset deleted successfully"}
