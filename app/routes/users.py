from fastapi import APIRouter, Depends
from sqlmodel import Session, select
from app.database import get_session
from app.models.asset import Asset
from app.models.entitlement import EntitlementKind
from app.models.user import User
from app.schemas.user_schemas import ProfileResponse, UserUpdate
from app.services import entitlement_service
from app.utils.errors import NotFoundError
from app.utils.token import get_current_user

router = APIRouter()


def _profile(session: Session, user: User) -> ProfileResponse:
    return ProfileResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        favorites=entitlement_service.list_set(session, user.id, EntitlementKind.favorite),
        downloads=entitlement_service.list_set(session, user.id, EntitlementKind.download),
        purchased_assets=entitlement_service.list_set(session, user.id, EntitlementKind.purchased),
    )


@router.get("/me", response_model=ProfileResponse)
def get_profile(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    return _profile(session, current_user)


@router.put("/me", response_model=ProfileResponse)
def update_profile(
    data: UserUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    current_user.name = data.name
    session.add(current_user)
    session.commit()
    session.refresh(current_user)

    return _profile(session, current_user)


# ---------- FAVORITES ----------

@router.post("/me/favorites/{asset_id}")
def add_to_favorites(
    asset_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    if not session.get(Asset, asset_id):
        raise NotFoundError("Asset not found")

    entitlement_service.add_to_set(session, current_user.id, [asset_id], EntitlementKind.favorite)
    session.commit()

    return {"message": "Added to favorites"}


@router.delete("/me/favorites/{asset_id}")
def remove_from_favorites(
    asset_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    entitlement_service.remove_from_set(session, current_user.id, asset_id, EntitlementKind.favorite)
    session.commit()

    return {"message": "Removed from favorites"}


@router.get("/me/favorites")
def get_favorites(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    ids = entitlement_service.list_set(session, current_user.id, EntitlementKind.favorite)
    if not ids:
        return []

    assets = session.exec(select(Asset).where(Asset.id.in_(ids))).all()
    by_id = {a.id: a for a in assets}

    return [
        {
            "asset_id": a.id,
            "title": a.title,
            "price": a.price,
            "image": a.image,
            "is_premium": a.is_premium,
        }
        for a in (by_id.get(i) for i in ids)
        if a is not None
    ]
