# app/services/entitlement_service.py
import logging
from typing import Iterable, List, Set

from sqlalchemy import delete, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import Session, select

from app.models.asset import Asset
from app.models.entitlement import AssetEntitlement, EntitlementKind
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _insert_ignore(session: Session):
    """
    INSERT ... ON CONFLICT DO NOTHING for the bound dialect (the engine only
    accepts the dialects listed in app.database.SUPPORTED_DIALECTS).
    Set-union writes stay atomic at the database, no read-modify-write.
    """
    insert = _INSERTS[session.get_bind().dialect.name]
    return insert(AssetEntitlement).on_conflict_do_nothing(
        index_elements=["user_id", "asset_id", "kind"]
    )


def add_to_set(
    session: Session,
    user_id: int,
    asset_ids: Iterable[int],
    kind: EntitlementKind,
) -> None:
    ids = sorted(set(asset_ids))
    if not ids:
        return

    now = utcnow()
    session.exec(
        _insert_ignore(session).values([
            {"user_id": user_id, "asset_id": asset_id, "kind": kind.value, "created_at": now}
            for asset_id in ids
        ])
    )


def remove_from_set(session: Session, user_id: int, asset_id: int, kind: EntitlementKind) -> None:
    session.exec(
        delete(AssetEntitlement).where(
            AssetEntitlement.user_id == user_id,
            AssetEntitlement.asset_id == asset_id,
            AssetEntitlement.kind == kind.value,
        )
    )


def list_set(session: Session, user_id: int, kind: EntitlementKind) -> List[int]:
    return list(session.exec(
        select(AssetEntitlement.asset_id)
        .where(AssetEntitlement.user_id == user_id)
        .where(AssetEntitlement.kind == kind.value)
        .order_by(AssetEntitlement.created_at.desc(), AssetEntitlement.id.desc())
    ).all())


def owned_asset_ids(session: Session, user_id: int, asset_ids: Iterable[int]) -> Set[int]:
    ids = list(set(asset_ids))
    if not ids:
        return set()

    return set(session.exec(
        select(AssetEntitlement.asset_id)
        .where(AssetEntitlement.user_id == user_id)
        .where(AssetEntitlement.kind == EntitlementKind.purchased.value)
        .where(AssetEntitlement.asset_id.in_(ids))
    ).all())


def grant(session: Session, user_id: int, asset_ids: Iterable[int]) -> List[int]:
    """
    Add assets to the user's purchased set. Idempotent; caller commits.

    Ids whose asset has since been deleted are skipped; the ids actually
    granted are returned.
    """
    ids = sorted(set(asset_ids))
    if not ids:
        return []

    existing = set(session.exec(select(Asset.id).where(Asset.id.in_(ids))).all())
    granted = [i for i in ids if i in existing]
    if len(granted) != len(ids):
        logger.warning(
            "Skipping deleted assets %s for user %s",
            [i for i in ids if i not in existing], user_id,
        )

    add_to_set(session, user_id, granted, EntitlementKind.purchased)
    logger.info("Granted assets %s to user %s", granted, user_id)
    return granted


def is_entitled(session: Session, user_id: int, asset: Asset) -> bool:
    if not asset.is_premium:
        return True
    return asset.id in owned_asset_ids(session, user_id, [asset.id])


def record_download(session: Session, user_id: int, asset_id: int) -> None:
    session.exec(
        update(Asset)
        .where(Asset.id == asset_id)
        .values(downloads=Asset.downloads + 1)
    )
    add_to_set(session, user_id, [asset_id], EntitlementKind.download)
