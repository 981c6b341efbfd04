import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pocket_cdn.models import UploadLink

logger = logging.getLogger(__name__)

DEFAULT_LINK_TTL = timedelta(hours=12)


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _assign(link: UploadLink, api_key: str, expires_at: datetime, now: datetime) -> None:
    link.api_key = api_key
    link.expires_at = expires_at
    link.updated_at = now


async def create_upload_link(
    session: AsyncSession,
    name: str,
    api_key: str,
    ttl: timedelta = DEFAULT_LINK_TTL,
    now: datetime | None = None,
) -> UploadLink:
    """Write ``name -> api_key`` with a fresh expiry, replacing any existing link."""
    now = _now(now)
    expires_at = now + ttl
    link = await session.get(UploadLink, name)
    if link is None:
        link = UploadLink(name=name, created_at=now)
        _assign(link, api_key, expires_at, now)
        session.add(link)
        try:
            await session.commit()
        except IntegrityError:
            # A concurrent request inserted the same name first
            await session.rollback()
            link = await session.get(UploadLink, name)
            if link is None:
                raise
            _assign(link, api_key, expires_at, now)
            await session.commit()
    else:
        _assign(link, api_key, expires_at, now)
        await session.commit()
    await session.refresh(link)
    logger.info("Upload link %s created, expires at %s", name, link.expires_at)
    return link


async def get_active_upload_link(
    session: AsyncSession,
    name: str,
    now: datetime | None = None,
) -> UploadLink | None:
    link = await session.get(UploadLink, name)
    if link is None:
        return None
    if as_utc(link.expires_at) <= _now(now):
        logger.debug("Upload link %s has expired", name)
        await session.delete(link)
        await session.commit()
        return None
    return link


async def rewrite_upload_link(
    session: AsyncSession,
    link: UploadLink,
    now: datetime | None = None,
) -> UploadLink:
    """Re-write the link's value after use. The expiry is left untouched."""
    link.updated_at = _now(now)
    await session.commit()
    return link


async def purge_expired_upload_links(
    session: AsyncSession,
    now: datetime | None = None,
) -> int:
    stmt = select(UploadLink).where(UploadLink.expires_at <= _now(now))
    expired = (await session.execute(stmt)).scalars().all()
    for link in expired:
        await session.delete(link)
    await session.commit()
    if expired:
        logger.info("Purged %d expired upload links", len(expired))
    return len(expired)
