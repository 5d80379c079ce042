"""Resolve the signed-in user's organization."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.db.models import UserProfile

logger = logging.getLogger("leo-portal-dashboard")


async def get_current_user_organization_id(
    db: AsyncSession, user_id: UUID | None
) -> UUID | None:
    """Look up the organization of a user through their profile.

    Returns None when there is no signed-in user, no profile row, or the
    lookup fails. Callers treat None as "nothing to show".
    """
    if user_id is None:
        return None

    try:
        result = await db.execute(
            select(UserProfile.organization_id).where(UserProfile.user_id == user_id)
        )
        organization_id = result.scalars().first()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching user organization: {e}")
        await db.rollback()
        return None

    if organization_id is None:
        logger.info(f"No organization found for user {user_id}")
    return organization_id
