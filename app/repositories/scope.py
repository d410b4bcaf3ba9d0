"""Tenant scope check shared by every repository"""
import logging
from typing import Optional, TypeVar
from uuid import UUID

from app.core.exceptions import TenantAccessDenied

logger = logging.getLogger(__name__)

T = TypeVar("T")


def ensure_scope(row: Optional[T], establishment_id: UUID) -> Optional[T]:
    """Return row unchanged, or raise if it belongs to another establishment."""
    if row is None:
        return None
    if row.establishment_id != establishment_id:
        logger.warning(
            f"Cross-tenant access blocked: {type(row).__name__} {row.id} "
            f"requested for establishment {establishment_id}"
        )
        raise TenantAccessDenied()
    return row
