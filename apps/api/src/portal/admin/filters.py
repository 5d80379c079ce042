"""In-memory search and organization filtering for admin listings."""

from collections.abc import Iterable
from typing import TypeVar
from uuid import UUID

from leo_shared import schemas

R = TypeVar("R")

# Fields matched by the free-text search, per record type
SEARCH_FIELDS: dict[type, tuple[str, ...]] = {
    schemas.Organization: ("name",),
    schemas.Property: ("name", "organization_name"),
    schemas.UserProfile: ("first_name", "last_name", "email"),
    schemas.AdminUser: ("user_name", "user_email", "organization_name"),
}


def matches_search(record, search: str | None) -> bool:
    """Case-insensitive substring match over the record's searchable fields."""
    if not search:
        return True
    needle = search.lower()
    fields = SEARCH_FIELDS.get(type(record), ("name",))
    for name in fields:
        value = getattr(record, name, None)
        if value and needle in value.lower():
            return True
    return False


def filter_records(
    rows: Iterable[R],
    search: str | None = None,
    organization_id: UUID | None = None,
) -> list[R]:
    """Keep rows matching the search text AND the organization.

    Records without an ``organization_id`` (organizations themselves) are
    never excluded by the organization filter.
    """
    filtered = []
    for row in rows:
        if not matches_search(row, search):
            continue
        row_org = getattr(row, "organization_id", None)
        if organization_id is not None and row_org is not None and row_org != organization_id:
            continue
        filtered.append(row)
    return filtered
