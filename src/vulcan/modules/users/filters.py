"""
User Filter Service

Filters the admin user list:

- q: one term matches first name, last name or email. Several terms are
  tried as a full name first ("jane doe"); when that finds nobody, any term
  matching any of those columns counts.
- role: admin, evaluator, constituent, vendor, trainer ("administrator" is
  accepted for admin)
- needs_review: accounts flagged as possible duplicates
- relationship: guardian or dependent
- sort / direction: role, last_name, first_name, email, created_at

Results come back as a Result whose data holds the users and the total.
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select, exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from vulcan.modules.guardians.models import GuardianRelationship
from vulcan.modules.shared import Result
from vulcan.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)

ROLE_ALIASES = {
    "administrator": UserRole.ADMIN,
    "admin": UserRole.ADMIN,
    "evaluator": UserRole.EVALUATOR,
    "constituent": UserRole.CONSTITUENT,
    "vendor": UserRole.VENDOR,
    "trainer": UserRole.TRAINER,
}

SORTABLE_COLUMNS = {
    "role": User.role,
    "last_name": User.last_name,
    "first_name": User.first_name,
    "email": User.email,
    "created_at": User.created_at,
}
DEFAULT_ORDER = (User.role, User.last_name, User.first_name)


def normalize_role(value: str | None) -> UserRole | None:
    if not value:
        return None
    return ROLE_ALIASES.get(value.strip().lower())


def search_terms(q: str | None) -> list[str]:
    return [term for term in (q or "").split() if term]


@dataclass
class UserFilterParams:
    q: str | None = None
    role: str | None = None
    needs_review: bool = False
    relationship: str | None = None
    sort: str | None = None
    direction: str = "asc"
    page: int = 1
    page_size: int = 25


class UserFilterService:
    def __init__(self, db: AsyncSession, params: UserFilterParams):
        self.db = db
        self.params = params

    def base_query(self) -> Select:
        params = self.params
        query = select(User)

        role = normalize_role(params.role)
        if params.role and role is None:
            logger.warning(f"Ignoring unknown role filter: {params.role}")
        if role is not None:
            query = query.where(User.role == role)

        if params.needs_review:
            query = query.where(User.needs_duplicate_review.is_(True))

        if params.relationship == "guardian":
            query = query.where(exists().where(GuardianRelationship.guardian_id == User.id))
        elif params.relationship == "dependent":
            query = query.where(exists().where(GuardianRelationship.dependent_id == User.id))

        return query

    @staticmethod
    def term_clause(term: str):
        pattern = f"%{term}%"
        return or_(
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
            User.email.ilike(pattern),
        )

    @staticmethod
    def full_name_clause(terms: list[str]):
        return func.concat(User.first_name, " ", User.last_name).ilike(f"%{' '.join(terms)}%")

    def ordered(self, query: Select) -> Select:
        column = SORTABLE_COLUMNS.get(self.params.sort or "")
        if column is None:
            return query.order_by(*DEFAULT_ORDER)
        return query.order_by(column.desc() if self.params.direction == "desc" else column.asc())

    async def _fetch(self, query: Select) -> tuple[list[User], int]:
        total = (
            await self.db.execute(select(func.count()).select_from(query.subquery()))
        ).scalar_one()
        page = max(self.params.page, 1)
        size = self.params.page_size
        result = await self.db.execute(
            self.ordered(query).offset((page - 1) * size).limit(size)
        )
        return list(result.scalars().all()), total

    async def apply(self) -> Result:
        try:
            query = self.base_query()
            terms = search_terms(self.params.q)

            if len(terms) == 1:
                users, total = await self._fetch(query.where(self.term_clause(terms[0])))
            elif terms:
                users, total = await self._fetch(query.where(self.full_name_clause(terms)))
                if total == 0:
                    users, total = await self._fetch(
                        query.where(or_(*(self.term_clause(t) for t in terms)))
                    )
            else:
                users, total = await self._fetch(query)
        except Exception as e:
            logger.error(f"User filter failed: {e}", exc_info=True)
            return Result.fail(f"Error filtering users: {e}")

        data: dict[str, Any] = {"users": users, "total": total}
        return Result.ok(f"Found {total} users", data)
