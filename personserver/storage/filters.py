"""
Query builders for filtered listings.
"""

from typing import Optional

from pydantic import BaseModel, Field
from sqlmodel.sql.expression import SelectOfScalar

from .models import Stakeholder

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500


class StakeholderFilter(BaseModel, frozen=True):
    """Optional filters and pagination for listing a program's stakeholders.

    Unset filters add no clause. Results are ordered by name, then id, and
    soft-deleted stakeholders are never returned.
    """

    stakeholder_type: Optional[str] = Field(default=None, description="Only this stakeholder type")
    is_internal: Optional[bool] = Field(default=None, description="Only internal (or only external) stakeholders")
    engagement_level: Optional[str] = Field(default=None, description="Only this engagement level")
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0)

    def apply(self, statement: SelectOfScalar[Stakeholder]) -> SelectOfScalar[Stakeholder]:
        statement = statement.where(Stakeholder.deleted_at.is_(None))  # type: ignore[union-attr]
        if self.stakeholder_type is not None:
            statement = statement.where(Stakeholder.stakeholder_type == self.stakeholder_type)
        if self.is_internal is not None:
            statement = statement.where(Stakeholder.is_internal == self.is_internal)
        if self.engagement_level is not None:
            statement = statement.where(Stakeholder.engagement_level == self.engagement_level)
        statement = statement.order_by(Stakeholder.person_name, Stakeholder.stakeholder_id)
        return statement.limit(self.limit).offset(self.offset)
