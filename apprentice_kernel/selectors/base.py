"""
Module: apprentice_kernel.selectors.base
Responsibility: Shared base for read-only selectors.
Architecture position: Kernel > Selectors.  May import db/, models/ and
    domain value types; never services/ or outer layers.

Selectors never add, delete, flush or commit, and return frozen DTOs
rather than ORM instances.  The caller owns the session.
"""

from abc import ABC
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from apprentice_kernel.db.base import Base
from apprentice_kernel.exceptions import EntityNotFoundError

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):

    def __init__(self, session: Session):
        self.session = session

    def _get_dto(self, model: type[Base], entity_type: str, entity_id: UUID) -> Any:
        """``model`` row ``entity_id`` as its DTO, or EntityNotFoundError."""
        row = self.session.get(model, entity_id)
        if row is None:
            raise EntityNotFoundError(entity_type, str(entity_id))
        return row.to_dto()
