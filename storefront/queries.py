"""
Run assembler queries and reshape rows into records.

``fetch_one`` always returns a record or ``None``: backend errors, duplicate
rows for a unique id and malformed nested payloads are logged here.
``fetch_all`` leaves backend errors (``BACKEND_ERRORS``) to the caller.
"""

import logging
import uuid
from typing import List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import MultipleResultsFound, SQLAlchemyError

from .models import Backend

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)

# asyncpg raises OSError itself when the server refuses or drops the connection
BACKEND_ERRORS = (SQLAlchemyError, OSError)


def is_uuid(value) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


async def fetch_one(backend: Backend, stmt, record_cls: Type[R], entity: str, entity_id) -> Optional[R]:
    try:
        async with backend.session() as session:
            result = await session.execute(stmt)
            row = result.unique().scalars().one_or_none()
            if row is None:
                logger.info("%s %s not found or not visible", entity, entity_id)
                return None
            return record_cls.model_validate(row)
    except MultipleResultsFound:
        logger.error("%s %s matched more than one row; refusing to pick one", entity, entity_id)
        return None
    except ValidationError as e:
        logger.warning("Rejected malformed %s %s payload: %s", entity, entity_id, e)
        return None
    except BACKEND_ERRORS:
        logger.exception("Query failed fetching %s %s", entity, entity_id)
        return None


async def fetch_all(backend: Backend, stmt, record_cls: Type[R], entity: str, context="") -> Tuple[List[R], int]:
    """Returns the valid records and the raw row count.

    Malformed rows are skipped with a warning; the raw count still reflects
    them so pagination stays correct. Raises ``BACKEND_ERRORS`` so callers
    can decide whether a failed query is fatal.
    """
    records = []
    async with backend.session() as session:
        result = await session.execute(stmt)
        rows = result.unique().scalars().all()
        for row in rows:
            try:
                records.append(record_cls.model_validate(row))
            except ValidationError as e:
                logger.warning("Skipping invalid %s %s %s | Error: %s", entity, getattr(row, "id", "?"), context, e)
    return records, len(rows)
