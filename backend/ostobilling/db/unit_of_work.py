"""Unit of work for grouping several writes into one transaction."""

from types import TracebackType
from typing import Optional, Type

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ostobilling.core.exceptions import ConflictException, StorageFailureException


class UnitOfWork:
    """Async context manager around one database transaction.

    Writes made through ``uow.session`` are only persisted by ``commit()``.
    Leaving the block without committing, or with an exception, rolls the
    transaction back. Database errors leave the block translated:
    ``IntegrityError`` becomes ``ConflictException`` and any other
    ``SQLAlchemyError`` becomes ``StorageFailureException``.

    Example:
    -------
        async with UnitOfWork(db) as uow:
            await crud.subscription.update(uow.session, db_obj=sub, obj_in=..., uow=uow)
            uow.session.add(invoice)
            await uow.commit()

    """

    def __init__(self, session: AsyncSession, conflict_message: Optional[str] = None):
        """Create a unit of work bound to a session.

        Args:
        ----
            session (AsyncSession): The database session.
            conflict_message (str, optional): Message of the ConflictException raised
                when the transaction hits a uniqueness violation.

        """
        self.session = session
        self.conflict_message = conflict_message or "A conflicting record already exists"
        self._committed = False

    async def __aenter__(self) -> "UnitOfWork":
        """Enter the unit of work."""
        self._committed = False
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> bool:
        """Roll back unless committed and translate database errors."""
        if exc_type is not None or not self._committed:
            await self.rollback()

        if isinstance(exc, IntegrityError):
            raise ConflictException(self.conflict_message) from exc
        if isinstance(exc, SQLAlchemyError):
            raise StorageFailureException(f"Storage failure: {exc.__class__.__name__}") from exc
        return False

    async def commit(self) -> None:
        """Commit the transaction."""
        await self.session.commit()
        self._committed = True

    async def rollback(self) -> None:
        """Roll back the transaction."""
        await self.session.rollback()
