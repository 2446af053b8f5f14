"""Repository base shared by the SQLAlchemy-backed stores."""

from __future__ import annotations

from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class AsyncRepository(Generic[ModelT]):
    """Base repository bound to one session and one ORM model."""

    model: ClassVar[type[Any]]

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def add(self, instance: ModelT) -> ModelT:
        self.session.add(instance)
        await self.session.flush()
        return instance

    async def get(self, pk: Any) -> ModelT | None:
        return await self.session.get(self.model, pk)

    async def remove(self, instance: ModelT) -> None:
        await self.session.delete(instance)
        await self.session.flush()
