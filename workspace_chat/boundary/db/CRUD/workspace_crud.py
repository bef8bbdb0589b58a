"""
Workspace CRUD operations.

Dependencies: sqlalchemy, workspace_chat.boundary.db.models
System role: Tenant lookup
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workspace_chat.boundary.db.CRUD.base_crud import BaseCRUD
from workspace_chat.boundary.db.models.workspace_model import WorkspaceModel


class WorkspaceCRUD(BaseCRUD[WorkspaceModel]):
    """CRUD operations for WorkspaceModel."""

    def __init__(self) -> None:
        super().__init__(WorkspaceModel)

    async def get_by_slug(self, session: AsyncSession, slug: str) -> WorkspaceModel | None:
        """
        Retrieve a workspace by its route slug.

        Args:
            session: Async database session
            slug: Workspace slug

        Returns:
            WorkspaceModel if found, None otherwise
        """
        stmt = select(WorkspaceModel).where(WorkspaceModel.slug == slug)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()


workspace_crud = WorkspaceCRUD()
