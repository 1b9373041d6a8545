from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.security import TokenError, decode_token
from app.models.workspace import User, Workspace, WorkspaceUser

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


@dataclass(frozen=True)
class WorkspaceContext:
    """Caller identity for one request. Passed explicitly into services."""

    workspace: Workspace
    user: User

    @property
    def workspace_id(self) -> str:
        return self.workspace.id


async def get_workspace_context(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> WorkspaceContext:
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")

    try:
        payload = decode_token(token)
    except TokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    user_id = payload.get("sub")
    workspace_id = payload.get("workspace_id")
    if not user_id or not workspace_id:
        raise HTTPException(status_code=401, detail="Token missing sub/workspace_id")

    res = await db.execute(
        select(User, Workspace)
        .join(WorkspaceUser, WorkspaceUser.user_id == User.id)
        .join(Workspace, Workspace.id == WorkspaceUser.workspace_id)
        .where(User.id == str(user_id), Workspace.id == str(workspace_id))
    )
    row = res.first()
    if row is None:
        raise HTTPException(status_code=403, detail="Not a member of this workspace")

    user, workspace = row
    return WorkspaceContext(workspace=workspace, user=user)
