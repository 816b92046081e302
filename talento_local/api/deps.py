from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from talento_local.auth.security import get_current_principal
from talento_local.db.session import get_db_session
from talento_local.domain.models import Principal

# Dependency for DB session
DbSession = Annotated[AsyncSession, Depends(get_db_session)]

# Authenticated caller
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
