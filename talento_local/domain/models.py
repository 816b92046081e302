from dataclasses import dataclass
from uuid import UUID

from talento_local.domain.states import Role

@dataclass(frozen=True)
class Principal:
    """Authenticated caller, as asserted by the access token."""
    user_id: UUID
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
