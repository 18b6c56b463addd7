from uuid import UUID

from pydantic import BaseModel


class AuthenticatedUser(BaseModel):
    """Identity asserted by the authentication service. Trusted as given."""

    id: UUID
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
