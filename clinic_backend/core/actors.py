import enum
from dataclasses import dataclass


class ActorRole(str, enum.Enum):
    patient = 'patient'
    provider = 'provider'
    admin = 'admin'


@dataclass(frozen=True)
class Actor:
    """An already-authenticated caller: a role plus the id of the entity it acts as."""

    role: ActorRole
    id: int

    @property
    def is_patient(self) -> bool:
        return self.role is ActorRole.patient

    @property
    def is_provider(self) -> bool:
        return self.role is ActorRole.provider

    @property
    def is_admin(self) -> bool:
        return self.role is ActorRole.admin
