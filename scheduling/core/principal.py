"""Principal passed in by the identity layer; the engine trusts it as already validated."""

from dataclasses import dataclass
from uuid import UUID
import enum


class Role(str, enum.Enum):
    CUSTOMER = "customer"
    PROVIDER = "provider"
    SYSTEM = "system"  # Internal collaborators acting on their own policy (e.g. cancellation rules)


@dataclass(frozen=True)
class Principal:
    """The caller of a write operation."""

    id: UUID
    role: Role

    @property
    def is_provider(self) -> bool:
        return self.role == Role.PROVIDER

    @property
    def is_customer(self) -> bool:
        return self.role == Role.CUSTOMER
