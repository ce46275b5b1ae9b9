"""
Actor Model

The authenticated caller, used only to stamp audit fields.
"""
from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class Actor:
    id: UUID
    name: str = ""
