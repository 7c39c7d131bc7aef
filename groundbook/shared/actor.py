from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Actor:
    """The caller of a command: identity subject plus the capability set checked by handlers"""

    id: str
    is_admin: bool = False
    email: Optional[str] = None
    name: Optional[str] = None


# Used by the scheduled sweep when it records who changed a booking
SYSTEM_ACTOR = Actor(id="system", is_admin=False)
