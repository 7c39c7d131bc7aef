"""Shared validation utilities"""

import re
import uuid
from typing import Optional


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError, TypeError):
        return False


def validate_ground_name(name: Optional[str]) -> Optional[str]:
    """Strip and collapse whitespace; a ground name cannot be blank"""
    if name is None:
        return name

    name = re.sub(r"\s+", " ", name).strip()
    if not name:
        raise ValueError("Ground name cannot be empty")
    if len(name) > 255:
        raise ValueError("Ground name must be 255 characters or fewer")
    return name
