"""Format checks shared by the web layer and the local collaborators."""

import re
import uuid
from typing import Optional

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")


def is_email(value: Optional[str]) -> bool:
    return bool(value and EMAIL_RE.match(value))


def is_uuid(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True
