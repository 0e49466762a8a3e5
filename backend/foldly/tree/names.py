"""Name rules shared by the store and the mutation handlers."""

from typing import Optional

from ..exceptions import ValidationError

MAX_NAME_LENGTH = 255


def validate_name(name: str) -> str:
    """Strip and validate a file or folder name."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Name cannot be empty", field="name")
    if "/" in cleaned:
        raise ValidationError("Name cannot contain '/'", field="name")
    if len(cleaned) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name is longer than {MAX_NAME_LENGTH} characters", field="name")
    return cleaned


def file_extension(name: str) -> Optional[str]:
    if "." not in name.strip("."):
        return None
    return name.rsplit(".", 1)[-1].lower()
