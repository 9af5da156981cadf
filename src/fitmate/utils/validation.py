from fitmate.core.errors import BadRequestError


def is_valid_id(value: str) -> bool:
    """True for a positive base-10 integer without sign or whitespace."""
    return value.isascii() and value.isdigit() and int(value) > 0


def parse_id(value: str, name: str = "id") -> int:
    """Parse a numeric path or query parameter.

    Raises:
        BadRequestError: If the value is not a positive integer
    """
    if value is None or not is_valid_id(value.strip()):
        raise BadRequestError(f"{name} must be a valid number")
    return int(value.strip())
