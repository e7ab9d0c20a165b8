def to_uppercase(value: str | None) -> str | None:
    """
    Strip surrounding whitespace and uppercase an environment value.
    None passes through so pydantic can report the missing value itself.
    """
    if value is None:
        return None
    return value.strip().upper()


def to_lowercase(value: str | None) -> str | None:
    """
    Strip surrounding whitespace and lowercase an environment value.
    """
    if value is None:
        return None
    return value.strip().lower()
