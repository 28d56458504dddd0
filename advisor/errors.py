"""
advisor/errors.py

Domain exceptions raised by rule validation and legacy normalization.
Missing measurements are not errors: the resolver returns None for them.
"""


class RuleValidationError(ValueError):
    """A rule submitted for creation or update failed structural validation."""

    def __init__(self, errors: list[dict[str, str]]) -> None:
        self.errors = errors
        summary = "; ".join(f"{e['field']}: {e['reason']}" for e in errors)
        super().__init__(f"invalid adjustment rule ({summary})")


class UnknownEnumValueError(ValueError):
    """A stored rule holds a value outside the current enumerations."""

    def __init__(self, field: str, value: object) -> None:
        self.field = field
        self.value = value
        super().__init__(f"unknown value for {field}: {value!r}")
