from typing import ClassVar

from pydantic import BaseModel, ConfigDict, model_validator


class PartialUpdate(BaseModel):
    """
    Base for update bodies where only the fields a client sends are applied.

    Enums are kept as their stored string values.  Fields named in
    ``nullable`` may be cleared with an explicit ``null``; sending ``null``
    for any other field is a validation error because its column is NOT NULL.
    """
    model_config = ConfigDict(use_enum_values=True)

    nullable: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="before")
    @classmethod
    def _reject_nulls(cls, data):
        if isinstance(data, dict):
            rejected = sorted(
                field for field, value in data.items()
                if value is None and field in cls.model_fields and field not in cls.nullable
            )
            if rejected:
                raise ValueError("May not be null: " + ", ".join(rejected))
        return data

    def changes(self, **kwargs) -> dict:
        """Fields the client set, ready to copy onto the ORM row."""
        return self.model_dump(exclude_unset=True, **kwargs)
