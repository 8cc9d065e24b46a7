"""
Custom column types.
"""

from sqlalchemy import Text
from sqlalchemy.types import TypeDecorator


def split_delimited(value, delimiter: str = ",") -> list[str]:
    """Split a delimited string (or list) into trimmed, non-empty entries, keeping order."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(delimiter)
    else:
        items = list(value)
    return [str(item).strip() for item in items if str(item).strip()]


class DelimitedList(TypeDecorator):
    """
    Ordered list of strings stored as comma-joined text.

    The ORM attribute is always a list; the delimited form exists only in
    the database column.
    """

    impl = Text
    cache_ok = True

    def __init__(self, delimiter: str = ",", *args, **kwargs):
        self.delimiter = delimiter
        super().__init__(*args, **kwargs)

    def process_bind_param(self, value, dialect):
        return self.delimiter.join(split_delimited(value, self.delimiter))

    def process_result_value(self, value, dialect):
        return split_delimited(value, self.delimiter)
