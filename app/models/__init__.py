"""Database models."""

from sqlalchemy import MetaData

from app.models.appointments import appointments
from app.models.appointments import metadata as appointments_metadata
from app.models.users import metadata as users_metadata
from app.models.users import users

# Combined metadata for create_all and migrations
metadata = MetaData()
for _source in (users_metadata, appointments_metadata):
    for _table in _source.tables.values():
        _table.to_metadata(metadata)

__all__ = [
    "appointments",
    "metadata",
    "users",
]
