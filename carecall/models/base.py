from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase


# Unnamed constraints and indexes get predictable names so Alembic
# autogenerate diffs stay stable across databases.
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_N_name)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base shared by every CareCall table."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)
