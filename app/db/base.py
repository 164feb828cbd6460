from sqlalchemy.orm import declarative_base

from app.core.config import settings

Base = declarative_base()


def table_args(*args, **kwargs):
    """Table arguments carrying the configured schema, if any."""
    if settings.DB_SCHEMA:
        kwargs["schema"] = settings.DB_SCHEMA
    if args:
        return (*args, kwargs)
    return kwargs


def fk(target: str) -> str:
    """Qualify a `table.column` foreign key target with the configured schema."""
    if settings.DB_SCHEMA:
        return f"{settings.DB_SCHEMA}.{target}"
    return target
