from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.engine.row import Row


class CustomBaseModel(BaseModel):
    """Custom base model for all schemas.
    - fields are snake_case in python and camelCase on the wire
    - either spelling is accepted on input
    - can be built straight from ORM objects and rows
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    @classmethod
    def from_record(cls, record: Row[Any] | dict[str, Any] | Any):
        if isinstance(record, Row):
            return cls(**record._asdict())
        elif isinstance(record, dict):
            return cls(**record)
        else:
            return cls.model_validate(record)


class Message(CustomBaseModel):
    message: str = ""
