"""
Base Schema Classes for Pydantic Models

Request and response bodies use camelCase on the wire; Python code uses
snake_case. Both spellings are accepted on input.

RULE: API schemas inherit from one of the bases below rather than BaseModel.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseResponseSchema(BaseModel):
    """
    Base class for all response schemas.

    Features:
    - camelCase field names in JSON output
    - Records read from the store can be validated directly
    - Unknown keys in stored records are ignored
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
    )


class BaseCreateSchema(BaseModel):
    """
    Base class for create/input schemas.

    Extra fields are ignored (forward compatibility). Business validation
    (quantities, totals, coordinates) is done by the services, so the same
    rules hold for every caller.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
    )


class BaseUpdateSchema(BaseModel):
    """
    Base class for update/patch schemas.

    All fields are optional by default for partial updates.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
    )
