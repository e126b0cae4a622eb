"""
Shared schema base: snake_case in Python, camelCase on the wire
"""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model accepting either field names or camelCase aliases"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
