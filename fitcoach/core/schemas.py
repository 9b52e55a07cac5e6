from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Database rows use snake_case columns, the JSON API uses camelCase.

    Only the fields a model declares are mapped; nested values (dicts, lists)
    are passed through untouched.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)
