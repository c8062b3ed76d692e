# backend/chargeslot/schemas/base.py

from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

# camelCase on the wire, snake_case in Python; both accepted on input
API_MODEL_CONFIG = ConfigDict(
    from_attributes=True,
    alias_generator=to_camel,
    populate_by_name=True,
)
