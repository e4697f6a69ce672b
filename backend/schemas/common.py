from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from utils.dates import as_utc

# Stored naive-UTC datetimes leave the API as ISO-8601 instants with a Z suffix
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


# JSON bodies use camelCase keys, python attributes stay snake_case
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Minimal reference to a person shown next to an appointment
class PersonRef(CamelModel):
    id: int
    display_name: str
