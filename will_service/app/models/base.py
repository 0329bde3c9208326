import datetime
import uuid
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


def new_id() -> str:
    return str(uuid.uuid4().hex)


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


# BSON has no date type, so calendar dates are stored as ISO strings.
IsoDate = Annotated[datetime.date, PlainSerializer(lambda d: d.isoformat(), return_type=str)]


class WillBaseModel(BaseModel):
    """
    Base for every will sub-document. Fields are snake_case in Python and in
    MongoDB; the API accepts and emits the camelCase aliases the web client uses.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )
