"""Shared schema primitives."""

from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict


def _to_str(value: object) -> object:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


# Desktop identifiers are UUID strings, but older builds sent integers.
Identifier = Annotated[str, BeforeValidator(_to_str)]


class OpaqueModel(BaseModel):
    """Payload owned by an external collaborator; unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")
