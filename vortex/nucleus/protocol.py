# vortex/nucleus/protocol.py
import json
from typing import Annotated, Any, Dict, Generic, List, Literal, Optional, TypeVar, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    Field,
    RootModel,
    SerializerFunctionWrapHandler,
    ValidationError,
    model_serializer,
    model_validator,
)

from vortex.nucleus.errors import DecodeError, EncodeError

U64_MAX = 2**64 - 1

# Message ids are unsigned 64-bit integers. Strict, so 1.0, "1" and true are refused.
MessageId = Annotated[int, Field(strict=True, ge=0, le=U64_MAX)]

# Body keys that belong to the body itself rather than to its payload.
_CORRELATION_KEYS = ("msg_id", "in_reply_to")


def _require_utf8(value: str) -> str:
    # JSON escapes can smuggle in lone surrogates, which no reply could carry.
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise ValueError("string is not valid Unicode text (unpaired surrogate)")
    return value


Text = Annotated[str, AfterValidator(_require_utf8)]


# --- Request payloads ---

class Echo(BaseModel):
    type: Literal["echo"] = "echo"
    echo: Text


class Init(BaseModel):
    type: Literal["init"] = "init"
    node_id: Text
    node_ids: List[Text]


class RequestPayload(RootModel[Annotated[Union[Echo, Init], Field(discriminator="type")]]):
    """Every request a node understands, keyed by the body's 'type' field."""


# --- Response payloads ---

class EchoOk(BaseModel):
    type: Literal["echo_ok"] = "echo_ok"
    echo: Text


class InitOk(BaseModel):
    type: Literal["init_ok"] = "init_ok"


class ResponsePayload(RootModel[Annotated[Union[EchoOk, InitOk], Field(discriminator="type")]]):
    """Every reply a node can emit, keyed by the body's 'type' field."""


P = TypeVar("P", bound=BaseModel)


class Body(BaseModel, Generic[P]):
    """
    The inner record of a message: correlation ids plus a typed payload.

    On the wire the payload's fields sit next to 'msg_id' and 'in_reply_to'
    instead of being nested, e.g. {"msg_id": 1, "type": "echo", "echo": "hi"}.
    Absent ids are left out of the output entirely, never written as null.

    Only wire names are accepted: build one with Body(msg_id=..., payload=...).
    """

    message_id: Optional[MessageId] = Field(None, alias="msg_id")
    in_reply_to: Optional[MessageId] = None
    payload: P

    @model_validator(mode="before")
    @classmethod
    def _gather_payload(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        # Built in code around an already typed payload.
        if isinstance(data.get("payload"), BaseModel):
            return data
        # A wire body: everything but the correlation ids belongs to the payload.
        fields = dict(data)
        body = {key: fields.pop(key) for key in _CORRELATION_KEYS if key in fields}
        body["payload"] = fields
        return body

    @model_serializer(mode="wrap")
    def _flatten_payload(self, handler: SerializerFunctionWrapHandler) -> Dict[str, Any]:
        data = handler(self)
        payload = data.pop("payload")
        flattened = {key: value for key, value in data.items() if value is not None}
        flattened.update(payload)
        return flattened


class Envelope(BaseModel, Generic[P]):
    """
    One message on the wire: who sent it, who it is for, and its body.

    Node ids in 'src' and 'dest' are opaque and never parsed.
    """

    source: Text = Field(..., alias="src", description="Id of the sending node or client.")
    destination: Text = Field(..., alias="dest", description="Id of the intended recipient.")
    body: Body[P]

    def reply(self, payload: ResponsePayload, message_id: int) -> "Envelope[ResponsePayload]":
        """Builds the answer to this message, swapping addresses and carrying its msg_id over."""
        return Envelope[ResponsePayload](
            src=self.destination,
            dest=self.source,
            body=Body[ResponsePayload](
                msg_id=message_id,
                in_reply_to=self.body.message_id,
                payload=payload,
            ),
        )


def decode_request(raw: Union[str, bytes, Dict[str, Any]], line: Optional[int] = None) -> Envelope[RequestPayload]:
    """
    Turns one JSON value into a request envelope. Either the whole message
    validates or DecodeError is raised; there are no partial results.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(f"malformed JSON: {e}", line=line) from e

    try:
        return Envelope[RequestPayload].model_validate(raw)
    except ValidationError as e:
        message_id = None
        if isinstance(raw, dict) and isinstance(raw.get("body"), dict):
            candidate = raw["body"].get("msg_id")
            if isinstance(candidate, int) and not isinstance(candidate, bool):
                message_id = candidate
        raise DecodeError(
            f"not a valid request envelope: {e.error_count()} error(s), first: {e.errors()[0]['msg']}",
            line=line,
            message_id=message_id,
        ) from e


def encode_response(envelope: Envelope[ResponsePayload]) -> str:
    """Serializes a reply to compact JSON terminated by a single newline."""
    try:
        return envelope.model_dump_json(by_alias=True) + "\n"
    except ValueError as e:
        # Report the request being answered, like every other phase does.
        raise EncodeError(f"could not serialize reply: {e}", message_id=envelope.body.in_reply_to) from e
