"""JSON-RPC 2.0 wire model."""

import json
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from ..llm_core.exceptions import MalformedMessageError

JSONRPC_VERSION = "2.0"

# Standard error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

RequestId = Union[int, str]


class JsonRpcErrorObject(BaseModel):
    """The ``error`` member of an error response."""

    model_config = ConfigDict(extra="allow")

    code: int
    message: str
    data: Optional[Any] = None


class JsonRpcMessage(BaseModel):
    """
    One JSON-RPC 2.0 message in any of its four shapes.

    The shape is derived from which members are present:

    * request: ``method`` and neither ``result`` nor ``error``; a request
      without ``id`` is a notification.
    * response: ``result`` present, even when it is ``null``.
    * error: ``error`` present.

    Presence is tracked through ``model_fields_set`` so that ``"result": null``
    and a missing ``result`` are told apart.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    jsonrpc: str = JSONRPC_VERSION
    id: Optional[RequestId] = None
    method: Optional[str] = None
    params: Optional[Any] = None
    result: Optional[Any] = None
    error: Optional[JsonRpcErrorObject] = None

    # --- Constructors ---------------------------------------------------------

    @classmethod
    def request(cls, request_id: RequestId, method: str, params: Optional[Dict[str, Any]] = None) -> "JsonRpcMessage":
        if params is None:
            return cls(id=request_id, method=method)
        return cls(id=request_id, method=method, params=params)

    @classmethod
    def notification(cls, method: str, params: Optional[Dict[str, Any]] = None) -> "JsonRpcMessage":
        if params is None:
            return cls(method=method)
        return cls(method=method, params=params)

    @classmethod
    def response(cls, request_id: RequestId, result: Any) -> "JsonRpcMessage":
        return cls(id=request_id, result=result)

    @classmethod
    def error_response(
        cls, request_id: Optional[RequestId], code: int, message: str, data: Optional[Any] = None
    ) -> "JsonRpcMessage":
        error = JsonRpcErrorObject(code=code, message=message, data=data)
        return cls(id=request_id, error=error)

    # --- Classification -------------------------------------------------------

    @property
    def is_response(self) -> bool:
        return "result" in self.model_fields_set

    @property
    def is_error(self) -> bool:
        return "error" in self.model_fields_set and self.error is not None

    @property
    def is_request(self) -> bool:
        """True for requests and notifications."""
        return self.method is not None and not self.is_response and not self.is_error

    @property
    def is_notification(self) -> bool:
        return self.is_request and self.id is None

    # --- Serialization --------------------------------------------------------

    def to_wire(self) -> Dict[str, Any]:
        """Return the message as a JSON-compatible dict containing only the members that were set."""
        payload = self.model_dump(exclude_unset=True, exclude_none=False)
        payload["jsonrpc"] = JSONRPC_VERSION
        if self.error is not None:
            payload["error"] = self.error.model_dump(exclude_none=True)
        return payload

    def dump(self) -> str:
        return json.dumps(self.to_wire())

    @classmethod
    def parse(cls, raw: Union[str, bytes, Dict[str, Any]]) -> "JsonRpcMessage":
        """
        Parse an inbound payload.

        Args:
            raw: Serialized JSON text or an already decoded object.

        Returns:
            The parsed message.

        Raises:
            MalformedMessageError: If the payload is not JSON, not an object, or matches none of
                the JSON-RPC 2.0 shapes.
        """
        if isinstance(raw, (str, bytes)):
            try:
                data = json.loads(raw)
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise MalformedMessageError(f"Invalid JSON: {exc}") from exc
        else:
            data = raw

        if not isinstance(data, dict):
            raise MalformedMessageError(f"Expected a JSON object, got {type(data).__name__}.")
        if data.get("jsonrpc") != JSONRPC_VERSION:
            raise MalformedMessageError(f"Unsupported JSON-RPC version: {data.get('jsonrpc')!r}")

        try:
            message = cls.model_validate(data)
        except ValidationError as exc:
            raise MalformedMessageError(f"Invalid JSON-RPC message: {exc}") from exc

        if not (message.is_request or message.is_response or message.is_error):
            raise MalformedMessageError("Message has neither 'method', 'result' nor 'error'.")
        if (message.is_response or message.is_error) and "id" not in message.model_fields_set:
            raise MalformedMessageError("Response without 'id'.")
        return message
