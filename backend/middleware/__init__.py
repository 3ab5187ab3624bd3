"""ASGI middleware making up the MOPS request pipeline."""

from middleware.access_log import access_log
from middleware.chain import Middleware, chain
from middleware.content_type import JSON_CONTENT_TYPE, default_json
from middleware.recovery import recovery
from middleware.request_id import REQUEST_ID_HEADER, RequestCounter, get_request_id, request_id
from middleware.response import ResponseRecorder

__all__ = [
    "JSON_CONTENT_TYPE",
    "REQUEST_ID_HEADER",
    "Middleware",
    "RequestCounter",
    "ResponseRecorder",
    "access_log",
    "chain",
    "default_json",
    "get_request_id",
    "recovery",
    "request_id",
]
