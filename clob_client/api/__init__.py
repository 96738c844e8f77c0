"""Transport, pagination and streaming for the CLOB client."""

from .transport import HTTPTransport, parse_response
from .pagination import CursorPaginator
from .websocket import StreamingClient

__all__ = ["HTTPTransport", "parse_response", "CursorPaginator", "StreamingClient"]
