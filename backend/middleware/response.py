"""Response instrumentation for ASGI ``send`` callables.

``ResponseRecorder`` sits between an app and the server's ``send`` and
notes what went out: the status code, the number of body bytes, and, for
error responses, the body text itself (handlers write a short error string
on their failure paths).
"""

from starlette.types import Message, Send


class ResponseRecorder:
    """Wrap ``send`` and record status, size and error body of a response.

    Attributes:
        status_code: Status of the first response start, or 200 when a body
            message arrives first. Zero until something is written.
        bytes_written: Sum of all body bytes sent so far.
        written: Whether the status has been recorded.
    """

    def __init__(self, send: Send) -> None:
        self._send = send
        self.status_code = 0
        self.bytes_written = 0
        self.written = False
        self._error_chunks: list[bytes] = []

    @property
    def error_body(self) -> str | None:
        if self.status_code < 400 or not self._error_chunks:
            return None
        return b"".join(self._error_chunks).decode("utf-8", errors="replace")

    def _record_status(self, status_code: int) -> None:
        if not self.written:
            self.written = True
            self.status_code = status_code

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self._record_status(message["status"])
        elif message["type"] == "http.response.body":
            self._record_status(200)
            body = message.get("body", b"")
            self.bytes_written += len(body)
            if self.status_code >= 400 and body:
                self._error_chunks.append(body)

        await self._send(message)
