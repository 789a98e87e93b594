"""Request pipeline shared by every route.

``build_middleware`` returns the ordered list handed to ``FastAPI`` at
construction time. Starlette wraps the first entry outermost, so the
cross-origin injector sees every response, including the ones the JSON body
parser short-circuits. The body parser sits directly in front of the router
and runs before any handler.
"""

import json
from typing import List

from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers, MutableHeaders
from starlette.middleware import Middleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

DEFAULT_BODY_LIMIT = 100 * 1024


class MalformedJSONError(ValueError):
    pass


def parse_json_body(body: bytes):
    """Parse a request body the way a strict JSON body parser does.

    A zero-length body parses to ``{}``; anything other than an object or
    array at the top level, whitespace-only bodies included, is rejected.
    """
    if not body:
        return {}

    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedJSONError("Request body is not valid UTF-8") from exc

    stripped = text.lstrip()
    if not stripped or stripped[0] not in "{[":
        raise MalformedJSONError("JSON body must be an object or an array")

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedJSONError(f"Malformed JSON body: {exc.msg}") from exc


def is_json_request(headers: Headers) -> bool:
    content_type = headers.get("content-type", "")
    return content_type.split(";", 1)[0].strip().lower() == "application/json"


class JSONBodyMiddleware:
    """Parse ``application/json`` bodies into ``request.state.json_body``.

    The parsed value is re-encoded and replayed to the downstream app, so
    FastAPI validates exactly what the parser accepted. Other content types
    pass through unread.
    """

    def __init__(self, app: ASGIApp, limit: int = DEFAULT_BODY_LIMIT):
        self.app = app
        self.limit = limit

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not is_json_request(Headers(scope=scope)):
            await self.app(scope, receive, send)
            return

        chunks = []
        size = 0
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.limit:
                response = JSONResponse({"detail": "Request entity too large"}, status_code=413)
                await response(scope, receive, send)
                return
            chunks.append(chunk)
            more_body = message.get("more_body", False)

        body = b"".join(chunks)
        try:
            parsed = parse_json_body(body)
        except MalformedJSONError as exc:
            response = JSONResponse({"detail": str(exc)}, status_code=400)
            await response(scope, receive, send)
            return

        scope.setdefault("state", {})["json_body"] = parsed
        normalized = json.dumps(parsed).encode("utf-8")

        replayed = False

        async def replay_receive() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": normalized, "more_body": False}
            return await receive()

        await self.app(scope, replay_receive, send)


class PermissiveCORSMiddleware(CORSMiddleware):
    """CORS allowing any origin, method and header.

    Preflight and ``Origin``-bearing requests go through Starlette's
    handling; requests without an ``Origin`` header still get
    ``access-control-allow-origin: *`` on the response. An error raised
    before any response starts is answered with a 500 carrying the header.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(
            app,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_with_origin(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
                headers = MutableHeaders(scope=message)
                headers.setdefault("access-control-allow-origin", "*")
            await send(message)

        try:
            if "origin" in Headers(scope=scope):
                await super().__call__(scope, receive, send_with_origin)
            else:
                await self.app(scope, receive, send_with_origin)
        except Exception:
            # Answer here so the 500 carries the header; the server still
            # logs the re-raised error.
            if response_started:
                raise
            response = JSONResponse({"detail": "Internal Server Error"}, status_code=500)
            await response(scope, receive, send_with_origin)
            raise


def build_middleware(body_limit: int = DEFAULT_BODY_LIMIT) -> List[Middleware]:
    return [
        Middleware(PermissiveCORSMiddleware),
        Middleware(JSONBodyMiddleware, limit=body_limit),
    ]
