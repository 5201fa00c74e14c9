"""
HTTP surface for Secure-TX (aiohttp).

Routes:
    POST /tx/encrypt        {partyId, payload} -> 201 SecureRecord
    GET  /tx                -> 200 [SecureRecord], newest first
    GET  /tx/{id}           -> 200 SecureRecord | 404
    POST /tx/{id}/decrypt   -> 200 {payload} | 404 | 400
    GET  /health            -> 200 {status: ok}
    OPTIONS *               -> 204, only when CORS is enabled

Security Note:
    Structural and authentication failures return the same generic 400
    body; the field or layer that failed is logged server-side only.
"""
import logging
from typing import Any, Optional

import orjson
from aiohttp import web
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .service import TxService
from .vault.exceptions import (
    DecryptionError,
    InvalidFieldError,
    InvalidPayloadError,
    RecordNotFound,
)

logger = logging.getLogger("secure_tx.web")

TX_SERVICE = web.AppKey("tx_service", TxService)

_TAMPER_MESSAGE = DecryptionError.default_message

CORS_ALLOW_METHODS = "GET, POST, OPTIONS"
CORS_ALLOW_HEADERS = "Content-Type"


class EncryptRequest(BaseModel):
    """Body of ``POST /tx/encrypt``."""

    model_config = ConfigDict(populate_by_name=True)

    party_id: str = Field(alias="partyId", min_length=1)
    payload: Any


def json_response(data: Any, status: int = 200) -> web.Response:
    return web.Response(
        body=orjson.dumps(data),
        status=status,
        content_type="application/json",
    )


def error_response(message: str, status: int, details: Any = None) -> web.Response:
    body: dict[str, Any] = {"error": message}
    if details is not None:
        body["details"] = details
    return json_response(body, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Map Secure-TX exceptions to HTTP responses."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except RecordNotFound:
        return error_response("Record not found", 404)
    except InvalidPayloadError as err:
        return error_response("Validation Error", 400, [{"msg": str(err)}])
    except InvalidFieldError as err:
        logger.warning(
            "Security event: structural check failed path=%s field=%s",
            request.path, err.field,
        )
        return error_response(_TAMPER_MESSAGE, 400)
    except DecryptionError:
        logger.warning(
            "Security event: authentication failed path=%s", request.path,
        )
        return error_response(_TAMPER_MESSAGE, 400)
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return error_response("Internal Server Error", 500)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def encrypt_handler(request: web.Request) -> web.Response:
    try:
        body = orjson.loads(await request.read())
    except orjson.JSONDecodeError:
        return error_response(
            "Validation Error", 400, [{"msg": "request body must be valid JSON"}],
        )
    try:
        data = EncryptRequest.model_validate(body)
    except ValidationError as err:
        details = [
            {"loc": list(e["loc"]), "msg": e["msg"]}
            for e in err.errors(include_input=False, include_url=False)
        ]
        return error_response("Validation Error", 400, details)
    record = await request.app[TX_SERVICE].encrypt_and_store(
        data.party_id, data.payload,
    )
    return json_response(record.to_dict(), status=201)


async def list_handler(request: web.Request) -> web.Response:
    records = await request.app[TX_SERVICE].list_records()
    return json_response([r.to_dict() for r in records])


async def get_handler(request: web.Request) -> web.Response:
    record = await request.app[TX_SERVICE].get_record(request.match_info["id"])
    return json_response(record.to_dict())


async def decrypt_handler(request: web.Request) -> web.Response:
    payload = await request.app[TX_SERVICE].decrypt_record(request.match_info["id"])
    return json_response({"payload": payload})


async def health_handler(request: web.Request) -> web.Response:
    return json_response({"status": "ok"})


async def preflight_handler(request: web.Request) -> web.Response:
    return web.Response(status=204)


def cors_headers(origin: str):
    """Response-prepare hook adding CORS headers for one allowed origin."""

    async def _on_prepare(request: web.Request, response: web.StreamResponse) -> None:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Methods"] = CORS_ALLOW_METHODS
        response.headers["Access-Control-Allow-Headers"] = CORS_ALLOW_HEADERS

    return _on_prepare


def create_app(
    service: TxService, cors_origin: Optional[str] = None
) -> web.Application:
    """Build the aiohttp application around an explicitly passed service.

    CORS is off unless ``cors_origin`` is given (``*`` allows any origin).
    """
    app = web.Application(middlewares=[error_middleware])
    app[TX_SERVICE] = service
    app.router.add_post("/tx/encrypt", encrypt_handler)
    app.router.add_get("/tx", list_handler)
    app.router.add_get("/tx/{id}", get_handler)
    app.router.add_post("/tx/{id}/decrypt", decrypt_handler)
    app.router.add_get("/health", health_handler)
    if cors_origin:
        app.router.add_route("OPTIONS", "/{tail:.*}", preflight_handler)
        app.on_response_prepare.append(cors_headers(cors_origin))
        logger.info("CORS enabled for origin %s", cors_origin)
    return app
