"""REST 适配层（FastAPI）。

POST / 或 POST /api/chat，请求体 {message, conversationHistory?}。
usage 字段保持上游的 snake_case，与 GraphQL 层不同。
"""

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from chat_relay.api.service import ChatRelay
from chat_relay.config.settings import Settings
from chat_relay.domain.exceptions import BusinessError, ValidationError
from chat_relay.infrastructure.logging.logger import logger


CHAT_PATHS = ("/", "/api/chat")

CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,OPTIONS,PATCH,DELETE,POST,PUT",
    "Access-Control-Allow-Headers": (
        "X-CSRF-Token, X-Requested-With, Accept, Accept-Version, Content-Length, "
        "Content-MD5, Content-Type, Date, X-Api-Version"
    ),
}

UPSTREAM_ERROR = "Error calling the DeepSeek API"


class ChatBody(BaseModel):
    """POST 请求体。字段名与前端保持一致（camelCase）。"""

    message: Optional[str] = None
    conversationHistory: Optional[List[Dict[str, Any]]] = None


def _error_response(exc: BusinessError) -> JSONResponse:
    if isinstance(exc, ValidationError):
        return JSONResponse(status_code=400, content={"success": False, "error": exc.message})
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": UPSTREAM_ERROR, "details": exc.message},
    )


def create_rest_app(settings: Optional[Settings] = None, relay: Optional[ChatRelay] = None) -> FastAPI:
    """构造 REST 应用。relay 缺省时按 settings 创建。"""

    relay = relay or ChatRelay(settings)
    app = FastAPI(title="DeepSeek Chat Relay (REST)", version="1.0.0")

    # --- CORS：所有来源，OPTIONS 直接 200 空响应 ---
    @app.middleware("http")
    async def allow_cors(request: Request, call_next):
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.error(f"Unhandled exception for {request.url}: {exc}", exc_info=True)
                response = JSONResponse(
                    status_code=500,
                    content={"success": False, "error": UPSTREAM_ERROR, "details": str(exc)},
                )
        response.headers.update(CORS_HEADERS)
        return response

    # --- 异常处理 ---
    @app.exception_handler(BusinessError)
    async def business_error_handler(request: Request, exc: BusinessError):
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info("rest.bad_request", extra={"extra": {"path": request.url.path, "errors": len(exc.errors())}})
        return JSONResponse(status_code=400, content={"success": False, "error": "Invalid request body"})

    # --- 路由 ---
    async def chat(body: ChatBody):
        reply = await relay.send_message(body.message, body.conversationHistory)
        return {
            "success": True,
            "message": reply.message,
            "usage": reply.usage.to_dict(),
        }

    async def method_not_allowed():
        return JSONResponse(
            status_code=405,
            content={"success": False, "error": "Only POST requests are supported"},
        )

    for path in CHAT_PATHS:
        app.add_api_route(path, chat, methods=["POST"])
        app.add_api_route(
            path,
            method_not_allowed,
            methods=["GET", "PUT", "PATCH", "DELETE", "HEAD"],
            include_in_schema=False,
        )

    return app
