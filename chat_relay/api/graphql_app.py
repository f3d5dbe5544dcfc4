"""GraphQL 适配层。

Schema 以 SDL 声明（graphql-core build_schema），resolver 挂到对应字段上；
HTTP 部分由 FastAPI 承载。两种部署形态共用同一份 schema：

- server：只在 /graphql 提供服务；
- edge：/graphql 与 / 都提供服务，配置由运行时绑定注入。

sendMessage 转发给 ChatRelay，其余 Query 字段都是固定数据的占位实现。
"""

import json
from html import escape
from inspect import isawaitable
from string import Template
from typing import Any, Dict, Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from graphql import (
    GraphQLError,
    GraphQLSchema,
    OperationType,
    build_schema,
    execute,
    get_operation_ast,
    parse,
    validate,
)
from starlette.exceptions import HTTPException as StarletteHTTPException

from chat_relay.api.service import ChatRelay
from chat_relay.config.settings import Settings, settings_from_bindings
from chat_relay.domain.exceptions import BusinessError, ConfigurationError, ValidationError
from chat_relay.infrastructure.logging.logger import logger


TYPE_DEFS = """
  # Input type: one conversation history entry
  input ConversationInput {
    role: String!
    content: String!
  }

  # Token usage statistics
  type Usage {
    promptTokens: Int
    completionTokens: Int
    totalTokens: Int
  }

  type ChatResponse {
    message: String!
    usage: Usage
  }

  type ClearResponse {
    success: Boolean!
  }

  type ConversationMessage {
    id: ID!
    role: String!
    content: String!
    timestamp: String!
  }

  type User {
    id: ID!
    name: String
    email: String
  }

  type Mutation {
    # Send a message to the model
    sendMessage(
      message: String!
      conversationHistory: [ConversationInput!]
    ): ChatResponse!

    # History lives on the client, so this only acknowledges
    clearConversation: ClearResponse
  }

  type Query {
    conversationHistory(limit: Int): [ConversationMessage!]
    user: User
    health: String!
  }
"""

HEALTH_MESSAGE = "GraphQL Server is running!"

DEFAULT_QUERY = """# Welcome to the DeepSeek Chat GraphQL API
#
# Example operations:

# 1. Health check
query {
  health
}

# 2. Send a message (with conversation history)
mutation {
  sendMessage(
    message: "Hello, please introduce yourself"
    conversationHistory: []
  ) {
    message
    usage {
      promptTokens
      completionTokens
      totalTokens
    }
  }
}

# 3. Clear the conversation
mutation {
  clearConversation {
    success
  }
}
"""

GRAPHIQL_HTML = Template("""<!doctype html>
<html>
  <head>
    <meta charset="utf-8" />
    <title>$title</title>
    <link rel="stylesheet" href="https://unpkg.com/graphiql@3/graphiql.min.css" />
  </head>
  <body style="margin: 0;">
    <div id="graphiql" style="height: 100vh;"></div>
    <script crossorigin src="https://unpkg.com/react@18/umd/react.production.min.js"></script>
    <script crossorigin src="https://unpkg.com/react-dom@18/umd/react-dom.production.min.js"></script>
    <script crossorigin src="https://unpkg.com/graphiql@3/graphiql.min.js"></script>
    <script>
      const fetcher = GraphiQL.createFetcher({ url: window.location.pathname });
      ReactDOM.createRoot(document.getElementById("graphiql")).render(
        React.createElement(GraphiQL, { fetcher: fetcher, defaultQuery: $default_query })
      );
    </script>
  </body>
</html>
""")


# ---- resolvers ----

def resolve_health(*_) -> str:
    return HEALTH_MESSAGE


def resolve_conversation_history(_, info, limit: Optional[int] = None) -> list:
    # 历史由前端管理，服务端没有可返回的记录
    return []


def resolve_user(*_) -> Dict[str, Any]:
    return {"id": "1", "name": "DeepSeek User", "email": None}


async def resolve_send_message(_, info, message: str, conversationHistory=None) -> Dict[str, Any]:
    relay: ChatRelay = info.context["relay"]
    try:
        reply = await relay.send_message(message, conversationHistory)
    except (ValidationError, ConfigurationError) as e:
        raise GraphQLError(e.message, original_error=e)
    except BusinessError as e:
        raise GraphQLError(f"AI service call failed: {e.message}", original_error=e)
    return {"message": reply.message, "usage": reply.usage.to_camel()}


def resolve_clear_conversation(_, info) -> Dict[str, bool]:
    return info.context["relay"].clear_conversation()


def build_relay_schema() -> GraphQLSchema:
    """从 SDL 构建 schema 并挂上 resolver。"""

    schema = build_schema(TYPE_DEFS)
    query = schema.query_type.fields
    query["health"].resolve = resolve_health
    query["conversationHistory"].resolve = resolve_conversation_history
    query["user"].resolve = resolve_user
    mutation = schema.mutation_type.fields
    mutation["sendMessage"].resolve = resolve_send_message
    mutation["clearConversation"].resolve = resolve_clear_conversation
    return schema


def render_graphiql(title: str) -> str:
    default_query = json.dumps(DEFAULT_QUERY).replace("</", "<\\/")
    return GRAPHIQL_HTML.substitute(title=escape(title), default_query=default_query)


# ---- HTTP ----

def _request_error(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"errors": [{"message": message}]})


async def _read_params(request: Request) -> Dict[str, Any]:
    """取出 query / variables / operationName；GET 走查询串，POST 走 JSON。"""

    if request.method == "GET":
        params: Dict[str, Any] = dict(request.query_params)
        raw_variables = params.get("variables")
        if raw_variables:
            try:
                params["variables"] = json.loads(raw_variables)
            except ValueError:
                raise ValueError("Variables are invalid JSON")
        return params
    try:
        body = await request.json()
    except ValueError:
        raise ValueError("POST body sent invalid JSON")
    if not isinstance(body, dict):
        raise ValueError("POST body is expected to be a JSON object")
    return body


async def run_graphql(request: Request, schema: GraphQLSchema, context: Dict[str, Any]) -> JSONResponse:
    try:
        params = await _read_params(request)
    except ValueError as e:
        return _request_error(str(e))

    source = params.get("query")
    if not isinstance(source, str) or not source.strip():
        return _request_error("Must provide query string")
    variables = params.get("variables")
    if variables is not None and not isinstance(variables, dict):
        return _request_error("Variables must be an object")
    operation_name = params.get("operationName")

    try:
        document = parse(source)
    except GraphQLError as e:
        return JSONResponse(status_code=400, content={"errors": [e.formatted]})

    if request.method == "GET":
        operation = get_operation_ast(document, operation_name)
        if operation is not None and operation.operation != OperationType.QUERY:
            return _request_error("Can only perform a query operation from a GET request", 405)

    validation_errors = validate(schema, document)
    if validation_errors:
        return JSONResponse(status_code=400, content={"errors": [e.formatted for e in validation_errors]})

    result = execute(
        schema,
        document,
        context_value=context,
        variable_values=variables,
        operation_name=operation_name,
    )
    if isawaitable(result):
        result = await result
    if result.errors:
        logger.info("graphql.errors", extra={"extra": {
            "operation": operation_name,
            "errors": [e.message for e in result.errors],
        }})
    return JSONResponse(content=result.formatted)


def create_graphql_app(
    settings: Optional[Settings] = None,
    relay: Optional[ChatRelay] = None,
    edge: bool = False,
) -> FastAPI:
    """构造 GraphQL 应用。

    Args:
        settings: 注入的配置；edge 形态下由运行时绑定转换而来。
        relay: 可选的 ChatRelay，缺省时按 settings 创建。
        edge: 为真时额外在 / 上提供服务。
    """

    relay = relay or ChatRelay(settings)
    schema = build_relay_schema()
    title = "DeepSeek Chat GraphQL API" if edge else "DeepSeek Chat GraphQL API (Server)"
    endpoints = ("/graphql", "/") if edge else ("/graphql",)

    app = FastAPI(title=title, version="1.0.0", docs_url=None, redoc_url=None, openapi_url=None)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def not_found_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code != 404:
            return await http_exception_handler(request, exc)
        return JSONResponse(
            status_code=404,
            content={
                "error": "Requested path not found",
                "message": "Use /graphql to access the GraphQL API",
                "path": request.url.path,
            },
            headers={"Access-Control-Allow-Origin": "*"},
        )

    async def graphql_get(request: Request):
        if "query" not in request.query_params:
            return HTMLResponse(render_graphiql(title))
        return await run_graphql(request, schema, {"relay": relay, "request": request})

    async def graphql_post(request: Request):
        return await run_graphql(request, schema, {"relay": relay, "request": request})

    for path in endpoints:
        app.add_api_route(path, graphql_get, methods=["GET"], include_in_schema=False)
        app.add_api_route(path, graphql_post, methods=["POST"], include_in_schema=False)

    return app


def create_edge_app(bindings: Mapping[str, Any], relay: Optional[ChatRelay] = None) -> FastAPI:
    """Edge 形态：配置来自运行时绑定，/ 与 /graphql 同时提供服务。"""

    return create_graphql_app(settings_from_bindings(bindings), relay=relay, edge=True)
