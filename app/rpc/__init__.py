"""Generic RPC-style model endpoint"""

from app.rpc.handler import HandlerOptions, RequestHandler, RpcResponse

__all__ = [
    "HandlerOptions",
    "RequestHandler",
    "RpcResponse",
]
