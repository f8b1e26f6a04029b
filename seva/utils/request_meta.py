"""Client metadata pulled from the incoming request."""
from fastapi import Request

UNKNOWN = "Unknown"


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or UNKNOWN
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN


def user_agent(request: Request) -> str:
    return request.headers.get("user-agent") or UNKNOWN
