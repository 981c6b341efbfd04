import secrets

from fastapi import Request

API_KEY_HEADER = "x-api-key"
API_KEY_QUERY = "key"


def api_key_matches(provided: str | None, expected: str) -> bool:
    if not provided:
        return False
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def api_key_from_request(request: Request, *, allow_header: bool = True) -> str | None:
    """Return the key sent in the ``x-api-key`` header or the ``key`` query parameter."""
    if allow_header:
        header_value = request.headers.get(API_KEY_HEADER)
        if header_value:
            return header_value
    return request.query_params.get(API_KEY_QUERY)
