"""Request ID helper for endpoints and error handlers.

The id is bound to ``request.state`` by ``RequestIdMiddleware`` and to the
logging context by the observability middleware; either source is accepted.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from phototrade.obs import logging as obs_logging

REQUEST_ID_ATTR = "request_id"


def get_request_id(request: Optional[Request] = None, default: str = "unknown") -> str:
    if request is not None:
        rid = getattr(request.state, REQUEST_ID_ATTR, None)
        if rid:
            return rid
    return obs_logging.current_request_id() or default
