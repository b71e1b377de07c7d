from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import Optional

_request_id: ContextVar[str] = ContextVar("_request_id", default="-")

# Accept caller-supplied ids only when they look like opaque tokens
_INCOMING_RID_RE = re.compile(r"^[A-Za-z0-9_-]{8,64}$")

def new_request_id() -> str:
    rid = uuid.uuid4().hex[:12]
    _request_id.set(rid)
    return rid

def bind_request_id(incoming: Optional[str]) -> str:
    """Reuse a well-formed X-Request-Id from the caller, otherwise mint one."""
    if incoming and _INCOMING_RID_RE.match(incoming.strip()):
        rid = incoming.strip()
        _request_id.set(rid)
        return rid
    return new_request_id()

def get_request_id() -> str:
    return _request_id.get()
