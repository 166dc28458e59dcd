from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from src.identity.api.http.deps import (
    get_identity_resolver,
    get_session_attributes,
    get_session_id,
)
from src.identity.core.models import PreAuthenticatedAuthentication
from src.identity.core.services import IdentityResolver, SessionAttributeService
from src.identity.core.services.user_mapping import draft_from_headers
from src.identity.runtime.context import get_config

router_identity = APIRouter(tags=["identity"])


@router_identity.get("/whoami")
async def whoami(
    request: Request,
    session_id: str = Depends(get_session_id),
    session_attributes: SessionAttributeService = Depends(get_session_attributes),
    identity_resolver: IdentityResolver = Depends(get_identity_resolver),
) -> dict[str, Any]:
    """Identity of the caller.

    Requests vouched for by the trusted proxy are resolved from their
    headers; everything else needs a session established by a login.
    """
    draft = draft_from_headers(request.headers, get_config().security.header_authentication)
    if draft is not None:
        if not draft.identifier:
            raise HTTPException(status_code=401, detail="Not authenticated")
        auth = PreAuthenticatedAuthentication(
            username=draft.identifier, headers=dict(request.headers)
        )
        user = await identity_resolver.resolve(auth, draft)
        return {"user": user.model_dump(), "provider": None}

    identity = await session_attributes.get_identity(session_id)
    if identity is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return {"user": identity.user.model_dump(), "provider": identity.provider}
