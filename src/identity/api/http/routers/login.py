"""Federated login endpoints (OAuth2 authorization code flow)."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from loguru import logger

from src.identity.api.http.deps import (
    get_identity_resolver,
    get_oidc_client_service,
    get_redirect_capture,
    get_session_attributes,
    get_session_id,
)
from src.identity.core.models import LoginState, OAuth2Authentication, SessionIdentity
from src.identity.core.security import (
    generate_pkce_pair,
    generate_session_id,
    generate_state,
)
from src.identity.core.services import (
    IdentityResolver,
    OidcClientService,
    RedirectCaptureService,
    SessionAttributeService,
)
from src.identity.core.services.user_mapping import draft_from_oidc_claims
from src.identity.runtime.context import get_config

router_login = APIRouter(tags=["login"])


@router_login.get("/oauth2/authorization/{provider}")
async def initiate_login(
    provider: str,
    session_id: str = Depends(get_session_id),
    oidc_client_service: OidcClientService = Depends(get_oidc_client_service),
    session_attributes: SessionAttributeService = Depends(get_session_attributes),
) -> RedirectResponse:
    """Start the login with ``provider``.

    A ``redirect`` query parameter has already been captured and removed
    by ``RedirectCaptureMiddleware`` at this point.
    """
    if provider not in get_config().oidc.providers:
        raise HTTPException(status_code=404, detail=f"Unknown provider: {provider}")

    state = generate_state()
    code_verifier, code_challenge = generate_pkce_pair()
    await session_attributes.save_login_state(
        session_id,
        LoginState(state=state, provider=provider, code_verifier=code_verifier),
    )

    auth_url = oidc_client_service.authorization_url(provider, state, code_challenge)
    return RedirectResponse(url=auth_url, status_code=status.HTTP_302_FOUND)


@router_login.get("/login/oauth2/code/{provider}")
async def handle_callback(
    request: Request,
    provider: str,
    state: str | None = None,
    code: str | None = None,
    error: str | None = None,
    session_id: str = Depends(get_session_id),
    oidc_client_service: OidcClientService = Depends(get_oidc_client_service),
    session_attributes: SessionAttributeService = Depends(get_session_attributes),
    identity_resolver: IdentityResolver = Depends(get_identity_resolver),
    redirect_capture: RedirectCaptureService = Depends(get_redirect_capture),
) -> RedirectResponse:
    """Finish the login: resolve the user identity and redirect.

    Goes to the redirect target captured when the login started, or to
    ``app.default_login_success_url``.
    """
    login_state = await session_attributes.pop_login_state(session_id)
    if login_state is None or login_state.state != state or login_state.provider != provider:
        raise HTTPException(status_code=400, detail="Invalid or expired login state")

    # only surfaced once the state is known to belong to this session
    if error or not code:
        logger.info("Provider {} returned no authorization code: {}", provider, error)
        raise HTTPException(status_code=401, detail="Authentication failed")

    tokens = await oidc_client_service.exchange_code_for_tokens(
        code=code, pkce_verifier=login_state.code_verifier, provider=provider
    )
    claims = await oidc_client_service.get_user_claims(tokens.access_token, provider)

    auth = OAuth2Authentication(provider=provider, claims=claims)
    user = await identity_resolver.resolve(auth, draft_from_oidc_claims(provider, claims))

    target = await redirect_capture.target_after_login(session_id)

    # fresh session id once authenticated, the pre-login one is discarded
    await session_attributes.clear(session_id)
    new_session_id = generate_session_id()
    await session_attributes.save_identity(
        new_session_id, SessionIdentity(user=user, provider=provider)
    )
    request.state.session_id = new_session_id

    return RedirectResponse(url=target, status_code=status.HTTP_302_FOUND)
