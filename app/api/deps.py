# app/api/deps.py
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.auth import TokenClaims, TokenService, authenticate_bearer
from app.core.config import Settings
from app.core.security import CredentialStore

# Missing credentials are reported by the guard, not by HTTPBearer
optional_security = HTTPBearer(auto_error=False)


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_credential_store(request: Request) -> CredentialStore:
    return request.app.state.credentials


async def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    tokens: TokenService = Depends(get_token_service),
) -> TokenClaims:
    """
    Access guard for protected routes.

    Resolves the caller from ``Authorization: Bearer <token>``; raises
    AuthError (401 no token / expired, 403 invalid) otherwise. The returned
    claims' ``id`` scopes every data operation of the request.
    """
    token = credentials.credentials if credentials else None
    return authenticate_bearer(token, tokens)
