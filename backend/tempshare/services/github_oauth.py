# tempshare/services/github_oauth.py
import logging
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urlencode
import httpx
from tempshare.core.config import settings
from tempshare.core.exceptions import IdentityProviderError
from tempshare.core.schemas.auth import ExternalIdentity

logger = logging.getLogger(__name__)

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_API_URL = "https://api.github.com"


class IdentityProvider(ABC):
    """Внешний провайдер: обменивает код авторизации на проверенную личность"""
    name: str

    @abstractmethod
    def authorize_url(self, redirect_uri: str, state: str) -> str:
        pass  # pragma: no cover

    @abstractmethod
    async def exchange_code(self, code: str, redirect_uri: str) -> ExternalIdentity:
        pass  # pragma: no cover


class GitHubIdentityProvider(IdentityProvider):
    name = "github"

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        timeout: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id if client_id is not None else settings.github.GITHUB_CLIENT_ID
        self.client_secret = (
            client_secret if client_secret is not None
            else settings.github.GITHUB_CLIENT_SECRET.get_secret_value()
        )
        self.timeout = timeout or settings.github.GITHUB_TIMEOUT
        self.transport = transport

    def authorize_url(self, redirect_uri: str, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "scope": "read:user user:email",
            "response_type": "code",
            "state": state,
        }
        return f"{GITHUB_AUTHORIZE_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str, redirect_uri: str) -> ExternalIdentity:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                token_response = await client.post(
                    GITHUB_TOKEN_URL,
                    headers={"Accept": "application/json"},
                    json={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "code": code,
                        "redirect_uri": redirect_uri,
                    },
                )
                token_response.raise_for_status()
                token_data = token_response.json()
                if not isinstance(token_data, dict):
                    token_data = {}
                access_token = token_data.get("access_token")
                if not access_token:
                    logger.error(f"GitHub token error: {token_data.get('error', 'no access_token')}")
                    raise IdentityProviderError("Failed to get access token")

                api_headers = {
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/vnd.github+json",
                    "User-Agent": settings.app_name,
                }
                user_response = await client.get(f"{GITHUB_API_URL}/user", headers=api_headers)
                user_response.raise_for_status()
                github_user = user_response.json()
                if not isinstance(github_user, dict) or github_user.get("id") is None:
                    logger.error("GitHub user response has no account id")
                    raise IdentityProviderError("Failed to get user info")

                email = github_user.get("email")
                emails_response = await client.get(f"{GITHUB_API_URL}/user/emails", headers=api_headers)
                if emails_response.is_success:
                    emails = emails_response.json()
                    if not isinstance(emails, list):
                        logger.warning("GitHub emails response is not a list, using profile email")
                        emails = []
                    primary = next(
                        (
                            e for e in emails
                            if isinstance(e, dict) and e.get("primary") and e.get("verified", True)
                        ),
                        None,
                    )
                    if primary:
                        email = primary.get("email")
                else:
                    logger.warning(f"GitHub emails request failed with status {emails_response.status_code}")
            except httpx.HTTPError as e:
                logger.error(f"GitHub request failed: {e}")
                raise IdentityProviderError("Failed to get user info") from e
            except ValueError as e:
                # Тело ответа не JSON
                logger.error(f"GitHub returned malformed JSON: {e}")
                raise IdentityProviderError("Failed to get user info") from e

        return ExternalIdentity(
            provider=self.name,
            account_id=str(github_user["id"]),
            email=email,
            name=github_user.get("name") or github_user.get("login"),
            avatar_url=github_user.get("avatar_url"),
            access_token=access_token,
        )
