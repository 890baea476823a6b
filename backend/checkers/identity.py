"""Identity provider client (Discord OAuth2).

Only two calls are needed: trading an authorization code for an access
token, and resolving an access token to the user's profile.
"""

import requests

from checkers.services.match.sessions import Profile


class IdentityError(Exception):
    """The identity provider could not vouch for the user."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


def _json_body(response):
    try:
        return response.json()
    except ValueError:
        return {'error': response.text}


def exchange_code(config, code: str) -> str:
    """Exchange an OAuth authorization code for an access token."""
    try:
        response = requests.post(
            f"{config['DISCORD_API_BASE']}/oauth2/token",
            data={
                'client_id': config.get('DISCORD_CLIENT_ID'),
                'client_secret': config.get('DISCORD_CLIENT_SECRET'),
                'grant_type': 'authorization_code',
                'code': code,
            },
            headers={'Content-Type': 'application/x-www-form-urlencoded'},
            timeout=config.get('IDENTITY_TIMEOUT_SEC', 10),
        )
    except requests.RequestException as exc:
        raise IdentityError(f"token exchange failed: {exc}") from exc

    if not response.ok:
        raise IdentityError('token exchange rejected', status_code=response.status_code,
                            payload=_json_body(response))

    access_token = _json_body(response).get('access_token')
    if not access_token:
        raise IdentityError('No access token received from identity provider', status_code=502)
    return access_token


def fetch_profile(config, access_token: str) -> Profile:
    """Resolve an access token to the user's identity, display name and avatar."""
    try:
        response = requests.get(
            f"{config['DISCORD_API_BASE']}/users/@me",
            headers={'Authorization': f"Bearer {access_token}"},
            timeout=config.get('IDENTITY_TIMEOUT_SEC', 10),
        )
    except requests.RequestException as exc:
        raise IdentityError(f"profile lookup failed: {exc}") from exc

    if not response.ok:
        raise IdentityError('access token rejected', status_code=response.status_code,
                            payload=_json_body(response))

    profile = Profile.from_payload(_json_body(response))
    if profile is None:
        raise IdentityError('identity provider returned no user id', status_code=502)
    return profile
