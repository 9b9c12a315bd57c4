# auth.py
import secrets
import hashlib
import base64
import logging
import webbrowser
import urllib.parse
from pathlib import Path
from typing import Optional, Tuple

import requests

from .exceptions import StorageError

AUTHORIZE_URL = "https://www.dropbox.com/oauth2/authorize"
TOKEN_URL = "https://api.dropboxapi.com/oauth2/token"


def generate_pkce_challenge() -> Tuple[str, str]:
    """Generates a code verifier and a code challenge for PKCE."""
    code_verifier = secrets.token_urlsafe(64)
    hashed = hashlib.sha256(code_verifier.encode("utf-8")).digest()
    code_challenge = base64.urlsafe_b64encode(hashed).decode("utf-8").replace("=", "")
    return code_verifier, code_challenge


def build_authorize_url(app_key: str, code_challenge: str) -> str:
    auth_params = {
        "client_id": app_key,
        "response_type": "code",
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
        "token_access_type": "offline",
    }
    return AUTHORIZE_URL + "?" + urllib.parse.urlencode(auth_params)


def extract_auth_code(redirect_url: str) -> Optional[str]:
    """Parses the authorization code out of the URL the user pastes back."""
    parsed_url = urllib.parse.urlparse(redirect_url.strip())
    query_params = urllib.parse.parse_qs(parsed_url.query)
    return query_params.get("code", [None])[0]


def exchange_code(app_key: str, auth_code: str, code_verifier: str) -> str:
    """
    Exchanges an authorization code for a refresh token.
    Raises StorageError if Dropbox does not hand one back.
    """
    token_params = {
        "grant_type": "authorization_code",
        "code": auth_code,
        "client_id": app_key,
        "code_verifier": code_verifier,
    }
    response = requests.post(TOKEN_URL, data=token_params)
    response.raise_for_status()

    refresh_token = response.json().get("refresh_token")
    if not refresh_token:
        raise StorageError("Did not receive a refresh token from Dropbox.")
    return refresh_token


def save_refresh_token(refresh_token: str, token_file: Path):
    token_file.write_text(refresh_token)
    logging.info(f"Refresh token saved to {token_file}")


def get_refresh_token(app_key: str, token_file: Path) -> Optional[str]:
    """
    Guides the user through the Dropbox OAuth2 PKCE flow to get a refresh token.
    The token is saved to `token_file` and returned.
    """
    code_verifier, code_challenge = generate_pkce_challenge()
    auth_url = build_authorize_url(app_key, code_challenge)

    print("--- Dropbox Authorization ---")
    print("\n1. A browser window will open. Please authorize the application.")
    print("\n2. After authorization, you will be redirected to a blank page.")
    print("   Copy the FULL URL from your browser's address bar.\n")

    webbrowser.open(auth_url)

    redirect_url_str = input("3. Paste the full redirect URL here and press Enter:\n")
    auth_code = extract_auth_code(redirect_url_str)
    if not auth_code:
        logging.error("Could not find 'code' in the provided URL.")
        return None

    try:
        refresh_token = exchange_code(app_key, auth_code, code_verifier)
    except requests.exceptions.RequestException as e:
        body = e.response.text if e.response is not None else "N/A"
        logging.error(f"An error occurred during the token exchange: {e}. Response body: {body}")
        return None
    except StorageError as e:
        logging.error(str(e))
        return None

    save_refresh_token(refresh_token, token_file)
    print(f"\nSuccess! Refresh token has been saved to '{token_file}'.")
    return refresh_token
