#!/usr/bin/env python3
"""
WHO ICD-11 API Client
---------------------
- OAuth2 client-credentials token, fetched lazily and cached for the whole run
- codeinfo lookup: code -> stemId
- entity lookup: stem/entity URI -> full MMS detail record

Every GET is a single attempt with a bounded timeout. A failed lookup returns
None so the loader can skip that code; only a failed token exchange is fatal.
"""

import logging
from typing import Any, Dict, Optional

import requests

from config.config_loader import build_release_base_url

log = logging.getLogger(__name__)

# -----------------------
# Constants
# -----------------------
DEFAULT_TIMEOUT_SECS = 10
TOKEN_SCOPE = "icdapi_access"
GRANT_TYPE = "client_credentials"
MMS_DELIMITER = "/mms/"


class TokenAcquisitionError(RuntimeError):
    """Raised when the access token cannot be obtained; aborts the whole run."""


def extract_entity_path(entity_ref: str) -> str:
    """
    Return the part after '/mms/' of a linearization URI, e.g.
    http://id.who.int/icd/release/11/2025-01/mms/1256772020/unspecified -> 1256772020/unspecified
    """
    parts = entity_ref.split(MMS_DELIMITER, 1)
    if len(parts) > 1:
        return parts[1]
    log.warning(f"Delimiter '{MMS_DELIMITER}' not found in entity reference '{entity_ref}'. Using it unchanged.")
    return entity_ref


def _log_http_error(context: str, error: requests.RequestException) -> None:
    log.error(f"{context}: {error}")
    response = getattr(error, "response", None)
    if response is not None:
        log.error(f"Error details (HTTP {response.status_code}): {response.text}")


class WHOICD11Client:
    """Holds the cached token and the header set derived from it."""

    def __init__(self, settings: Dict[str, Any], session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        self.settings = settings
        self.session = session or requests.Session()
        self.timeout = timeout or settings.get("timeout_seconds") or DEFAULT_TIMEOUT_SECS
        self.release_base_url = build_release_base_url(settings)
        self.access_token: Optional[str] = None
        self.headers = {
            "Accept": "application/json",
            "Accept-Language": settings.get("language", "es"),
            "API-Version": settings.get("api_version", "v2"),
        }

    # -----------------------
    # Authentication
    # -----------------------
    def get_access_token(self) -> str:
        if self.access_token:
            log.debug("Access token already available. Reusing it.")
            return self.access_token

        log.info("Requesting a new access token from the WHO ICD-11 API...")
        try:
            response = self.session.post(
                self.settings["auth_url"],
                data={
                    "client_id": self.settings["client_id"],
                    "client_secret": self.settings["client_secret"],
                    "scope": TOKEN_SCOPE,
                    "grant_type": GRANT_TYPE,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            token = response.json()["access_token"]
        except requests.RequestException as e:
            _log_http_error("Failed to obtain the access token", e)
            raise TokenAcquisitionError(f"Access token request failed: {e}") from e
        except (ValueError, KeyError, TypeError) as e:  # body is not JSON or has no access_token
            log.error(f"Unexpected token response: {e}")
            raise TokenAcquisitionError(f"Access token missing from response: {e}") from e

        if not isinstance(token, str) or not token:
            log.error(f"Unusable access token in response: {token!r}")
            raise TokenAcquisitionError(f"Access token is not a non-empty string: {token!r}")

        self.access_token = token
        self.headers["Authorization"] = f"Bearer {token}"
        log.info(f"Access token obtained: {token[:10]}...")
        return token

    def _ensure_token(self) -> None:
        if not self.access_token:
            self.get_access_token()

    # -----------------------
    # Lookups
    # -----------------------
    def _get_json(self, url: str, context: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.session.get(url, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            _log_http_error(context, e)
            return None
        except ValueError as e:
            log.error(f"{context}: response is not valid JSON ({e})")
            return None

    def get_stem_id_by_code(self, code: str) -> Optional[Dict[str, Any]]:
        """codeinfo lookup; the body carries 'stemId' on success."""
        self._ensure_token()
        url = f"{self.release_base_url}/codeinfo/{requests.utils.quote(str(code), safe='')}"
        log.info(f"Looking up stemId for code '{code}' at: {url}")
        return self._get_json(url, f"Failed to look up stemId for code '{code}'")

    def get_diagnosis_details_by_id(self, entity_ref: str) -> Optional[Dict[str, Any]]:
        """Accepts the full stemId URI (or a bare path) and fetches the MMS entity."""
        self._ensure_token()
        entity_path = extract_entity_path(entity_ref)
        url = f"{self.release_base_url}/{entity_path}"
        log.info(f"Fetching details for path '{entity_path}' at: {url}")
        return self._get_json(url, f"Failed to fetch details for path '{entity_path}'")
