"""
chef_client.py
- Minimal Chef server API client used by the scraper.
- Signs every request with the Chef authentication protocol (version 1.3,
  SHA-256 + RSA) and enforces a per-request deadline.
- A client built without a key sends unsigned requests; the server is expected
  to reject them.
"""

import base64
import hashlib
import json
import re
from datetime import datetime, timezone
from urllib.parse import urlsplit

import requests
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding
from loguru import logger

from chef_exporter.core.constants import (
    CHEF_CLIENT_VERSION,
    CHEF_SERVER_API_VERSION,
    CHEF_SIGN_VERSION,
    DEFAULT_REQUEST_TIMEOUT,
)
from chef_exporter.core.errors import ChefAPIError

AUTH_HEADER_WIDTH = 60


def read_client_key(path):
    """
    Read the client private key file fully into memory, as bytes.

    Raises:
        OSError: if the file is missing or unreadable.
    """
    with open(path, "rb") as f:
        return f.read()


def load_private_key(pem):
    """
    Parse a PEM encoded RSA private key.

    Raises:
        ValueError: if the key is empty or cannot be parsed.
    """
    if not pem or not pem.strip():
        raise ValueError("client key is empty")
    if isinstance(pem, str):
        pem = pem.encode("utf-8")
    return serialization.load_pem_private_key(pem, password=None)


def canonical_path(path):
    """Collapse repeated slashes and drop a trailing slash, as the server does."""
    path = re.sub(r"/+", "/", path or "/")
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path


def content_hash(body):
    return base64.b64encode(hashlib.sha256(body).digest()).decode("ascii")


def sign_request(private_key, client_name, method, path, body=b"", timestamp=None):
    """
    Build the X-Ops authentication headers for one request.

    Args:
        private_key: Parsed RSA private key.
        client_name (str): Chef client identity.
        method (str): HTTP method.
        path (str): URL path without query string.
        body (bytes): Exact request body that will be sent.
        timestamp (datetime): Signing time. Defaults to now (UTC).

    Returns:
        dict: Headers to merge into the request.
    """
    timestamp = timestamp or datetime.now(timezone.utc)
    stamp = timestamp.strftime("%Y-%m-%dT%H:%M:%SZ")
    hashed_body = content_hash(body)

    canonical = "\n".join([
        f"Method:{method.upper()}",
        f"Path:{canonical_path(path)}",
        f"X-Ops-Content-Hash:{hashed_body}",
        f"X-Ops-Sign:version={CHEF_SIGN_VERSION}",
        f"X-Ops-Timestamp:{stamp}",
        f"X-Ops-UserId:{client_name}",
        f"X-Ops-Server-API-Version:{CHEF_SERVER_API_VERSION}",
    ])
    signature = private_key.sign(canonical.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256())
    encoded = base64.b64encode(signature).decode("ascii")

    headers = {
        "X-Ops-Sign": f"algorithm=sha256;version={CHEF_SIGN_VERSION}",
        "X-Ops-Userid": client_name,
        "X-Ops-Timestamp": stamp,
        "X-Ops-Content-Hash": hashed_body,
    }
    for index in range(0, len(encoded), AUTH_HEADER_WIDTH):
        headers[f"X-Ops-Authorization-{index // AUTH_HEADER_WIDTH + 1}"] = encoded[index:index + AUTH_HEADER_WIDTH]
    return headers


class ChefClient:
    """Signed HTTP access to a single Chef server (or organization) URL."""

    def __init__(self, server_url, client_name, private_key=None,
                 timeout=DEFAULT_REQUEST_TIMEOUT, verify_ssl=True, session=None):
        if not server_url:
            raise ValueError("Chef server URL is not configured")
        self.server_url = server_url.rstrip("/")
        self.client_name = client_name
        self.private_key = private_key
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.session = session or requests.Session()

    @property
    def authenticated(self):
        return self.private_key is not None

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def request(self, method, endpoint, params=None, payload=None):
        """
        Send one request and return the decoded JSON body.

        Raises:
            ChefAPIError: on transport failure, timeout, non-2xx status or a
                body that is not JSON.
        """
        url = f"{self.server_url}/{endpoint.lstrip('/')}"
        body = json.dumps(payload).encode("utf-8") if payload is not None else b""
        headers = {
            "Accept": "application/json",
            "X-Chef-Version": CHEF_CLIENT_VERSION,
            "X-Ops-Server-API-Version": CHEF_SERVER_API_VERSION,
        }
        if payload is not None:
            headers["Content-Type"] = "application/json"
        if self.private_key is not None:
            headers.update(sign_request(self.private_key, self.client_name, method, urlsplit(url).path, body))

        try:
            response = self.session.request(
                method,
                url,
                params=params,
                data=body or None,
                headers=headers,
                timeout=self.timeout,
                verify=self.verify_ssl,
            )
        except requests.Timeout as e:
            raise ChefAPIError(f"{method} {url} timed out after {self.timeout}s: {e}") from e
        except requests.RequestException as e:
            raise ChefAPIError(f"{method} {url} failed: {e}") from e

        if not response.ok:
            raise ChefAPIError(
                f"{method} {url} returned HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ChefAPIError(f"{method} {url} returned a body that is not JSON") from e

    def partial_search(self, index, query, keys, start=0, rows=None):
        """
        Run a partial search returning only the requested attributes.

        Args:
            index (str): Search index, e.g. "node".
            query (str): Solr query string, e.g. "*:*".
            keys (dict): Projection of output name -> attribute path.
            start (int): Offset of the first row.
            rows (int): Page size. None uses the server default.

        Returns:
            dict: Response with "total", "start" and a "rows" list of
                {"url": ..., "data": {...}} entries.
        """
        params = {"q": query, "start": start}
        if rows:
            params["rows"] = rows
        logger.debug(f"[chef_client] Partial search on {index} with q={query}")
        result = self.request("POST", f"search/{index}", params=params, payload=keys)

        if not isinstance(result, dict) or not isinstance(result.get("rows"), list):
            raise ChefAPIError(f"Partial search on {index} returned no rows list")
        return result
