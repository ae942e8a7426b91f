"""Microsoft Graph API client for the SharePoint document library.

App-only auth (client credentials). The access token is cached until five
minutes before it expires. Every non-2xx response raises GraphError.
"""
from __future__ import annotations

import logging
import time
from functools import lru_cache
from urllib.parse import quote

import httpx

from app.config import Settings, get_settings

log = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
TOKEN_REFRESH_MARGIN_SECONDS = 5 * 60

SIMPLE_UPLOAD_LIMIT = 4 * 1024 * 1024
# Upload-session chunks must be a multiple of 320 KiB
UPLOAD_CHUNK_SIZE = 320 * 1024 * 10


class GraphError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_server_error(self) -> bool:
        return self.status_code is not None and self.status_code >= 500


def _drive_path(path: str) -> str:
    return quote(path.strip("/"), safe="/")


class GraphClient:
    def __init__(self, settings: Settings | None = None, transport: httpx.BaseTransport | None = None):
        self.settings = settings or get_settings()
        self.timeout = self.settings.upload_timeout_seconds
        self._transport = transport
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._site_id: str | None = self.settings.sharepoint_site_id or None
        self._drive_id: str | None = self.settings.sharepoint_drive_id or None
        self._known_folders: set[str] = set()

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self._transport)

    # -- auth ---------------------------------------------------------------

    def get_access_token(self) -> str:
        if self._token and time.time() < self._token_expires_at:
            return self._token
        s = self.settings
        data = {
            "client_id": s.sharepoint_client_id,
            "client_secret": s.sharepoint_client_secret,
            "scope": GRAPH_SCOPE,
            "grant_type": "client_credentials",
        }
        with self._client() as client:
            r = client.post(TOKEN_URL.format(tenant=s.sharepoint_tenant_id), data=data)
        if r.status_code != 200:
            raise GraphError(f"Token request failed: {_error_message(r)}", r.status_code)
        body = r.json()
        token = body.get("access_token")
        if not token:
            raise GraphError(f"Token response had no access_token: {body.get('error_description', '')}")
        expires_in = int(body.get("expires_in") or 3600)
        self._token = token
        self._token_expires_at = time.time() + expires_in - TOKEN_REFRESH_MARGIN_SECONDS
        return token

    # -- transport ----------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict | None = None,
        content: bytes | None = None,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> httpx.Response:
        url = path if path.startswith("http") else f"{GRAPH_BASE_URL}{path}"
        hdrs = {"Authorization": f"Bearer {self.get_access_token()}"}
        hdrs.update(headers or {})
        with self._client() as client:
            r = client.request(method, url, json=json, content=content, params=params, headers=hdrs)
        if r.status_code >= 400:
            raise GraphError(f"{method} {path} failed: {_error_message(r)}", r.status_code)
        return r

    # -- site and drive -----------------------------------------------------

    def get_site(self) -> dict:
        s = self.settings
        if self._site_id:
            return self._request("GET", f"/sites/{self._site_id}").json()
        site_path = "/" + s.sharepoint_site_path.strip("/") if s.sharepoint_site_path else ""
        site = self._request("GET", f"/sites/{s.sharepoint_site_hostname}:{site_path}").json()
        self._site_id = site["id"]
        return site

    def get_drive(self) -> dict:
        if not self._site_id:
            self.get_site()
        if self._drive_id:
            return self._request("GET", f"/sites/{self._site_id}/drives/{self._drive_id}").json()
        drive = self._request("GET", f"/sites/{self._site_id}/drive").json()
        self._drive_id = drive["id"]
        return drive

    @property
    def drive_id(self) -> str:
        if not self._drive_id:
            self.get_drive()
        return self._drive_id

    # -- folders ------------------------------------------------------------

    def get_item(self, path: str) -> dict | None:
        """Drive item at path, or None when it does not exist."""
        try:
            return self._request("GET", f"/drives/{self.drive_id}/root:/{_drive_path(path)}").json()
        except GraphError as e:
            if e.status_code == 404:
                return None
            raise

    def create_folder(self, parent: str, name: str, conflict: str = "rename") -> dict:
        parent = parent.strip("/")
        url = (
            f"/drives/{self.drive_id}/root:/{_drive_path(parent)}:/children"
            if parent
            else f"/drives/{self.drive_id}/root/children"
        )
        body = {"name": name, "folder": {}, "@microsoft.graph.conflictBehavior": conflict}
        return self._request("POST", url, json=body).json()

    def ensure_folder(self, path: str) -> None:
        """Create each missing segment of path, top-down."""
        current = ""
        for part in [p for p in path.strip("/").split("/") if p]:
            parent, current = current, f"{current}/{part}" if current else part
            if current in self._known_folders:
                continue
            if self.get_item(current) is None:
                try:
                    self.create_folder(parent, part, conflict="fail")
                except GraphError as e:
                    if e.status_code != 409:  # created concurrently
                        raise
                log.info("Created SharePoint folder %s", current)
            self._known_folders.add(current)

    def list_children(self, path: str = "") -> list[dict]:
        path = path.strip("/")
        url = (
            f"/drives/{self.drive_id}/root:/{_drive_path(path)}:/children"
            if path
            else f"/drives/{self.drive_id}/root/children"
        )
        return self._request("GET", url).json().get("value", [])

    def search(self, query: str) -> list[dict]:
        q = query.replace("'", "''")
        return self._request("GET", f"/drives/{self.drive_id}/root/search(q='{q}')").json().get("value", [])

    # -- files --------------------------------------------------------------

    def upload_file(self, folder: str, name: str, content: bytes, conflict: str = "replace") -> dict:
        """Upload into folder; returns the created drive item (id, webUrl, ...)."""
        target = _drive_path(f"{folder.strip('/')}/{name}")
        if len(content) <= SIMPLE_UPLOAD_LIMIT:
            return self._request(
                "PUT",
                f"/drives/{self.drive_id}/root:/{target}:/content",
                content=content,
                params={"@microsoft.graph.conflictBehavior": conflict},
                headers={"Content-Type": "application/octet-stream"},
            ).json()
        return self._upload_large(target, content, conflict)

    def _upload_large(self, target: str, content: bytes, conflict: str) -> dict:
        session = self._request(
            "POST",
            f"/drives/{self.drive_id}/root:/{target}:/createUploadSession",
            json={"item": {"@microsoft.graph.conflictBehavior": conflict}},
        ).json()
        upload_url = session["uploadUrl"]
        total = len(content)
        item: dict = {}
        with self._client() as client:
            for start in range(0, total, UPLOAD_CHUNK_SIZE):
                chunk = content[start:start + UPLOAD_CHUNK_SIZE]
                end = start + len(chunk) - 1
                # The upload URL is pre-authenticated; no bearer token
                r = client.put(
                    upload_url,
                    content=chunk,
                    headers={"Content-Length": str(len(chunk)), "Content-Range": f"bytes {start}-{end}/{total}"},
                )
                if r.status_code >= 400:
                    raise GraphError(f"Chunk upload failed at byte {start}: {_error_message(r)}", r.status_code)
                if r.status_code in (200, 201):
                    item = r.json()
        return item

    def delete_item(self, item_id: str) -> None:
        try:
            self._request("DELETE", f"/drives/{self.drive_id}/items/{item_id}")
        except GraphError as e:
            if e.status_code != 404:
                raise


def _error_message(r: httpx.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return f"HTTP {r.status_code}"
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict):
        return f"HTTP {r.status_code} {err.get('code', '')}: {err.get('message', '')}".strip()
    if isinstance(body, dict) and body.get("error_description"):
        return f"HTTP {r.status_code}: {body['error_description']}"
    return f"HTTP {r.status_code}"


@lru_cache
def get_graph_client() -> GraphClient | None:
    """Shared client (keeps the token cache); None when SharePoint is not configured."""
    settings = get_settings()
    if not settings.sharepoint_configured:
        return None
    return GraphClient(settings)
