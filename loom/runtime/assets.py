"""
Deduplicated style/script loading for visualization bundles.

The loader inserts asset tags into the page head, keyed by URL: a URL that
already has a tag in the document is never inserted or fetched again.
Script loads resolve whether the fetch succeeded or failed; the outcome is
recorded on the tag (``data-loom-load``) for adapters that need to verify a
library is present before using it, and is never reported to the caller.
"""

import base64
import hashlib
import logging
from typing import Awaitable, Callable

import httpx

from loom.exceptions import AssetLoadError
from loom.runtime.base import AssetKind, AssetStatus, CdnManifest, LoadedAsset
from loom.runtime.page import ASSET_STATUS_ATTR, Page

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[bytes]]


# =============================================================================
# FETCHING
# =============================================================================


class HttpxFetcher:
    """Fetch asset bodies with an httpx AsyncClient.

    Can be used as an async context manager; a client passed in by the
    caller is not closed by the fetcher.
    """

    def __init__(self, *, timeout: float = 10.0, client: httpx.AsyncClient | None = None) -> None:
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    async def __call__(self, url: str) -> bytes:
        response = await self._ensure_client().get(url)
        response.raise_for_status()
        return response.content

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpxFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def sri_hash(body: bytes) -> str:
    """Subresource Integrity value (sha384) for an asset body."""
    digest = hashlib.sha384(body).digest()
    return "sha384-" + base64.b64encode(digest).decode("ascii")


# =============================================================================
# LOADER
# =============================================================================


class AssetLoader:
    """Insert and (optionally) fetch bundle assets for one page."""

    def __init__(
        self,
        page: Page,
        *,
        fetcher: Fetcher | None = None,
        compute_integrity: bool = True,
    ) -> None:
        """Initialize the loader.

        Args:
            page: Page whose head receives the asset tags
            fetcher: Async callable returning an asset body. None inserts
                script tags without fetching them (status ``deferred``).
            compute_integrity: Add a sha384 integrity attribute to scripts
                that were fetched successfully
        """
        self.page = page
        self.fetcher = fetcher
        self.compute_integrity = compute_integrity
        self.assets: dict[str, LoadedAsset] = {}
        self.requests: list[str] = []
        self.errors: list[AssetLoadError] = []

    def load_style(self, url: str) -> None:
        """Insert a stylesheet link unless one for ``url`` already exists."""
        if self.page.find_style_tag(url) is not None:
            return

        tag = self.page.new_tag("link", {
            "rel": "stylesheet",
            "href": url,
            "crossorigin": "anonymous",
        })
        self.page.head.append(tag)
        self.assets[url] = LoadedAsset(url=url, kind=AssetKind.STYLE, status=AssetStatus.DEFERRED)

    async def load_script(self, url: str) -> None:
        """Insert and load a script unless a tag for ``url`` already exists.

        Never raises: a failed load resolves the same way as a successful one.
        """
        if self.page.find_script_tag(url) is not None:
            return

        tag = self.page.new_tag("script", {
            "src": url,
            "crossorigin": "anonymous",
            ASSET_STATUS_ATTR: AssetStatus.PENDING.value,
        })
        self.page.head.append(tag)
        asset = LoadedAsset(url=url, kind=AssetKind.SCRIPT)
        self.assets[url] = asset

        if self.fetcher is None:
            self._set_status(tag, asset, AssetStatus.DEFERRED)
            return

        try:
            body = await self._fetch(url)
        except AssetLoadError as e:
            self.errors.append(e)
            self._set_status(tag, asset, AssetStatus.FAILED)
            logger.debug(f"Script load failed: {e.message}")
            return

        self._set_status(tag, asset, AssetStatus.LOADED)
        if self.compute_integrity:
            asset.integrity = sri_hash(body)
            tag["integrity"] = asset.integrity

    async def load_bundle(self, manifest: CdnManifest | dict | None) -> None:
        """Load a bundle: every style at once, then scripts in declaration order."""
        if manifest is None:
            return
        if not isinstance(manifest, CdnManifest):
            manifest = CdnManifest.model_validate(manifest)
        if manifest.is_empty:
            return

        for url in manifest.styles:
            self.load_style(url)

        for url in manifest.scripts:
            await self.load_script(url)

    @property
    def failed(self) -> list[str]:
        return [a.url for a in self.assets.values() if a.status == AssetStatus.FAILED]

    async def _fetch(self, url: str) -> bytes:
        self.requests.append(url)
        try:
            return await self.fetcher(url)
        except Exception as e:
            raise AssetLoadError(f"Failed to load {url}: {e}", url=url) from e

    @staticmethod
    def _set_status(tag, asset: LoadedAsset, status: AssetStatus) -> None:
        asset.status = status
        tag[ASSET_STATUS_ATTR] = status.value
