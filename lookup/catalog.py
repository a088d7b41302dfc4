import asyncio
import logging
import time
from urllib.parse import quote, urlencode

import requests

from core.errors import LookupFailure

L = logging.getLogger("media_scan.lookup")

DEFAULT_BASE_URL = "https://catalogue.bnf.fr/api/SRU"


def build_query_url(
    barcode: str,
    *,
    base_url: str = DEFAULT_BASE_URL,
    version: str = "1.2",
    record_schema: str = "unimarcXchange",
) -> str:
    params = {
        "version": version,
        "recordSchema": record_schema,
        "operation": "searchRetrieve",
        "query": f"bib.anywhere all '{barcode}'",
    }
    query = urlencode(params, quote_via=quote, safe="'")
    return f"{base_url}?{query}"


class CatalogClient:
    """SRU searchRetrieve client; holds no per-lookup state."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        version: str = "1.2",
        record_schema: str = "unimarcXchange",
        timeout_s: float = 30.0,
        max_redirects: int = 5,
        user_agent: str = "media-scan",
        session: requests.Session | None = None,
    ):
        self.base_url = base_url
        self.version = version
        self.record_schema = record_schema
        self.timeout_s = float(timeout_s)
        self.session = session or requests.Session()
        self.session.max_redirects = int(max_redirects)
        self.session.headers.setdefault("User-Agent", user_agent)

    @classmethod
    def from_config(cls, block, session: requests.Session | None = None) -> "CatalogClient":
        return cls(
            base_url=block.base_url,
            version=block.version,
            record_schema=block.record_schema,
            timeout_s=block.timeout_s,
            max_redirects=block.max_redirects,
            user_agent=block.user_agent,
            session=session,
        )

    def query_url(self, barcode: str) -> str:
        return build_query_url(
            barcode,
            base_url=self.base_url,
            version=self.version,
            record_schema=self.record_schema,
        )

    def fetch(self, barcode: str) -> str:
        """Blocking GET of the raw SRU payload; raises LookupFailure."""
        url = self.query_url(barcode)
        t0 = time.perf_counter()
        try:
            r = self.session.get(url, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise LookupFailure(f"Catalog request failed: {e}") from e
        elapsed_ms = (time.perf_counter() - t0) * 1000
        if r.status_code >= 400:
            raise LookupFailure(f"Catalog returned HTTP {r.status_code}")
        body = r.text or ""
        if not body.strip():
            raise LookupFailure("Catalog returned an empty response")
        L.info(
            "[%5s] barcode=%s status=%s bytes=%d fetch=%.2fms",
            "sru",
            barcode,
            r.status_code,
            len(body),
            elapsed_ms,
        )
        return body

    async def lookup(self, barcode: str, category: str = "") -> str:
        # Category does not narrow the SRU query; it only picks the extractor.
        L.debug("lookup barcode=%s category=%s", barcode, category)
        return await asyncio.to_thread(self.fetch, barcode)

    def close(self):
        self.session.close()


__all__ = ["CatalogClient", "build_query_url", "DEFAULT_BASE_URL"]
