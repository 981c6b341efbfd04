"""Content negotiation and response headers for stored files.

A logical file ``name`` may be stored as ``name.gz`` (gzip variant), as
``name`` (original), or both. Clients that accept gzip get the gzip variant
when it exists; everyone else gets the original, or the gzip variant decoded
on the fly when only that one is stored.
"""

import base64
import re
from collections.abc import Iterator
from dataclasses import dataclass

from pocket_cdn.services.compression import GZIP_SUFFIX, gunzip_chunks
from pocket_cdn.services.content_types import get_content_type
from pocket_cdn.services.storage import StorageService, StoredObject

CACHE_CONTROL = "public, max-age=31536000, immutable"

# RFC 9110 etagc without obs-text: "!" and "#" through "~"
_ETAG_SAFE = re.compile(r"^[\x21\x23-\x7e]*$")


@dataclass
class Delivery:
    file_name: str
    obj: StoredObject
    encoding: str | None
    cache_key: str
    decode: bool = False

    @property
    def etag(self) -> str:
        return composite_etag(self.cache_key, self.obj.etag)

    def headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": get_content_type(self.file_name),
            "Cache-Control": CACHE_CONTROL,
            "Vary": "Accept-Encoding",
            "ETag": self.etag,
        }
        if not self.decode:
            headers["Content-Length"] = str(self.obj.size)
        if self.encoding:
            headers["Content-Encoding"] = self.encoding
        return headers

    def body(self) -> Iterator[bytes]:
        if self.decode:
            return gunzip_chunks(self.obj.iter_chunks())
        return self.obj.iter_chunks()


def accepts_gzip(accept_encoding: str | None) -> bool:
    """True when ``Accept-Encoding`` lists gzip (or ``*``) with a non-zero q-value."""
    if not accept_encoding:
        return False
    for item in accept_encoding.split(","):
        coding, _, params = item.strip().partition(";")
        if coding.strip().lower() not in ("gzip", "x-gzip", "*"):
            continue
        quality = 1.0
        for param in params.split(";"):
            key, _, value = param.strip().partition("=")
            if key.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        if quality > 0:
            return True
    return False


def composite_etag(cache_key: str, object_etag: str | None) -> str:
    """Quoted ETag built from the cache key and the store's own tag.

    Header values are restricted to visible ASCII, so any composite that
    falls outside that alphabet is base64-encoded as a whole.
    """
    raw = f"{cache_key}-{object_etag or 'default'}"
    if not _ETAG_SAFE.match(raw):
        raw = base64.b64encode(raw.encode("utf-8")).decode("ascii")
    return f'"{raw}"'


def etag_matches(if_none_match: str | None, etag: str) -> bool:
    if not if_none_match:
        return False
    for candidate in if_none_match.split(","):
        candidate = candidate.strip()
        if candidate == "*":
            return True
        if candidate.startswith("W/"):
            candidate = candidate[2:]
        if candidate == etag:
            return True
    return False


async def fetch_delivery(
    storage: StorageService,
    file_name: str,
    accept_encoding: str | None,
) -> Delivery | None:
    gzip_key = f"{file_name}{GZIP_SUFFIX}"
    wants_gzip = accepts_gzip(accept_encoding)
    if wants_gzip:
        gzip_object = await storage.get_object(gzip_key)
        if gzip_object is not None:
            return Delivery(
                file_name=file_name,
                obj=gzip_object,
                encoding="gzip",
                cache_key=f"{file_name}-gzip",
            )

    original = await storage.get_object(file_name)
    if original is not None:
        return Delivery(
            file_name=file_name,
            obj=original,
            encoding=None,
            cache_key=f"{file_name}-original",
        )

    if not wants_gzip:
        gzip_object = await storage.get_object(gzip_key)
        if gzip_object is not None:
            return Delivery(
                file_name=file_name,
                obj=gzip_object,
                encoding=None,
                cache_key=f"{file_name}-gunzip",
                decode=True,
            )
    return None
