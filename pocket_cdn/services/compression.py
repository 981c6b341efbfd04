import asyncio
import gzip
import zlib
from collections.abc import Iterable, Iterator

from pocket_cdn.services.content_types import file_extension

COMPRESSIBLE_TYPE_PREFIXES = ("text/",)
COMPRESSIBLE_TYPES = frozenset(
    {
        "application/javascript",
        "application/json",
        "application/xml",
        "image/svg+xml",
    }
)
COMPRESSIBLE_EXTENSIONS = frozenset({"js", "css", "html", "json", "xml", "svg", "txt", "md"})

GZIP_SUFFIX = ".gz"


class CompressionError(Exception):
    """Raised when a payload cannot be encoded."""


def should_compress(content_type: str | None, file_name: str) -> bool:
    content_type = (content_type or "").lower()
    if content_type.startswith(COMPRESSIBLE_TYPE_PREFIXES):
        return True
    # Declared types may carry parameters, e.g. "application/json; charset=utf-8"
    if content_type.split(";", 1)[0].strip() in COMPRESSIBLE_TYPES:
        return True
    return file_extension(file_name) in COMPRESSIBLE_EXTENSIONS


def gzip_encode(data: bytes, compresslevel: int = 9) -> bytes:
    try:
        return gzip.compress(data, compresslevel=compresslevel)
    except (OSError, ValueError, zlib.error) as exc:
        raise CompressionError(str(exc) or exc.__class__.__name__) from exc


async def compress(data: bytes, encoding: str = "gzip") -> bytes:
    if encoding != "gzip":
        raise CompressionError(f"Unsupported compression format: {encoding}")
    return await asyncio.to_thread(gzip_encode, data)


def gunzip_chunks(chunks: Iterable[bytes]) -> Iterator[bytes]:
    """Incrementally decode a gzip stream."""
    decoder = zlib.decompressobj(16 + zlib.MAX_WBITS)
    for chunk in chunks:
        data = decoder.decompress(chunk)
        if data:
            yield data
    tail = decoder.flush()
    if tail:
        yield tail
