import logging
from pathlib import PurePosixPath

from pocket_cdn.services.compression import GZIP_SUFFIX, CompressionError, compress, should_compress
from pocket_cdn.services.content_types import get_content_type
from pocket_cdn.services.storage import StorageService

logger = logging.getLogger(__name__)

_RESERVED_NAMES = frozenset({"", ".", ".."})


def clean_file_name(filename: str | None) -> str:
    """Strip any client-supplied directory components from an upload name.

    Returns an empty string when nothing usable is left.
    """
    if not filename:
        return ""
    name = PurePosixPath(filename.replace("\\", "/")).name.strip()
    if name in _RESERVED_NAMES:
        return ""
    return name


async def _store_original(
    storage: StorageService, file_name: str, content_type: str, data: bytes
) -> None:
    await storage.put_object(file_name, data, content_type=content_type)
    # An older gzip variant would otherwise keep serving the previous bytes
    await storage.delete_object(f"{file_name}{GZIP_SUFFIX}")


async def store_upload(
    storage: StorageService,
    file_name: str,
    content_type: str | None,
    data: bytes,
) -> list[str]:
    """Write an uploaded file to storage, gzip-encoding text-like payloads.

    Compressible files are stored only as ``<name>.gz``; if encoding fails the
    original bytes are stored under ``<name>`` instead. Whichever variant is
    written, the other one is removed. Returns one human-readable line per
    step, in order.
    """
    results: list[str] = []
    stored_type = content_type or get_content_type(file_name)

    if not should_compress(content_type, file_name):
        await _store_original(storage, file_name, stored_type, data)
        results.append(f"Original file uploaded (compression not applicable): {file_name}")
        return results

    try:
        encoded = await compress(data, "gzip")
    except CompressionError as exc:
        logger.warning("Compression of %s failed, storing original: %s", file_name, exc)
        results.append(f"Compression failed: {exc}")
        await _store_original(storage, file_name, stored_type, data)
        results.append(f"Original file uploaded as fallback: {file_name}")
        return results

    gzip_key = f"{file_name}{GZIP_SUFFIX}"
    await storage.put_object(
        gzip_key,
        encoded,
        content_type=stored_type,
        content_encoding="gzip",
    )
    await storage.delete_object(file_name)
    logger.info("Stored %s (%d -> %d bytes)", gzip_key, len(data), len(encoded))
    results.append(f"Gzip compressed file uploaded: {gzip_key}")
    return results
