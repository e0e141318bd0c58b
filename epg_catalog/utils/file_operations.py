"""
Fetch and file utilities

This module handles document download with retry logic and async file I/O
for the catalog outputs.
"""
import logging
from contextlib import AbstractAsyncContextManager, nullcontext
from pathlib import Path
import asyncio

import aiofiles
import httpx

from epg_catalog.errors import SourceUnavailable


logger = logging.getLogger(__name__)


async def fetch_document(
    client: httpx.AsyncClient,
    url: str,
    max_retries: int = 3,
    backoff_factor: float = 2.0,
    limiter: AbstractAsyncContextManager | None = None,
) -> bytes:
    """
    Fetch a document with exponential backoff retry logic

    Retries on transient network errors (timeouts, connection errors) and 5xx
    responses. Does NOT retry on 4xx HTTP errors (client errors).

    Args:
        client: Shared HTTP client (carries timeout and headers)
        url: URL to download from
        max_retries: Maximum number of attempts
        backoff_factor: Exponential backoff multiplier (wait = backoff_factor ^ attempt)
        limiter: Optional concurrency guard (e.g. a semaphore), held per attempt
            and released during backoff waits

    Returns:
        Raw response body

    Raises:
        SourceUnavailable: If the document cannot be fetched
    """
    safe_url = sanitize_url_for_logging(url)
    logger.debug(f"Fetching {safe_url}...")

    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            async with limiter or nullcontext():
                response = await client.get(url)
            response.raise_for_status()
            logger.debug(f"Fetched {len(response.content) / 1024:.1f} KB from {safe_url}")
            return response.content

        except (httpx.TimeoutException, httpx.TransportError) as e:
            # Transient network errors - retry
            last_error = e
            if attempt < max_retries - 1:
                wait_time = backoff_factor ** attempt
                logger.warning(
                    f"Fetch attempt {attempt + 1}/{max_retries} for {safe_url} failed "
                    f"(transient error): {type(e).__name__}. Retrying in {wait_time:.1f}s..."
                )
                await asyncio.sleep(wait_time)
            else:
                logger.error(f"Fetch of {safe_url} failed after {max_retries} attempts (transient error)")

        except httpx.HTTPStatusError as e:
            # HTTP errors - don't retry on 4xx (client error), retry on 5xx (server error)
            if 400 <= e.response.status_code < 500:
                logger.error(f"HTTP {e.response.status_code} (client error) for {safe_url}")
                raise SourceUnavailable(f"HTTP {e.response.status_code} fetching {safe_url}") from e

            last_error = e
            if attempt < max_retries - 1:
                wait_time = backoff_factor ** attempt
                logger.warning(
                    f"Fetch attempt {attempt + 1}/{max_retries} for {safe_url} failed "
                    f"(HTTP {e.response.status_code} server error). "
                    f"Retrying in {wait_time:.1f}s..."
                )
                await asyncio.sleep(wait_time)
            else:
                logger.error(
                    f"Fetch of {safe_url} failed after {max_retries} attempts "
                    f"(HTTP {e.response.status_code})"
                )

    raise SourceUnavailable(
        f"Failed to fetch {safe_url} after {max_retries} attempts: {last_error}"
    ) from last_error


async def write_text_file(file_path: Path | str, content: str) -> Path:
    """
    Write text to a file, replacing it atomically

    The content goes to a sibling temporary file first, so readers never see
    a half-written catalog.
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    temp_file = file_path.with_name(f".{file_path.name}.tmp")

    async with aiofiles.open(temp_file, 'w', encoding='utf-8') as f:
        await f.write(content)
    temp_file.replace(file_path)

    logger.info(f"Wrote {len(content) / 1024:.1f} KB to {file_path}")
    return file_path


async def read_text_file(file_path: Path | str) -> str | None:
    """Read a text file, or return None if it does not exist"""
    file_path = Path(file_path)
    if not file_path.exists():
        return None

    async with aiofiles.open(file_path, 'r', encoding='utf-8') as f:
        return await f.read()


def sanitize_url_for_logging(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    if "://" not in url:
        return url
    try:
        protocol, rest = url.split("://", 1)
        if "@" in rest.split("/", 1)[0]:
            rest = rest.split("@", 1)[1]
            return f"{protocol}://***:***@{rest}"
        return url
    except (ValueError, IndexError):
        return url
