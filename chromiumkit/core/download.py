"""
Network download for Chromium snapshot archives.

One streamed HTTPS GET per archive. There is no retry, resume or checksum
verification: transport errors and HTTP error statuses are raised as
``requests`` exceptions and left for the caller.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import requests

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def download_file(
    url: str,
    destination: Union[str, Path],
    timeout: Optional[float] = None,
    session: Optional[requests.Session] = None,
) -> Path:
    """
    Stream the body of ``url`` into ``destination``.

    The file is fully written and closed before this function returns.

    Args:
        url: URL to download from
        destination: Local file to write (parent must exist)
        timeout: Connect/read timeout in seconds, None to wait indefinitely
        session: Optional requests session to issue the GET with

    Returns:
        Path to the downloaded file

    Raises:
        ValueError: If URL is empty
        requests.HTTPError: If the server answers with an error status
        requests.RequestException: If the connection or stream fails

    Example:
        >>> download_file(
        ...     "https://storage.googleapis.com/chromium-browser-snapshots/Linux_x64/499413/chrome-linux.zip",
        ...     Path("chromium-linux-499413.zip"),
        ... )
    """
    if not url:
        raise ValueError("URL cannot be empty")

    destination = Path(destination)
    http = session or requests

    logger.info(f"Downloading from {url}")

    with http.get(url, stream=True, timeout=timeout, allow_redirects=True) as response:
        response.raise_for_status()

        written = 0
        with open(destination, "wb") as f:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    f.write(chunk)
                    written += len(chunk)

    logger.debug(f"Wrote {written} bytes to {destination}")
    return destination


__all__ = ["download_file"]
