"""
Remote sources
--------------
Direct video URLs are streamed to disk with requests. Links to a
video-hosting site are first sent to a streaming extraction endpoint whose
text response carries the real download location in an anchor tag.
"""

import re
import html
import logging
from pathlib import Path
from urllib.parse import urljoin, urlparse

import requests

from video2doc.errors import FetchCancelled, UpstreamFetchFailed


log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
CHUNK_SIZE = 256 * 1024

_ANCHOR_HREF = re.compile(r"""<a\s[^>]*?href\s*=\s*["']([^"']+)["']""",
                          re.IGNORECASE)


def is_url(source) -> bool:
    return urlparse(str(source)).scheme in ("http", "https")


def _check_cancel(cancel_event, url):
    if cancel_event is not None and cancel_event.is_set():
        raise FetchCancelled(f"Download of {url} cancelled")


def _open(url, timeout, **kwargs):
    try:
        response = requests.get(url, stream=True, timeout=timeout, **kwargs)
    except requests.RequestException as exc:
        raise UpstreamFetchFailed(f"Request to {url} failed: {exc}") from exc
    if not response.ok:
        response.close()
        raise UpstreamFetchFailed(
            f"{url} returned HTTP {response.status_code}",
            status_code=response.status_code)
    return response


def download(url, target, cancel_event=None, timeout=DEFAULT_TIMEOUT,
             chunk_size=CHUNK_SIZE) -> int:
    """
    Stream `url` into the file `target` and return the number of bytes
    written. The partial file is removed on failure or cancellation.
    """
    _check_cancel(cancel_event, url)
    target = Path(target)
    log.info(f"Downloading {url}")
    total = 0
    with _open(url, timeout) as response:
        try:
            with open(target, "wb") as f:
                for chunk in response.iter_content(chunk_size=chunk_size):
                    _check_cancel(cancel_event, url)
                    if chunk:
                        f.write(chunk)
                        total += len(chunk)
        except requests.RequestException as exc:
            target.unlink(missing_ok=True)
            raise UpstreamFetchFailed(f"Download of {url} failed: {exc}") from exc
        except BaseException:
            target.unlink(missing_ok=True)
            raise
    log.info(f"Downloaded {total / 1_048_576:.1f} MiB from {url}")
    return total


def find_download_href(chunks):
    """
    Return the href of the first anchor tag in a stream of text chunks, or
    None. Tags split across chunk boundaries are found.
    """
    pending = ""
    for chunk in chunks:
        if isinstance(chunk, bytes):
            chunk = chunk.decode("utf-8", errors="replace")
        pending += chunk
        m = _ANCHOR_HREF.search(pending)
        if m:
            return html.unescape(m.group(1))
        start = pending.rfind("<")
        pending = pending[start:] if start != -1 else ""
    return None


def _cancellable(chunks, cancel_event, url):
    for chunk in chunks:
        _check_cancel(cancel_event, url)
        yield chunk


def resolve_hosted_video(page_url, endpoint, cancel_event=None,
                         timeout=DEFAULT_TIMEOUT) -> str:
    """Ask the extraction endpoint for the direct download URL of `page_url`."""
    _check_cancel(cancel_event, page_url)
    log.info(f"Resolving download link for {page_url}")
    with _open(endpoint, timeout, params={"command": page_url}) as response:
        try:
            href = find_download_href(_cancellable(
                response.iter_content(chunk_size=1024, decode_unicode=True),
                cancel_event, page_url))
        except requests.RequestException as exc:
            raise UpstreamFetchFailed(
                f"Reading response from {endpoint} failed: {exc}") from exc
    if not href:
        raise UpstreamFetchFailed(f"No download link in response from {endpoint}")
    url = urljoin(endpoint, href)
    log.info(f"Resolved download link: {url}")
    return url
