import logging
import mimetypes
import os
import tempfile
from contextlib import contextmanager
from typing import Iterator
from urllib.parse import urlparse

import requests

logger = logging.getLogger(__name__)


def is_remote(path: str) -> bool:
    return urlparse(path).scheme in ("http", "https")


def download_to_temp(url: str, timeout: float = 30) -> str:
    """
    Download a remote image into a temporary file and return its path.
    The caller owns the file and must delete it.
    """
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()

    suffix = os.path.splitext(urlparse(url).path)[1]
    if not suffix:
        suffix = mimetypes.guess_extension(response.headers.get("Content-Type", "").split(";")[0]) or ".jpg"

    fd, temp_path = tempfile.mkstemp(prefix="etsy-image-", suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(response.content)
    except OSError:
        remove_file(temp_path)
        raise
    logger.debug("Downloaded %s to %s", url, temp_path)
    return temp_path


def remove_file(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


@contextmanager
def local_image(path: str, timeout: float = 30) -> Iterator[str]:
    """Yield a local path for ``path``, downloading it first if it is a URL.

    Downloaded copies are removed when the block exits, however it exits.
    """
    if not is_remote(path):
        yield path
        return

    temp_path = download_to_temp(path, timeout=timeout)
    try:
        yield temp_path
    finally:
        remove_file(temp_path)
