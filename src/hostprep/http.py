# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/http.py

import logging

import requests

from .errors import DirectiveError

log = logging.getLogger("hostprep")

DEFAULT_TIMEOUT = 60


def fetch(url: str, *, timeout: float = DEFAULT_TIMEOUT) -> bytes:
    """GET ``url`` and return the body, raising DirectiveError on any failure."""
    log.debug("[http] GET %s", url)
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise DirectiveError(f"Download of {url} failed: {e}") from e
    log.debug("[http] %s -> %d bytes", url, len(resp.content))
    return resp.content
