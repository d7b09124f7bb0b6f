"""Publisher: post review-comment payloads to a pull request."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from plreview.config import DEFAULT_API_URL
from plreview.issues import read_issue_file

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "application/vnd.github.v3+json"


class PublishError(Exception):
    """Raised when the pull request comments URL cannot be built."""


@dataclass(frozen=True)
class PublishTarget:
    """The pull request that receives the comments."""

    owner: str
    repo: str
    pull_number: int


@dataclass(frozen=True)
class PublishReport:
    """Outcome of one publishing run."""

    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: bool = False
    reason: str = ""


def resolve_token(env_var: str = "GH_TOKEN") -> str | None:
    """Return the token stored in *env_var*, or ``None`` when unset or blank."""
    token = os.environ.get(env_var, "").strip()
    return token or None


def build_comments_url(target: PublishTarget, api_url: str = DEFAULT_API_URL) -> str:
    """Fill the owner, repository and pull number into *api_url*.

    Raises
    ------
    PublishError
        If the template refers to an unknown placeholder.
    """
    try:
        return api_url.format(
            owner=target.owner, repo=target.repo, pull_number=target.pull_number
        )
    except (KeyError, IndexError, ValueError) as exc:
        msg = f"Invalid comments URL template {api_url!r}: {exc}"
        raise PublishError(msg) from exc


def _headers(token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Accept": ACCEPT_HEADER,
        "Content-Type": "application/json",
    }


def publish_payloads(
    payloads: Iterable[dict[str, Any]],
    url: str,
    token: str,
    *,
    timeout: float = 30.0,
) -> PublishReport:
    """POST each payload to *url*, one request per payload.

    A failed request is logged and counted; the remaining payloads are
    still sent. Nothing is retried.
    """
    headers = _headers(token)
    attempted = succeeded = failed = 0

    for payload in payloads:
        attempted += 1
        try:
            response = httpx.post(url, headers=headers, json=payload, timeout=timeout)
        except httpx.HTTPError as exc:
            failed += 1
            logger.warning("Failed to post comment at position %s: %s", payload.get("position"), exc)
            continue

        if 200 <= response.status_code < 300:
            succeeded += 1
            logger.debug("Posted comment at position %s", payload.get("position"))
        else:
            failed += 1
            logger.warning(
                "Comment at position %s rejected with HTTP %d: %s",
                payload.get("position"),
                response.status_code,
                response.text,
            )

    logger.info("Published %d of %d comment(s)", succeeded, attempted)
    return PublishReport(attempted=attempted, succeeded=succeeded, failed=failed)


def publish_issue_file(
    path: Path,
    target: PublishTarget,
    token: str | None,
    *,
    api_url: str = DEFAULT_API_URL,
    timeout: float = 30.0,
) -> PublishReport:
    """Read the issue file at *path* and publish its payloads to *target*.

    Publishing is skipped, without any request, when *token* is missing or
    the file cannot be read back as a list of payloads.

    Raises
    ------
    PublishError
        If the comments URL cannot be built from *api_url*.
    """
    if not token:
        logger.info("No token available, skipping publishing")
        return PublishReport(skipped=True, reason="no token")

    read = read_issue_file(path)
    if not read.ok:
        logger.debug("Skipping publishing: %s", read.error)
        return PublishReport(skipped=True, reason=read.error or "")

    url = build_comments_url(target, api_url)
    return publish_payloads(read.payloads, url, token, timeout=timeout)
