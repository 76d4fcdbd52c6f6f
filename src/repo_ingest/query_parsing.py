"""Resolve a user-supplied source string into an :class:`IngestionQuery`."""

from __future__ import annotations

import re
import uuid
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlparse

from repo_ingest.config import DEFAULT_IGNORE_PATTERNS, KNOWN_GIT_HOSTS, IngestionQuery
from repo_ingest.exceptions import GitError, HostNotFoundError, InvalidURLError, UnknownHostError
from repo_ingest.git_operations import check_repo_exists, fetch_remote_branch_list
from repo_ingest.logging import logger
from repo_ingest.patterns import override_ignore_patterns, parse_patterns
from repo_ingest.settings import DEFAULT_LIMITS

if TYPE_CHECKING:
    from collections.abc import Iterable

_COMMIT_HASH = re.compile(r"[0-9a-fA-F]{40}")
_NON_CONTENT_TYPES = frozenset({"issues", "pull"})


def is_valid_git_commit_hash(commit: str) -> bool:
    return _COMMIT_HASH.fullmatch(commit) is not None


def is_likely_url(source: str, *, from_web: bool = False) -> bool:
    """Decide whether ``source`` names a remote repository.

    Returns:
        bool: True when forced, when the string has a scheme, or when it mentions a known host
    """
    return from_web or "://" in source or any(host in source for host in KNOWN_GIT_HOSTS)


def validate_host(host: str) -> None:
    if host not in KNOWN_GIT_HOSTS:
        raise UnknownHostError(host=host, message=f"Unknown domain '{host}' in URL")


def validate_scheme(scheme: str) -> None:
    if scheme not in {"http", "https"}:
        raise InvalidURLError(url=scheme, message=f"Invalid URL scheme '{scheme}' in URL")


def get_user_and_repo_from_path(path: str) -> tuple[str, str]:
    """Extract ``owner`` and ``repo`` from a host-less ``owner/repo[/...]`` path.

    Raises:
        InvalidURLError: if fewer than two segments are present.

    Returns:
        tuple[str, str]: the lower-cased owner and repository names
    """
    parts = [p for p in path.lower().lstrip("/").split("/") if p]
    if len(parts) < 2:  # noqa: PLR2004
        raise InvalidURLError(url=path, message=f"Invalid repository URL '{path}'")
    return parts[0], parts[1]


async def try_domains_for_user_and_repo(user_name: str, repo_name: str) -> str:
    """Find the first known host that serves ``user_name/repo_name``.

    Hosts are tried in ``KNOWN_GIT_HOSTS`` order.

    Raises:
        HostNotFoundError: if no host answers.

    Returns:
        str: the matching host name
    """
    for domain in KNOWN_GIT_HOSTS:
        candidate = f"https://{domain}/{user_name}/{repo_name}"
        if await check_repo_exists(candidate):
            return domain
    raise HostNotFoundError(
        user_name=user_name,
        repo_name=repo_name,
        message=f"Could not find a valid repository host for '{user_name}/{repo_name}'.",
    )


async def configure_branch_and_subpath(remaining_parts: list[str], url: str) -> str | None:
    """Pick the branch named at the start of ``remaining_parts``.

    Consumed segments are removed from ``remaining_parts`` in place; what is
    left is the subpath.

    The longest prefix of the remaining segments that names a real remote
    branch wins. When no prefix matches, every remaining segment is taken as
    the branch and no subpath is left. When the branch list cannot be
    fetched, the first segment alone is taken as the branch; that fallback can
    pick the wrong branch for names containing ``/`` on unreachable remotes.

    Args:
        remaining_parts (list[str]): URL segments after the type marker
        url (str): the canonical repository URL

    Returns:
        str | None: the branch name, or None if there is no segment left
    """
    try:
        branches = set(await fetch_remote_branch_list(url))
    except (GitError, OSError) as e:
        logger.warning("could not fetch remote branches", url=url, error=str(e))
        return remaining_parts.pop(0) if remaining_parts else None

    for size in range(len(remaining_parts), 0, -1):
        candidate = "/".join(remaining_parts[:size])
        if candidate in branches:
            del remaining_parts[:size]
            return candidate
    branch = "/".join(remaining_parts)
    remaining_parts.clear()
    return branch or None


async def parse_repo_source(source: str, *, tmp_base_path: Path | None = None) -> IngestionQuery:
    """Parse a remote repository reference.

    Accepted forms: a full ``http(s)`` URL on a known host, a URL without a
    scheme (``github.com/owner/repo``), or a bare ``owner/repo`` whose host is
    found by trying the known hosts.

    Args:
        source (str): the user input
        tmp_base_path (Path | None): root for the temporary clone directory

    Raises:
        InvalidURLError: for unknown schemes or fewer than two path segments.
        UnknownHostError: for hosts outside ``KNOWN_GIT_HOSTS``.
        HostNotFoundError: if no known host serves a bare ``owner/repo``.

    Returns:
        IngestionQuery: the query, without patterns
    """
    decoded = unquote(source)
    parsed = urlparse(decoded)

    if parsed.scheme and parsed.netloc:
        validate_scheme(parsed.scheme.lower())
        validate_host((parsed.hostname or "").lower())
    else:
        first_segment = decoded.split("/")[0].lower()
        if "." in first_segment:
            validate_host(first_segment)
            parsed = urlparse(f"https://{decoded}")
        else:
            user_name, repo_name = get_user_and_repo_from_path(decoded)
            domain = await try_domains_for_user_and_repo(user_name, repo_name)
            parsed = urlparse(f"https://{domain}/{decoded.lstrip('/')}")

    host = (parsed.hostname or "").lower()
    pieces = [p for p in parsed.path.split("/") if p]
    if len(pieces) < 2:  # noqa: PLR2004
        raise InvalidURLError(url=source, message=f"Invalid repository URL '{source}'")

    user_name = pieces[0]
    repo_name = pieces[1].removesuffix(".git")
    query_id = uuid.uuid4().hex
    slug = f"{user_name}-{repo_name}"
    base = tmp_base_path or DEFAULT_LIMITS.tmp_base_path
    url = f"https://{host}/{user_name}/{repo_name}"

    query = IngestionQuery(
        user_name=user_name,
        repo_name=repo_name,
        local_path=base / query_id / slug,
        url=url,
        slug=slug,
        id=query_id,
        subpath="/",
        max_file_size=DEFAULT_LIMITS.max_file_size,
    )

    remaining = pieces[2:]
    if not remaining:
        return query
    possible_type = remaining.pop(0)
    if not remaining or possible_type in _NON_CONTENT_TYPES:
        return query
    query.type = possible_type

    if is_valid_git_commit_hash(remaining[0]):
        query.commit = remaining.pop(0)
    else:
        query.branch = await configure_branch_and_subpath(remaining, url) or None

    if remaining:
        query.subpath += "/".join(remaining)
    return query


def parse_local_path(source: str) -> IngestionQuery:
    """Build a query for a local directory or file.

    Returns:
        IngestionQuery: the query, without patterns
    """
    absolute = Path(source).expanduser().resolve()
    return IngestionQuery(
        local_path=absolute,
        slug=f"{absolute.parent.as_posix()}/{absolute.name}",
        id=uuid.uuid4().hex,
        subpath="/",
        max_file_size=DEFAULT_LIMITS.max_file_size,
    )


async def parse_query(
    source: str,
    max_file_size: int,
    from_web: bool,  # noqa: FBT001
    include_patterns: str | Iterable[str] | None = None,
    ignore_patterns: str | Iterable[str] | None = None,
    *,
    tmp_base_path: Path | None = None,
) -> IngestionQuery:
    """Resolve a source string and the pattern inputs into an ingestion query.

    The ignore set is the default catalog plus ``ignore_patterns``. When
    ``include_patterns`` is given, any pattern it names is removed from the
    ignore set so that includes win.

    Args:
        source (str): URL, ``owner/repo`` or local path
        max_file_size (int): files above this size keep no content
        from_web (bool): force remote interpretation
        include_patterns (str | Iterable[str] | None): patterns to include
        ignore_patterns (str | Iterable[str] | None): patterns to exclude
        tmp_base_path (Path | None): root for temporary clones

    Returns:
        IngestionQuery: the resolved query
    """
    # patterns first: invalid input must fail before any network request
    ignore_set = set(DEFAULT_IGNORE_PATTERNS)
    if ignore_patterns:
        ignore_set |= parse_patterns(ignore_patterns)
    parsed_include = parse_patterns(include_patterns) if include_patterns else None

    if is_likely_url(source, from_web=from_web):
        query = await parse_repo_source(source, tmp_base_path=tmp_base_path)
    else:
        query = parse_local_path(source)
    query.max_file_size = max_file_size

    if parsed_include:
        query.ignore_patterns = override_ignore_patterns(ignore_set, parsed_include)
        query.include_patterns = parsed_include
    else:
        query.ignore_patterns = ignore_set

    logger.debug("parsed query", slug=query.slug, url=query.url, subpath=query.subpath)
    return query
