#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

"""Turn raw source strings into `SourceLocator` values.

`parse` never raises: anything it cannot classify becomes `Scheme.UNKNOWN` with the input
kept as `path`, so dispatch later fails with "unsupported source" instead of a parse error.

Examples:
    .. code-block:: console

        /data/model.bin, ./rel/path, C:\\data, file:///data/model.bin      -> local
        https://example.com/file.tar.gz                                 -> https
        github.com/org/repo//sub/dir, git::https://host/repo?ref=v1      -> git
        git@github.com:org/repo.git, https://host/org/repo.git          -> git
        git::./repos/tool, git::/srv/repos/tool//sub                    -> git (local repository)
        s3://bucket/key, bucket.s3.eu-west-1.amazonaws.com/key          -> s3
        az://container/blob, https://acct.blob.core.windows.net/c/blob  -> azure_blob
        gs://bucket/object, https://storage.googleapis.com/bucket/obj   -> gcs
        hf://org/name@rev?filename=model.pt                             -> huggingface
"""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, urlsplit

from gette.types import Scheme, SourceLocator

_URL_SCHEME = re.compile(r"^(?P<scheme>[A-Za-z][A-Za-z0-9+.-]*)://")
_WINDOWS_DRIVE = re.compile(r"^[A-Za-z]:[\\/]")
_SCP_LIKE = re.compile(r"^(?P<user>[\w.-]+)@(?P<host>[\w.-]+\.[\w.-]+):(?P<path>[^/].*)$")

_FORCED_GIT = "git::"
_GITHUB_HOST = "github.com"
_AWS_DOMAIN = "amazonaws.com"
_AWS_SUFFIX = f".{_AWS_DOMAIN}"
_AZURE_SUFFIX = ".blob.core.windows.net"
_GCS_HOSTS = ("storage.googleapis.com", "storage.cloud.google.com")


def _options(query: str) -> dict[str, str]:
    # dict() keeps the last value for repeated keys:
    return dict(parse_qsl(query, keep_blank_values=True))


def _split_query(text: str) -> tuple[str, str]:
    path, _, query = text.partition("?")
    return path, query


def _split_subdir(path: str) -> tuple[str, str | None]:
    """Split ``/org/repo.git//sub/dir`` into (``/org/repo.git``, ``sub/dir``)."""
    index = path.find("//", 1)
    if index == -1:
        return path, None
    return path[:index], path[index + 2 :].strip("/") or None


def _unknown(raw: str, protocol: str | None = None) -> SourceLocator:
    return SourceLocator(scheme=Scheme.UNKNOWN, path=raw, raw=raw, protocol=protocol)


def _local(text: str, raw: str) -> SourceLocator:
    path, query = _split_query(text)
    return SourceLocator(scheme=Scheme.LOCAL, path=path, query_options=_options(query), raw=raw, protocol="file")


def _git(url: str, raw: str, protocol: str | None = None) -> SourceLocator | None:
    scp = _SCP_LIKE.match(url)
    if scp:
        path, query = _split_query(scp.group("path"))
        path, subdir = _split_subdir("/" + path)
        options = _options(query)
        if subdir:
            options.setdefault("subdir", subdir)
        return SourceLocator(
            scheme=Scheme.GIT,
            authority=f"{scp.group('user')}@{scp.group('host')}",
            path=path,
            query_options=options,
            raw=raw,
            protocol="ssh",
        )
    if _WINDOWS_DRIVE.match(url) or not _URL_SCHEME.match(url):
        return _git_local(url, raw)
    parts = urlsplit(url)
    if not parts.scheme or not (parts.netloc or parts.path.strip("/")):
        return None
    path, subdir = _split_subdir(parts.path)
    options = _options(parts.query)
    if subdir:
        options.setdefault("subdir", subdir)
    return SourceLocator(
        scheme=Scheme.GIT,
        authority=parts.netloc or None,
        path=path,
        query_options=options,
        raw=raw,
        protocol=protocol or parts.scheme.lower(),
    )


def _git_local(text: str, raw: str) -> SourceLocator | None:
    """``git::./repo//sub?ref=v1``: a repository on the local filesystem."""
    path, query = _split_query(text)
    path, subdir = _split_subdir(path)
    if not path:
        return None
    options = _options(query)
    if subdir:
        options.setdefault("subdir", subdir)
    return SourceLocator(scheme=Scheme.GIT, path=path, query_options=options, raw=raw, protocol="file")


def _github(text: str, raw: str) -> SourceLocator | None:
    """``github.com/:owner/:repo[/sub/dir]`` -> ``https://github.com/:owner/:repo.git`` (+ subdir)."""
    path, query = _split_query(text)
    parts = path.split("/")
    if len(parts) < 3 or not parts[1] or not parts[2]:
        return None
    owner, repo = parts[1], parts[2]
    if not repo.endswith(".git"):
        repo = f"{repo}.git"
    options = _options(query)
    subdir = "/".join(parts[3:]).strip("/")
    if subdir:
        options.setdefault("subdir", subdir)
    return SourceLocator(
        scheme=Scheme.GIT,
        authority=_GITHUB_HOST,
        path=f"/{owner}/{repo}",
        query_options=options,
        raw=raw,
        protocol="https",
    )


def _s3_from_host(host: str, path: str, query: str, raw: str) -> SourceLocator | None:
    """Decode the AWS host styles into bucket / key / region.

    - ``bucket.s3.<region>.amazonaws.com/key`` and ``bucket.s3-<region>.amazonaws.com/key``
    - ``bucket.<region>.amazonaws.com/key``
    - ``s3.<region>.amazonaws.com/bucket/key``, ``s3-<region>.amazonaws.com/bucket/key``
    - ``<region>.amazonaws.com/bucket/key`` and ``s3.amazonaws.com/bucket/key``
    """
    prefix = host.lower().removesuffix(_AWS_SUFFIX).split(".")
    if not prefix or not prefix[0]:
        return None
    segments = path.lstrip("/")
    region: str | None
    if prefix[0] == "s3":
        if len(prefix) > 2:
            return None
        region = prefix[1] if len(prefix) == 2 else None
        bucket, _, key = segments.partition("/")
    elif prefix[0].startswith("s3-") or len(prefix) == 1:
        if len(prefix) > 1:
            return None
        region = prefix[0].removeprefix("s3-")
        bucket, _, key = segments.partition("/")
    else:
        bucket, rest = prefix[0], prefix[1:]
        if rest[0] == "s3" and len(rest) <= 2:
            region = rest[1] if len(rest) == 2 else None
        elif rest[0].startswith("s3-") and len(rest) == 1:
            region = rest[0].removeprefix("s3-")
        elif len(rest) == 1:
            region = rest[0]
        else:
            return None
        key = segments
    if not bucket:
        return None
    options = _options(query)
    if region:
        options.setdefault("region", region)
    return SourceLocator(scheme=Scheme.S3, authority=bucket, path=key, query_options=options, raw=raw, protocol="s3")


def _azure_from_host(host: str, path: str, query: str, raw: str) -> SourceLocator:
    account = host.lower().removesuffix(_AZURE_SUFFIX)
    return SourceLocator(
        scheme=Scheme.AZURE_BLOB,
        authority=account or None,
        path=path.lstrip("/"),
        query_options=_options(query),
        raw=raw,
        protocol="az",
    )


def _gcs_from_host(path: str, query: str, raw: str) -> SourceLocator | None:
    bucket, _, key = path.lstrip("/").partition("/")
    if not bucket:
        return None
    return SourceLocator(
        scheme=Scheme.GCS, authority=bucket, path=key, query_options=_options(query), raw=raw, protocol="gs"
    )


def _from_host(host: str, path: str, query: str, raw: str) -> SourceLocator | None:
    """Cloud host patterns, shared by scheme-less sources and http(s) URLs."""
    host = host.lower()
    if host == _AWS_DOMAIN:
        # no bucket or region in front of the domain
        return _unknown(raw)
    if host.endswith(_AWS_SUFFIX):
        return _s3_from_host(host, path, query, raw) or _unknown(raw)
    if host.endswith(_AZURE_SUFFIX):
        return _azure_from_host(host, path, query, raw)
    if host in _GCS_HOSTS:
        return _gcs_from_host(path, query, raw) or _unknown(raw)
    return None


def _without_scheme(text: str, raw: str) -> SourceLocator:
    if _SCP_LIKE.match(text):
        return _git(text, raw) or _unknown(raw)
    host, sep, _ = text.partition("/")
    if sep and host.lower() == _GITHUB_HOST:
        return _github(text, raw) or _unknown(raw)
    if sep and "." in host:
        path, query = _split_query(text[len(host) :])
        located = _from_host(host, path, query, raw)
        if located is not None:
            return located
    return _local(text, raw)


def _http(text: str, raw: str, scheme: str) -> SourceLocator:
    parts = urlsplit(text)
    repo_path, _ = _split_subdir(parts.path)
    if repo_path.endswith(".git"):
        return _git(text, raw) or _unknown(raw)
    located = _from_host(parts.hostname or "", parts.path, parts.query, raw)
    if located is not None:
        return located
    return SourceLocator(
        scheme=Scheme.HTTPS if scheme == "https" else Scheme.HTTP,
        authority=parts.netloc,
        path=parts.path,
        query_options=_options(parts.query),
        raw=raw,
        protocol=scheme,
    )


def _bucket_url(text: str, raw: str, scheme: Scheme, protocol: str) -> SourceLocator:
    parts = urlsplit(text)
    if scheme is Scheme.AZURE_BLOB:
        # az://container/blob: the account comes from credentials, not the URL
        path = f"{parts.netloc}{parts.path}"
        return SourceLocator(
            scheme=scheme, authority=None, path=path, query_options=_options(parts.query), raw=raw, protocol=protocol
        )
    return SourceLocator(
        scheme=scheme,
        authority=parts.netloc or None,
        path=parts.path.lstrip("/"),
        query_options=_options(parts.query),
        raw=raw,
        protocol=protocol,
    )


def parse(raw: str) -> SourceLocator:
    """Parse a raw source string. Deterministic and total: never raises.

    Args:
        raw: Path, URL or shorthand as given by the caller.

    Returns:
        - A `SourceLocator`; `Scheme.UNKNOWN` if nothing recognized the string.
    """
    text = raw.strip()
    if not text:
        return _unknown(raw)
    try:
        return _classify(text, raw)
    except ValueError:
        # urlsplit rejects some inputs, e.g. unbalanced IPv6 brackets
        return _unknown(raw)


def _classify(text: str, raw: str) -> SourceLocator:
    if text.startswith(_FORCED_GIT):
        return _git(text[len(_FORCED_GIT) :], raw) or _unknown(raw)
    if _WINDOWS_DRIVE.match(text):
        return _local(text, raw)

    match = _URL_SCHEME.match(text)
    if match is None:
        return _without_scheme(text, raw)

    scheme = match.group("scheme").lower()
    rest = text[match.end() :]
    if scheme == "file":
        return _local(rest.removeprefix("localhost") if rest.startswith("localhost/") else rest, raw)
    if scheme in ("http", "https"):
        return _http(text, raw, scheme)
    if scheme.startswith("git+"):
        return _git(text[len("git+") :], raw) or _unknown(raw)
    if scheme in ("git", "ssh"):
        return _git(text, raw) or _unknown(raw)
    if scheme in ("s3+http", "s3+https"):
        parts = urlsplit(text)
        return _s3_from_host(parts.hostname or "", parts.path, parts.query, raw) or _unknown(raw)
    if scheme == "s3":
        return _bucket_url(text, raw, Scheme.S3, "s3")
    if scheme in ("gs", "gcs"):
        return _bucket_url(text, raw, Scheme.GCS, "gs")
    if scheme in ("az", "azure"):
        return _bucket_url(text, raw, Scheme.AZURE_BLOB, "az")
    if scheme == "hf":
        parts = urlsplit(text)
        return SourceLocator(
            scheme=Scheme.HUGGINGFACE,
            authority=parts.netloc or None,
            path=parts.path,
            query_options=_options(parts.query),
            raw=raw,
            protocol="hf",
        )
    return _unknown(raw, protocol=scheme)
