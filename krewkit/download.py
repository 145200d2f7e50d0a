"""Fetching, checksum verification and extraction of plugin archives."""

from __future__ import annotations

import hashlib
import io
import json
import logging
import os
import shutil
import tarfile
import urllib.error
import urllib.request
import zipfile
import zlib
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import BinaryIO, Protocol

logger = logging.getLogger(__name__)

_O_BINARY = getattr(os, "O_BINARY", 0)


class DownloadError(Exception):
    """Raised when an archive cannot be fetched, verified or extracted."""


def _quote(value: str) -> str:
    return json.dumps(value)


class Verifier(Protocol):
    """Receives the downloaded bytes and checks them once complete."""

    def write(self, data: bytes) -> int: ...

    def verify(self) -> None: ...


class Fetcher(Protocol):
    """Opens a binary stream for a URI."""

    def get(self, uri: str) -> BinaryIO: ...


class Sha256Verifier:
    """Verifies written content against an expected hex-encoded SHA-256 digest."""

    def __init__(self, hashed: str) -> None:
        try:
            self._wanted = bytes.fromhex(hashed)
        except ValueError:
            self._wanted = b""
        self._hash = hashlib.sha256()

    def write(self, data: bytes) -> int:
        self._hash.update(data)
        return len(data)

    def verify(self) -> None:
        logger.debug("Compare sha256 (%s) signed version", self._wanted.hex())
        got = self._hash.digest()
        if got != self._wanted:
            raise DownloadError(
                f"checksum does not match, want: {self._wanted.hex()}, got {got.hex()}"
            )


class HTTPFetcher:
    """Fetches files over http:// or https://."""

    def get(self, uri: str) -> BinaryIO:
        logger.debug("Fetching %s", _quote(uri))
        try:
            return urllib.request.urlopen(uri)
        except urllib.error.HTTPError as err:
            # The response body is returned whatever the status code is.
            return err
        except (urllib.error.URLError, OSError, ValueError) as err:
            raise DownloadError(f"failed to download {_quote(uri)}: {err}") from err


class FileFetcher:
    """Reads a fixed local file, whatever URI is asked for."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = os.fspath(path)

    def get(self, uri: str) -> BinaryIO:
        logger.debug("Reading %s", _quote(self.path))
        try:
            return open(self.path, "rb")
        except OSError as err:
            raise DownloadError(
                f"failed to open archive file {_quote(self.path)} for reading: {err}"
            ) from err


def download(url: str, verifier: Verifier, fetcher: Fetcher) -> bytes:
    """Read the whole file at ``url`` into memory, feeding it to ``verifier``."""
    try:
        body = fetcher.get(url)
    except (DownloadError, OSError) as err:
        raise DownloadError(f"failed to obtain plugin archive: {err}") from err
    with body:
        logger.debug("Reading archive file into memory")
        try:
            data = body.read()
        except OSError as err:
            raise DownloadError(f"could not read archive: {err}") from err
    verifier.write(data)
    logger.debug("Read %d bytes from archive into memory", len(data))
    verifier.verify()
    return data


def suspicious_path(path: str) -> None:
    """Raise if an archive entry could escape the extraction directory."""
    if ".." in path:
        raise DownloadError(
            f"refusing to unpack archive with suspicious entry {_quote(path)}"
        )
    if path.startswith("/") or path.startswith("\\"):
        raise DownloadError(
            f"refusing to unpack archive with absolute entry {_quote(path)}"
        )


def _target_path(target_dir: str, name: str) -> str:
    return os.path.normpath(os.path.join(target_dir, name.replace("/", os.sep)))


def _zip_mode(info: zipfile.ZipInfo) -> int:
    mode = (info.external_attr >> 16) & 0o777
    if mode:
        return mode
    if info.is_dir():
        return 0o777
    return 0o444 if info.external_attr & 0x01 else 0o666


def extract_zip(target_dir: str | os.PathLike[str], data: bytes) -> None:
    """Extract a zip archive held in ``data`` into ``target_dir``."""
    target_dir = os.fspath(target_dir)
    logger.debug("Extracting zip archive to %s", _quote(target_dir))
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, OSError) as err:
        raise DownloadError(f"failed to open zip archive: {err}") from err

    with archive:
        for info in archive.infolist():
            suspicious_path(info.filename)
            path = _target_path(target_dir, info.filename)
            mode = _zip_mode(info)
            if info.is_dir():
                try:
                    os.makedirs(path, mode, exist_ok=True)
                except OSError as err:
                    raise DownloadError(f"can't create directory tree: {err}") from err
                continue

            try:
                src = archive.open(info)
            except (zipfile.BadZipFile, NotImplementedError, OSError) as err:
                raise DownloadError(f"could not open inflating zip file: {err}") from err
            with src:
                try:
                    fd = os.open(
                        path, os.O_CREAT | os.O_WRONLY | os.O_TRUNC | _O_BINARY, mode
                    )
                except OSError as err:
                    raise DownloadError(
                        f"can't create file in zip destination dir: {err}"
                    ) from err
                with os.fdopen(fd, "wb") as dst:
                    try:
                        shutil.copyfileobj(src, dst)
                    except (zipfile.BadZipFile, zlib.error, OSError) as err:
                        raise DownloadError(
                            f"can't copy content to zip destination file: {err}"
                        ) from err


def extract_targz(target_dir: str | os.PathLike[str], data: bytes) -> None:
    """Extract a gzipped tar archive held in ``data`` into ``target_dir``."""
    target_dir = os.fspath(target_dir)
    logger.debug("tar: extracting to %s", _quote(target_dir))
    try:
        archive = tarfile.open(fileobj=io.BytesIO(data), mode="r:gz")
    except (tarfile.TarError, EOFError, OSError, zlib.error) as err:
        raise DownloadError(f"failed to create gzip reader: {err}") from err

    with archive:
        while True:
            try:
                member = archive.next()
            except (tarfile.TarError, EOFError, OSError, zlib.error) as err:
                raise DownloadError(f"tar extraction error: {err}") from err
            if member is None:
                break
            logger.debug(
                "tar: processing %s (type=%s, mode=%o)",
                _quote(member.name),
                member.type,
                member.mode,
            )
            if member.name == "pax_global_header":
                logger.debug("tar: skipping pax_global_header file")
                continue

            suspicious_path(member.name)
            path = _target_path(target_dir, member.name)
            if member.isdir():
                try:
                    os.makedirs(path, member.mode, exist_ok=True)
                except OSError as err:
                    raise DownloadError(
                        f"failed to create directory from tar: {err}"
                    ) from err
            elif member.isreg():
                parent = os.path.dirname(path)
                logger.debug("tar: ensuring parent dirs exist for regular file, dir=%s", parent)
                try:
                    os.makedirs(parent, 0o755, exist_ok=True)
                except OSError as err:
                    raise DownloadError(
                        f"failed to create directory for tar: {err}"
                    ) from err
                try:
                    fd = os.open(path, os.O_CREAT | os.O_WRONLY | _O_BINARY, member.mode)
                except OSError as err:
                    raise DownloadError(
                        f"failed to create file {_quote(path)}: {err}"
                    ) from err
                with os.fdopen(fd, "wb") as dst:
                    try:
                        src = archive.extractfile(member)
                        if src is not None:
                            with src:
                                shutil.copyfileobj(src, dst)
                    except (tarfile.TarError, EOFError, OSError, zlib.error) as err:
                        raise DownloadError(
                            f"failed to copy {_quote(member.name)} from tar into file: {err}"
                        ) from err
            else:
                raise DownloadError(
                    f"unable to handle file type {ord(member.type)} "
                    f"for {_quote(member.name)} in tar"
                )
            logger.debug("tar: processed %s", _quote(member.name))
    logger.debug("tar extraction to %s complete", target_dir)


# Content sniffing, following the WHATWG MIME sniffing rules.

_WHITESPACE = b"\t\n\x0c\r "
_TAG_TERMINATORS = b" >"

_HTML_TAGS = [
    b"<!DOCTYPE HTML", b"<HTML", b"<HEAD", b"<SCRIPT", b"<IFRAME", b"<H1",
    b"<DIV", b"<FONT", b"<TABLE", b"<A", b"<STYLE", b"<TITLE", b"<B",
    b"<BODY", b"<BR", b"<P", b"<!--",
]

_EXACT_PREFIXES = [
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"\xfe\xff", "text/plain; charset=utf-16be"),
    (b"\xff\xfe", "text/plain; charset=utf-16le"),
    (b"\xef\xbb\xbf", "text/plain; charset=utf-8"),
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"\x00\x00\x02\x00", "image/x-icon"),
    (b"BM", "image/bmp"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\x0d\x0a\x1a\x0a", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"ID3", "audio/mpeg"),
    (b"OggS\x00", "application/ogg"),
    (b"MThd\x00\x00\x00\x06", "audio/midi"),
    (b"\x1a\x45\xdf\xa3", "video/webm"),
    (b"wOFF", "font/woff"),
    (b"wOF2", "font/woff2"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"PK\x03\x04", "application/zip"),
    (b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    (b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    (b"\x00\x61\x73\x6d", "application/wasm"),
]

_MASKED = [
    (b"\xff\xff\xff\xff\xff", b"<?xml", True, "text/xml; charset=utf-8"),
    (
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff\xff\xff",
        b"RIFF\x00\x00\x00\x00WEBPVP",
        False,
        "image/webp",
    ),
    (
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
        b"RIFF\x00\x00\x00\x00WAVE",
        False,
        "audio/wave",
    ),
    (
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
        b"FORM\x00\x00\x00\x00AIFF",
        False,
        "audio/aiff",
    ),
    (
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
        b"RIFF\x00\x00\x00\x00AVI ",
        False,
        "video/avi",
    ),
]


def _skip_whitespace(data: bytes) -> bytes:
    return data.lstrip(_WHITESPACE)


def _matches_html(data: bytes) -> bool:
    data = _skip_whitespace(data)
    for tag in _HTML_TAGS:
        if len(data) < len(tag) + 1:
            continue
        if all(
            (d & 0xDF if 0x41 <= t <= 0x5A else d) == t
            for d, t in zip(data, tag)
        ) and data[len(tag)] in _TAG_TERMINATORS:
            return True
    return False


def _matches_masked(data: bytes, mask: bytes, pattern: bytes, skip_ws: bool) -> bool:
    if skip_ws:
        data = _skip_whitespace(data)
    if len(data) < len(pattern):
        return False
    return all((d & m) == p for d, m, p in zip(data, mask, pattern))


def _is_binary_byte(b: int) -> bool:
    return b <= 0x08 or b == 0x0B or 0x0E <= b <= 0x1A or 0x1C <= b <= 0x1F


def _sniff(data: bytes) -> str:
    if _matches_html(data):
        return "text/html; charset=utf-8"
    for mask, pattern, skip_ws, ctype in _MASKED:
        if _matches_masked(data, mask, pattern, skip_ws):
            return ctype
    for prefix, ctype in _EXACT_PREFIXES:
        if data.startswith(prefix):
            return ctype
    if not any(_is_binary_byte(b) for b in _skip_whitespace(data)):
        return "text/plain; charset=utf-8"
    return "application/octet-stream"


def detect_mime_type(data: bytes) -> str:
    """Return the sniffed MIME type of ``data`` without parameters."""
    head = data[:512]
    if len(head) < 512:
        logger.debug("Did only read %d of 512 bytes to determine the file type", len(head))
    return _sniff(head).split(";")[0]


Extractor = Callable[[str, bytes], None]

DEFAULT_EXTRACTORS: dict[str, Extractor] = {
    "application/zip": extract_zip,
    "application/x-gzip": extract_targz,
}


def extract_archive(
    dst: str | os.PathLike[str],
    data: bytes,
    extractors: Mapping[str, Extractor] | None = None,
) -> None:
    """Detect the archive format of ``data`` and extract it into ``dst``."""
    if extractors is None:
        extractors = DEFAULT_EXTRACTORS
    mime = detect_mime_type(data)
    logger.debug("detected %s file type", _quote(mime))
    extractor = extractors.get(mime)
    if extractor is None:
        raise DownloadError(
            f"mime type {_quote(mime)} for archive file is not a supported archive format"
        )
    try:
        extractor(os.fspath(dst), data)
    except (DownloadError, OSError) as err:
        raise DownloadError(f"failed to extract file: {err}") from err


@dataclass(frozen=True)
class Downloader:
    """Fetches, verifies and extracts a plugin archive."""

    verifier: Verifier
    fetcher: Fetcher

    def get(self, uri: str, dst: str | os.PathLike[str]) -> None:
        """Download ``uri``, verify it and extract it into ``dst``."""
        data = download(uri, self.verifier, self.fetcher)
        extract_archive(dst, data)