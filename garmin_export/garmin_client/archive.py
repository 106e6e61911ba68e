"""Unwrap the single-member ZIP archive returned by the download service."""

from __future__ import annotations

import io
import logging
import zipfile
import zlib

from ..errors import CorruptArchiveError, UnexpectedMemberCountError

__all__ = ["ArchiveExtractor", "extract_single_member"]

LOGGER = logging.getLogger(__name__)


def _single_member(archive: zipfile.ZipFile) -> zipfile.ZipInfo:
    members = archive.infolist()
    if len(members) != 1:
        raise UnexpectedMemberCountError(len(members))
    return members[0]


def _open(data: bytes) -> zipfile.ZipFile:
    if not data:
        raise CorruptArchiveError("Archive payload is empty")
    try:
        return zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as exc:
        raise CorruptArchiveError(f"Cannot read archive: {exc}") from exc


def extract_single_member(data: bytes) -> bytes:
    """Return the decompressed bytes of the only member in ``data``."""

    with _open(data) as archive:
        member = _single_member(archive)
        try:
            content = archive.read(member)
        except (
            zipfile.BadZipFile,
            zlib.error,
            EOFError,
            NotImplementedError,
            RuntimeError,
        ) as exc:
            raise CorruptArchiveError(
                f"Cannot decompress archive member {member.filename}: {exc}"
            ) from exc
    LOGGER.debug(
        "Extracted %s (%d bytes from %d compressed)",
        member.filename,
        len(content),
        len(data),
    )
    return content


class ArchiveExtractor:
    """Object wrapper so callers can swap the unpacking strategy."""

    def extract(self, data: bytes) -> bytes:
        return extract_single_member(data)
