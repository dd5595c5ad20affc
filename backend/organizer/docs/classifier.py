"""Magic-byte file type classification for uploads.

Only EPUB and PDF are accepted. Other recognised kinds are identified so the
rejection can be logged with a useful mime type.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO

logger = logging.getLogger(__name__)

# Prefix length read from every upload; covers all signatures below
HEADER_SIZE = 261


class FileKind(str, Enum):
    """Recognised binary formats."""

    epub = "epub"
    pdf = "pdf"
    zip = "zip"
    png = "png"
    jpeg = "jpeg"
    gif = "gif"


@dataclass(frozen=True)
class Signature:
    """Byte patterns that must all appear at their offsets."""

    kind: FileKind
    mime: str
    parts: tuple[tuple[int, bytes], ...]

    def matches(self, head: bytes) -> bool:
        return all(head[offset : offset + len(magic)] == magic for offset, magic in self.parts)


# EPUB is a zip container, so it must be checked before the plain zip entry.
SIGNATURES: tuple[Signature, ...] = (
    Signature(
        FileKind.epub,
        "application/epub+zip",
        ((0, b"PK\x03\x04"), (30, b"mimetypeapplication/epub+zip")),
    ),
    Signature(FileKind.pdf, "application/pdf", ((0, b"%PDF"),)),
    Signature(FileKind.zip, "application/zip", ((0, b"PK\x03\x04"),)),
    Signature(FileKind.png, "image/png", ((0, b"\x89PNG\r\n\x1a\n"),)),
    Signature(FileKind.jpeg, "image/jpeg", ((0, b"\xff\xd8\xff"),)),
    Signature(FileKind.gif, "image/gif", ((0, b"GIF8"),)),
)

# TODO: accept mobi once a reliable signature check is available.
SUPPORTED_KINDS = frozenset({FileKind.epub, FileKind.pdf})


def match_signature(head: bytes) -> Signature | None:
    """Return the first signature matching `head`, or None if unrecognised."""
    for signature in SIGNATURES:
        if signature.matches(head):
            return signature
    return None


def _read_header(stream: BinaryIO) -> bytes:
    """Read exactly HEADER_SIZE bytes, looping over short reads."""
    chunks: list[bytes] = []
    remaining = HEADER_SIZE
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def is_supported(stream: BinaryIO) -> bool:
    """Classify the start of `stream` as an accepted upload type.

    The stream's position is restored afterwards, whatever the verdict, so the
    caller can consume it from the start.

    Args:
        stream: Seekable binary stream positioned at its start

    Returns:
        True for EPUB and PDF payloads, False otherwise (including streams
        shorter than the header or streams that fail to read)
    """
    start = stream.tell()
    try:
        head = _read_header(stream)
    except OSError as e:
        logger.error(f"[classifier] couldn't read file header: {e}")
        return False
    finally:
        stream.seek(start)

    if len(head) < HEADER_SIZE:
        logger.error(
            "[classifier] couldn't read file header: unexpected EOF",
            extra={"structured": {"bytes_read": len(head)}},
        )
        return False

    signature = match_signature(head)
    if signature is None:
        logger.error("[classifier] unable to determine file type")
        return False

    if signature.kind not in SUPPORTED_KINDS:
        logger.error(
            "[classifier] file type not supported",
            extra={"structured": {"mime": signature.mime, "ext": signature.kind.value}},
        )
        return False

    return True
