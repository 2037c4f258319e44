"""
Byte sources for random art.

Provides three input formats:
1. Raw bytes, used as-is (the digest itself)
2. Hex text, optionally colon separated ("d4:1d:8c:...")
3. ssh-keygen style fingerprints ("MD5:d4:1d:..." or "SHA256:47DEQpj8...")
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO

from randomart import READ_SIZE

__all__ = [
    "InputFormat",
    "SourceOptions",
    "load_digest",
    "parse_fingerprint",
    "parse_hex_fingerprint",
    "parse_ssh_fingerprint",
    "read_bytes",
]

logger = logging.getLogger(__name__)


class InputFormat(Enum):
    """How bytes read from a source are turned into a digest."""

    RAW = "raw"  # Bytes are the digest
    HEX = "hex"  # Hex digits, ':' and whitespace ignored
    SSH = "ssh"  # ALGO:digest as printed by ssh-keygen -l


# Digest sizes for the algorithms ssh-keygen prints in base64
BASE64_DIGEST_SIZES = {
    "SHA1": 20,
    "SHA256": 32,
    "SHA384": 48,
    "SHA512": 64,
}
MD5_DIGEST_SIZE = 16


@dataclass(frozen=True)
class SourceOptions:
    """Options governing how a digest is loaded from a stream."""

    input_format: InputFormat = InputFormat.RAW
    limit: int | None = None  # Max bytes read from the stream, None = until exhausted

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 0:
            raise ValueError(f"Read limit must not be negative, got {self.limit}")


# =============================================================================
# Reading
# =============================================================================


def read_bytes(stream: BinaryIO, limit: int | None = None) -> bytes:
    """
    Read a binary stream until it is exhausted or `limit` bytes have been read.

    Without a limit, a stream that never ends is read forever.

    Args:
        stream: Binary stream to read from
        limit: Maximum number of bytes to read, or None for no bound

    Returns:
        The bytes read
    """
    if limit is not None and limit < 0:
        raise ValueError(f"Read limit must not be negative, got {limit}")

    data = bytearray()
    while limit is None or len(data) < limit:
        size = READ_SIZE if limit is None else min(READ_SIZE, limit - len(data))
        chunk = stream.read(size)
        if not chunk:
            return bytes(data)
        data.extend(chunk)

    # Never read past the limit, not even to see whether more input follows.
    logger.info("read_bytes: read limit of %d bytes reached", limit)
    return bytes(data)


# =============================================================================
# Parsing
# =============================================================================


def _format_error(problem: str, text: str) -> ValueError:
    return ValueError(
        f"{problem}\n"
        f"  Input: '{text}'\n"
        f"  Valid formats:\n"
        f"    - Hex digits, optionally ':' separated (e.g., 'd4:1d:8c:d9')\n"
        f"    - 'MD5:' followed by 16 colon separated hex bytes\n"
        f"    - 'SHA1:', 'SHA256:', 'SHA384:' or 'SHA512:' followed by unpadded base64"
    )


def parse_hex_fingerprint(text: str) -> bytes:
    """
    Parse hex fingerprint text into digest bytes.

    Colons and whitespace between digits are ignored, as is a leading 'MD5:'.

    Example:
        "MD5:d4:1d:8c:d9" -> b"\\xd4\\x1d\\x8c\\xd9"
    """
    digits = text.strip()
    if digits.upper().startswith("MD5:"):
        digits = digits[4:]
    digits = "".join(digits.replace(":", "").split())

    if not digits:
        raise _format_error("Empty fingerprint", text)
    try:
        return bytes.fromhex(digits)
    except ValueError as exc:
        raise _format_error(f"Invalid hex fingerprint: {exc}", text) from exc


def parse_ssh_fingerprint(text: str) -> bytes:
    """
    Parse a fingerprint as printed by ssh-keygen into digest bytes.

    'MD5:' fingerprints are colon separated hex; the SHA family is base64
    with the trailing padding stripped. The decoded length must match the
    named algorithm.
    """
    stripped = text.strip()
    algorithm, sep, digest = stripped.partition(":")
    algorithm = algorithm.upper()
    if not sep or not digest:
        raise _format_error("Missing 'ALGO:' prefix or digest", text)

    if algorithm == "MD5":
        result = parse_hex_fingerprint(digest)
        expected = MD5_DIGEST_SIZE
    elif algorithm in BASE64_DIGEST_SIZES:
        padded = digest + "=" * (-len(digest) % 4)
        try:
            result = base64.b64decode(padded, validate=True)
        except binascii.Error as exc:
            raise _format_error(f"Invalid base64 in {algorithm} fingerprint: {exc}", text) from exc
        expected = BASE64_DIGEST_SIZES[algorithm]
    else:
        raise _format_error(f"Unknown fingerprint algorithm: '{algorithm}'", text)

    if len(result) != expected:
        raise _format_error(
            f"{algorithm} fingerprint must decode to {expected} bytes, got {len(result)}", text
        )
    return result


def parse_fingerprint(text: str, input_format: InputFormat) -> bytes:
    """Parse fingerprint text in one of the text formats."""
    match input_format:
        case InputFormat.HEX:
            return parse_hex_fingerprint(text)
        case InputFormat.SSH:
            return parse_ssh_fingerprint(text)
        case _:
            raise ValueError(f"Not a text format: {input_format}")


def load_digest(stream: BinaryIO, options: SourceOptions = SourceOptions()) -> bytes:
    """
    Read a digest from a binary stream according to `options`.

    Raw input is returned untouched. Text formats are decoded as ASCII and
    parsed; anything else is reported as a ValueError.
    """
    data = read_bytes(stream, options.limit)
    if options.input_format is InputFormat.RAW:
        return data

    try:
        text = data.decode("ascii")
    except UnicodeDecodeError as exc:
        raise ValueError(f"Fingerprint text is not ASCII: {exc}") from exc
    return parse_fingerprint(text, options.input_format)
