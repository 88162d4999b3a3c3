"""Conversion between PEM text, base64, and binary data."""

from __future__ import annotations

import base64
import binascii
import re
import textwrap
from collections.abc import Iterable
from enum import StrEnum

from .exceptions import InvalidConfigError, PemConversionError, PemFormatError

__all__ = [
    "PemType",
    "buffer_to_pem",
    "extract_base64_from_pem",
    "find_pem_type",
    "is_valid_base64",
    "is_valid_pem",
    "pem_to_buffer",
    "to_pem",
]

_BASE64_REGEX = re.compile(
    r"^(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=)?$"
)
_BEGIN_REGEX = re.compile(r"-----BEGIN ([A-Z0-9 ]+)-----")
_LINE_LENGTH = 64
_WHITESPACE_REGEX = re.compile(r"\s+")


class PemType(StrEnum):
    """Types of PEM envelope used in kubeconfig files."""

    CERTIFICATE = "CERTIFICATE"
    PRIVATE_KEY = "PRIVATE KEY"
    RSA_PRIVATE_KEY = "RSA PRIVATE KEY"
    EC_PRIVATE_KEY = "EC PRIVATE KEY"


def is_valid_base64(data: str) -> bool:
    """Check whether a string is valid, correctly padded base64.

    Whitespace anywhere in the string is ignored. The empty string is not
    considered valid.
    """
    stripped = _WHITESPACE_REGEX.sub("", data)
    return bool(stripped) and _BASE64_REGEX.match(stripped) is not None


def extract_base64_from_pem(pem: str, pem_type: str) -> str:
    """Extract the base64 payload from a PEM envelope.

    Parameters
    ----------
    pem
        PEM text.
    pem_type
        Expected envelope type, such as ``CERTIFICATE``. Matched
        case-insensitively.

    Returns
    -------
    str
        Payload with all whitespace removed.

    Raises
    ------
    PemFormatError
        Raised if there is no envelope of that type or it is empty.
    """
    label = re.escape(pem_type)
    regex = re.compile(
        rf"-----BEGIN {label}-----(.*?)-----END {label}-----",
        re.IGNORECASE | re.DOTALL,
    )
    match = regex.search(pem)
    if not match:
        raise PemFormatError(f"Invalid PEM format for type: {pem_type}")
    payload = _WHITESPACE_REGEX.sub("", match.group(1))
    if not payload:
        raise PemFormatError(f"Empty PEM payload for type: {pem_type}")
    return payload


def pem_to_buffer(pem: str, pem_type: str) -> bytes:
    """Decode the binary data inside a PEM envelope.

    Raises
    ------
    PemFormatError
        Raised if there is no envelope of that type or the payload is not
        valid base64.
    """
    payload = extract_base64_from_pem(pem, pem_type)
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        msg = f"Invalid base64 payload in PEM for type: {pem_type}"
        raise PemFormatError(msg, cause=e) from e


def is_valid_pem(pem: str, pem_type: str) -> bool:
    """Check whether text contains a PEM envelope of exactly this type.

    Only the envelope is checked, not the payload.
    """
    label = re.escape(pem_type)
    regex = re.compile(rf"-----BEGIN {label}-----[\s\S]+-----END {label}-----")
    return regex.search(pem) is not None


def find_pem_type(text: str) -> str | None:
    """Return the type named by the first ``BEGIN`` line, if any."""
    match = _BEGIN_REGEX.search(text)
    return match.group(1) if match else None


def buffer_to_pem(buffer: bytes, pem_type: str) -> str:
    """Wrap binary data in a PEM envelope.

    Parameters
    ----------
    buffer
        Binary data, usually DER.
    pem_type
        Envelope type, used verbatim.

    Returns
    -------
    str
        PEM text with 64-character lines and a trailing newline.

    Raises
    ------
    PemConversionError
        Raised if ``buffer`` is not binary data or is empty.
    """
    if not isinstance(buffer, bytes | bytearray | memoryview):
        msg = f"Expected binary data, not {type(buffer).__name__}"
        raise PemConversionError(msg)
    if len(buffer) == 0:
        raise PemConversionError("Cannot convert empty data to PEM")
    encoded = base64.b64encode(buffer).decode("ascii")
    if not is_valid_base64(encoded):
        raise PemConversionError(f"Failed to encode data for type: {pem_type}")
    body = "\n".join(textwrap.wrap(encoded, _LINE_LENGTH))
    return f"-----BEGIN {pem_type}-----\n{body}\n-----END {pem_type}-----\n"


def to_pem(
    data: str, accepted: Iterable[PemType], *, field: str
) -> tuple[str, str]:
    """Normalize certificate or key material from a kubeconfig to PEM.

    Kubeconfig fields may hold PEM text directly, base64-encoded PEM text (as
    written by :command:`kubectl`), or base64-encoded DER.

    Parameters
    ----------
    data
        Field value.
    accepted
        Envelope types acceptable for this field. DER data is wrapped using
        the first one.
    field
        Name of the field, used in error messages.

    Returns
    -------
    tuple of str
        Base64 form of the data and the PEM text.

    Raises
    ------
    InvalidConfigError
        Raised if the data is neither PEM nor valid base64.
    PemFormatError
        Raised if the data is PEM of a type not in ``accepted`` or the
        converted PEM is invalid.
    """
    types = list(accepted)
    if find_pem_type(data):
        pem = _check_pem_type(data, types, field)
        return base64.b64encode(pem.encode()).decode("ascii"), pem

    if not is_valid_base64(data):
        raise InvalidConfigError(f"Invalid base64 format for {field}.")
    stripped = _WHITESPACE_REGEX.sub("", data)
    decoded = base64.b64decode(stripped)
    try:
        text = decoded.decode()
    except UnicodeDecodeError:
        text = None
    if text and find_pem_type(text):
        return stripped, _check_pem_type(text, types, field)

    pem = buffer_to_pem(decoded, types[0])
    if not is_valid_pem(pem, types[0]):
        msg = f"Converted PEM for {field} is invalid for type: {types[0]}"
        raise PemFormatError(msg)
    return stripped, pem


def _check_pem_type(text: str, types: list[PemType], field: str) -> str:
    if not any(is_valid_pem(text, t) for t in types):
        found = find_pem_type(text)
        expected = " or ".join(types)
        msg = f"{field} contains a PEM {found}, expected {expected}"
        raise PemFormatError(msg)
    return text
