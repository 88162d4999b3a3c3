"""Tests for PEM conversion."""

from __future__ import annotations

import base64

import pytest

from kubecreds.exceptions import (
    InvalidConfigError,
    KubeConfigErrorKind,
    PemConversionError,
    PemFormatError,
)
from kubecreds.pem import (
    PemType,
    buffer_to_pem,
    extract_base64_from_pem,
    find_pem_type,
    is_valid_base64,
    is_valid_pem,
    pem_to_buffer,
    to_pem,
)


def test_is_valid_base64() -> None:
    assert is_valid_base64("dmFsaWQtY2EtY2VydA==")
    assert is_valid_base64("YWJj")
    assert is_valid_base64("YWJj\nZGVm\n")
    assert not is_valid_base64("")
    assert not is_valid_base64("   ")
    assert not is_valid_base64("not base64!")
    assert not is_valid_base64("YWJ")
    assert not is_valid_base64("YW=j")


def test_buffer_to_pem() -> None:
    data = bytes(range(100))
    pem = buffer_to_pem(data, "CERTIFICATE")

    lines = pem.split("\n")
    assert lines[0] == "-----BEGIN CERTIFICATE-----"
    assert lines[-2] == "-----END CERTIFICATE-----"
    assert lines[-1] == ""
    assert all(len(line) <= 64 for line in lines[1:-2])
    assert len(lines[1]) == 64
    assert "".join(lines[1:-2]) == base64.b64encode(data).decode()


def test_buffer_to_pem_errors() -> None:
    with pytest.raises(PemConversionError) as excinfo:
        buffer_to_pem(b"", "CERTIFICATE")
    assert excinfo.value.kind == KubeConfigErrorKind.PEM_CONVERSION

    with pytest.raises(PemConversionError):
        buffer_to_pem("text", "CERTIFICATE")  # type: ignore[arg-type]


def test_pem_to_buffer() -> None:
    data = b"\x00\x01binary\xff"
    pem = buffer_to_pem(data, "RSA PRIVATE KEY")

    assert pem_to_buffer(pem, "RSA PRIVATE KEY") == data


def test_extract_base64_from_pem() -> None:
    pem = (
        "junk\n-----BEGIN CERTIFICATE-----\n"
        "YWJj\nZGVm\n-----END CERTIFICATE-----"
    )
    assert extract_base64_from_pem(pem, "CERTIFICATE") == "YWJjZGVm"
    assert extract_base64_from_pem(pem, "certificate") == "YWJjZGVm"

    with pytest.raises(PemFormatError):
        extract_base64_from_pem(pem, "PRIVATE KEY")
    with pytest.raises(PemFormatError):
        extract_base64_from_pem(
            "-----BEGIN CERTIFICATE-----\n-----END CERTIFICATE-----",
            "CERTIFICATE",
        )


def test_pem_to_buffer_invalid_payload() -> None:
    pem = "-----BEGIN CERTIFICATE-----\nnot*base64\n-----END CERTIFICATE-----"
    with pytest.raises(PemFormatError):
        pem_to_buffer(pem, "CERTIFICATE")


def test_is_valid_pem() -> None:
    pem = buffer_to_pem(b"key", "EC PRIVATE KEY")
    assert is_valid_pem(pem, "EC PRIVATE KEY")
    assert not is_valid_pem(pem, "PRIVATE KEY")
    assert not is_valid_pem("YWJj", "CERTIFICATE")
    assert find_pem_type(pem) == "EC PRIVATE KEY"
    assert find_pem_type("YWJj") is None


def test_to_pem_der() -> None:
    data = base64.b64encode(b"valid-ca-cert").decode()
    encoded, pem = to_pem(data, [PemType.CERTIFICATE], field="ca")

    assert encoded == data
    assert is_valid_pem(pem, "CERTIFICATE")
    assert pem_to_buffer(pem, "CERTIFICATE") == b"valid-ca-cert"


def test_to_pem_from_pem() -> None:
    original = buffer_to_pem(b"certificate", "CERTIFICATE")

    encoded, pem = to_pem(original, [PemType.CERTIFICATE], field="ca")
    assert pem == original
    assert base64.b64decode(encoded).decode() == original

    # kubectl stores base64 of PEM text.
    data = base64.b64encode(original.encode()).decode()
    encoded, pem = to_pem(data, [PemType.CERTIFICATE], field="ca")
    assert encoded == data
    assert pem == original


def test_to_pem_key_types() -> None:
    types = [PemType.PRIVATE_KEY, PemType.RSA_PRIVATE_KEY]
    rsa_key = buffer_to_pem(b"rsa key", "RSA PRIVATE KEY")
    assert to_pem(rsa_key, types, field="key")[1] == rsa_key

    # DER data is wrapped using the first accepted type.
    data = base64.b64encode(b"der key").decode()
    assert find_pem_type(to_pem(data, types, field="key")[1]) == "PRIVATE KEY"

    certificate = buffer_to_pem(b"certificate", "CERTIFICATE")
    with pytest.raises(PemFormatError) as excinfo:
        to_pem(certificate, types, field="clientKeyData")
    assert "clientKeyData" in str(excinfo.value)


def test_to_pem_invalid_base64() -> None:
    with pytest.raises(InvalidConfigError) as excinfo:
        to_pem("not base64!", [PemType.CERTIFICATE], field="ca")
    assert str(excinfo.value) == "Invalid base64 format for ca."
