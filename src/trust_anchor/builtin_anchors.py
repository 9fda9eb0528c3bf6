"""
Test Product Attestation Authority certificates.

These are the published development PAAs for test vendor ids FFF1 and FFF2.
They must never be trusted in production deployments.
"""

from __future__ import annotations

from cryptography import x509
from cryptography.hazmat.primitives import serialization

TEST_PAA_FFF1_PEM = b"""-----BEGIN CERTIFICATE-----
MIIBmTCCAT+gAwIBAgIIaDhPq7kZ/N8wCgYIKoZIzj0EAwIwHzEdMBsGA1UEAwwU
TWF0dGVyIFRlc3QgUEFBIEZGRjEwIBcNMjEwNjI4MTQyMzQzWhgPOTk5OTEyMzEy
MzU5NTlaMB8xHTAbBgNVBAMMFE1hdHRlciBUZXN0IFBBQSBGRkYxMFkwEwYHKoZI
zj0CAQYIKoZIzj0DAQcDQgAEG5isW7wR3GoXVaBbCsXha6AsRu5vwrvnb/fPbKeq
Tp/R15jcvvtP6uIl03c8kTSMwm1JMTHjCWMtXp7zHRLek6NjMGEwDwYDVR0TAQH/
BAUwAwEB/zAOBgNVHQ8BAf8EBAMCAQYwHQYDVR0OBBYEFO8Y4OzUZgQ03w28kR7U
UhaZZoOfMB8GA1UdIwQYMBaAFO8Y4OzUZgQ03w28kR7UUhaZZoOfMAoGCCqGSM49
BAMCA0gAMEUCIQCn+l+nZv/3tf0VjNNPYl1IkSAOBYUO8SX23udWVPmXNgIgI7Ub
bkJTKCjbCZIDNwUNcPC2tyzNPLeB5nGsIl31Rys=
-----END CERTIFICATE-----
"""

TEST_PAA_FFF1_SKID = bytes.fromhex("EF18E0ECD4660434DF0DBC911ED452169966839F")

TEST_PAA_FFF2_PEM = b"""-----BEGIN CERTIFICATE-----
MIIBnTCCAUKgAwIBAgIIA5KnZVo+bHcwCgYIKoZIzj0EAwIwHzEdMBsGA1UEAwwU
TWF0dGVyIFRlc3QgUEFBIEZGRjIwIBcNMjEwNjI4MTQyMzQzWhgPOTk5OTEyMzEy
MzU5NTlaMB8xHTAbBgNVBAMMFE1hdHRlciBUZXN0IFBBQSBGRkYyMFkwEwYHKoZI
zj0CAQYIKoZIzj0DAQcDQgAEdW4YkvnpULAOlQqilfM1sEhLh20i4m+WZZLKweUQ
1f6Zsx1cmIgWeorWUDd+dRD7dYI8fluYuMAG7F8Gz66FSqNmMGQwEgYDVR0TAQH/
BAgwBgEB/wIBATAOBgNVHQ8BAf8EBAMCAQYwHQYDVR0OBBYEFOfv6sMzXF/Qw+Y0
Up8WcEbEvKVcMB8GA1UdIwQYMBaAFOfv6sMzXF/Qw+Y0Up8WcEbEvKVcMAoGCCqG
SM49BAMCA0kAMEYCIQCSUQ0dYCFfARvaLqeV/ssklO+QppeHrQr8IGxhjAnMUgIh
AKA2sK+D40VcCTi5S/9HdRlyuNy+cZyfYbVW7LTqF8xX
-----END CERTIFICATE-----
"""

TEST_PAA_FFF2_SKID = bytes.fromhex("E7EFEAC3335C5FD0C3E634529F167046C4BCA55C")


def _pem_to_der(pem: bytes) -> bytes:
    return x509.load_pem_x509_certificate(pem).public_bytes(serialization.Encoding.DER)


TEST_PAA_FFF1_DER = _pem_to_der(TEST_PAA_FFF1_PEM)
TEST_PAA_FFF2_DER = _pem_to_der(TEST_PAA_FFF2_PEM)

# (subject key identifier, DER certificate)
TEST_PAA_CERTIFICATES: tuple[tuple[bytes, bytes], ...] = (
    (TEST_PAA_FFF1_SKID, TEST_PAA_FFF1_DER),
    (TEST_PAA_FFF2_SKID, TEST_PAA_FFF2_DER),
)
