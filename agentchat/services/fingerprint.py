"""Privacy-preserving contact fingerprints.

A fingerprint is a name-based (version 5) UUID derived from a fixed
namespace and the lower-cased email. The same email always yields the
same fingerprint and the email cannot be recovered from it, so the
fingerprint can key contact records in the remote store without
exposing the address itself.

Example:
    fp = derive_fingerprint("Jane@Example.com")
    assert fp == derive_fingerprint("jane@example.com")
"""

import uuid

CONTACT_NAMESPACE = uuid.UUID("e676f123-b5eb-4c44-a80b-8aa0e723cfe6")


def derive_fingerprint(email: str) -> str:
    """Derive the stable contact fingerprint for an email address.

    No validation is applied: an empty or malformed email still yields a
    well-formed fingerprint. Callers are responsible for email validity.

    Args:
        email: User email address (case-insensitive).

    Returns:
        Canonical 8-4-4-4-12 hex string with version nibble 5 and the
        RFC 4122 variant.
    """
    return str(uuid.uuid5(CONTACT_NAMESPACE, email.lower()))
