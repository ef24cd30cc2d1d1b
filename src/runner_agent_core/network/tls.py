"""
TLS trust material for the control-plane transport.

A configured CA file replaces the system trust store rather than extending it.
Problems with the file never fail a request: a missing file is ignored, and an
unreadable or unparsable one is logged and the default roots are used.
"""
from __future__ import annotations

import logging
import ssl
from pathlib import Path
from typing import Optional

from cryptography import x509
from cryptography.hazmat.primitives import serialization

logger = logging.getLogger(__name__)

MIN_TLS_VERSION = ssl.TLSVersion.TLSv1_2


def load_ca_bundle(ca_file: str) -> Optional[str]:
    """
    Read and validate a PEM certificate bundle.

    Returns the bundle re-encoded as PEM, or None when the default roots
    should be used instead.
    """
    logger.debug("Trying to load %s ...", ca_file)

    try:
        data = Path(ca_file).read_bytes()
    except FileNotFoundError:
        return None
    except OSError as exc:
        logger.error("Failed to load %s: %s", ca_file, exc)
        return None

    try:
        certs = x509.load_pem_x509_certificates(data)
    except ValueError:
        logger.error("Failed to parse PEM in %s", ca_file)
        return None

    return "".join(c.public_bytes(serialization.Encoding.PEM).decode("ascii") for c in certs)


def build_ssl_context(ca_file: str = "", skip_verify: bool = False) -> ssl.SSLContext:
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ctx.minimum_version = MIN_TLS_VERSION

    bundle = load_ca_bundle(ca_file) if ca_file else None
    if bundle:
        ctx.load_verify_locations(cadata=bundle)
    else:
        ctx.load_default_certs(ssl.Purpose.SERVER_AUTH)

    if skip_verify:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE

    return ctx
