"""TLS contexts for servers and clients built from a certificate directory."""

from __future__ import annotations

import errno
import os
import ssl
from pathlib import Path

SERVER_CERT = "server.crt"
SERVER_KEY = "server.key"
DH_PARAMS = "dh512.pem"
DEFAULT_CERT_DIR = "crt"


def _cert_dir(cert_dir: str | os.PathLike[str] | None) -> Path:
    if cert_dir is None:
        return Path.cwd() / DEFAULT_CERT_DIR
    return Path(cert_dir)


def _require_file(path: Path) -> str:
    if not path.is_file():
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path))
    return str(path)


def create_server_context(cert_dir: str | os.PathLike[str] | None = None) -> ssl.SSLContext:
    """Build a server TLS context from the certificate, key and DH parameters in ``cert_dir``.

    ``cert_dir`` defaults to ``crt`` under the working directory. Raises
    FileNotFoundError for a missing file and ssl.SSLError for a bad one.
    """
    base = _cert_dir(cert_dir)
    cert = _require_file(base / SERVER_CERT)
    key = _require_file(base / SERVER_KEY)
    dh_params = _require_file(base / DH_PARAMS)

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.options |= ssl.OP_SINGLE_DH_USE
    context.load_cert_chain(cert, key)
    context.load_dh_params(dh_params)
    return context


def create_client_context(cert_dir: str | os.PathLike[str] | None = None) -> ssl.SSLContext:
    """Build a client TLS context that trusts the server certificate in ``cert_dir``.

    Host names are not checked, since servers are reached by address.
    ``cert_dir`` defaults to ``crt`` under the working directory.
    """
    cafile = _require_file(_cert_dir(cert_dir) / SERVER_CERT)

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False
    context.load_verify_locations(cafile=cafile)
    return context