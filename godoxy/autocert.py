"""TLS certificate management: validation of settings, loading, renewal.

Certificates are requested through an *obtainer*, a callable
``obtainer(user, domains, options) -> (cert_pem, key_pem)`` that performs
the ACME registration and DNS challenge for the configured provider.
"""

from __future__ import annotations

import difflib
import os
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from godoxy import errors
from godoxy.config_types import AutoCertConfig
from godoxy.log import get_logger

_logger = get_logger("autocert")

CERT_BASE_PATH = "certs/"
CERT_FILE_DEFAULT = CERT_BASE_PATH + "cert.crt"
KEY_FILE_DEFAULT = CERT_BASE_PATH + "priv.key"
REGISTRATION_FILE = CERT_BASE_PATH + "registration.json"

PROVIDER_LOCAL = "local"
PROVIDER_CLOUDFLARE = "cloudflare"
PROVIDER_CLOUDDNS = "clouddns"
PROVIDER_DUCKDNS = "duckdns"
PROVIDER_OVH = "ovh"

KNOWN_PROVIDERS = frozenset(
    {PROVIDER_LOCAL, PROVIDER_CLOUDFLARE, PROVIDER_CLOUDDNS, PROVIDER_DUCKDNS, PROVIDER_OVH}
)

ERR_MISSING_DOMAIN = errors.new("missing field 'domains'")
ERR_MISSING_EMAIL = errors.new("missing field 'email'")
ERR_MISSING_PROVIDER = errors.new("missing field 'provider'")
ERR_UNKNOWN_PROVIDER = errors.new("unknown provider")
ERR_GET_CERT_FAILURE = errors.new("get certificate failed")
ERR_NO_OBTAINER = errors.new("no certificate obtainer configured")

_RENEW_CHECK_INTERVAL = 5.0


class CertState(IntEnum):
    VALID = 0
    EXPIRED = 1
    MISMATCH = 2


@dataclass
class User:
    """ACME account holder."""

    email: str
    key: Any
    registration: Any = None


class DummyProvider:
    """DNS challenge provider that does nothing, used for local certificates."""

    def present(self, domain: str, token: str, key_auth: str) -> None:
        return None

    def cleanup(self, domain: str, token: str, key_auth: str) -> None:
        return None


Obtainer = Callable[[User, List[str], Dict[str, Any]], Tuple[bytes, bytes]]


def new_config(cfg: AutoCertConfig) -> AutoCertConfig:
    """Fill in default paths and provider, in place, and return ``cfg``."""
    if not cfg.cert_path:
        cfg.cert_path = CERT_FILE_DEFAULT
    if not cfg.key_path:
        cfg.key_path = KEY_FILE_DEFAULT
    if not cfg.provider:
        cfg.provider = PROVIDER_LOCAL
    return cfg


def _did_you_mean(name: str) -> str:
    matches = difflib.get_close_matches(name, sorted(KNOWN_PROVIDERS), n=1, cutoff=0)
    return f"did you mean {matches[0]}?" if matches else ""


def get_provider(cfg: AutoCertConfig, obtainer: Optional[Obtainer] = None) -> "Provider":
    """Validate ``cfg`` and create a provider with a fresh P-256 account key."""
    b = errors.Builder("autocert errors")
    if cfg.provider != PROVIDER_LOCAL:
        if not cfg.domains:
            b.add(ERR_MISSING_DOMAIN)
        if not cfg.provider:
            b.add(ERR_MISSING_PROVIDER)
        if not cfg.email:
            b.add(ERR_MISSING_EMAIL)
        if cfg.provider not in KNOWN_PROVIDERS:
            b.add(ERR_UNKNOWN_PROVIDER.subject(cfg.provider).withf(_did_you_mean(cfg.provider)))
    if b.has_error():
        raise b.error()

    user = User(email=cfg.email, key=ec.generate_private_key(ec.SECP256R1()))
    return Provider(cfg, user, obtainer)


def _not_after(cert: x509.Certificate) -> datetime:
    value = getattr(cert, "not_valid_after_utc", None)
    if value is None:
        value = cert.not_valid_after.replace(tzinfo=timezone.utc)
    return value


def _is_ca(cert: x509.Certificate) -> bool:
    try:
        return cert.extensions.get_extension_for_class(x509.BasicConstraints).value.ca
    except x509.ExtensionNotFound:
        return False


def get_cert_expiries(cert_pem: bytes) -> Dict[str, datetime]:
    """Map every name of the non-CA certificates in a PEM bundle to its expiry."""
    result: Dict[str, datetime] = {}
    for cert in x509.load_pem_x509_certificates(cert_pem):
        if _is_ca(cert):
            continue
        expiry = _not_after(cert)
        common_names = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
        result[str(common_names[0].value) if common_names else ""] = expiry
        try:
            san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        except x509.ExtensionNotFound:
            continue
        for name in san.get_values_for_type(x509.DNSName):
            result[name] = expiry
    return result


def _check_key_pair(cert_pem: bytes, key_pem: bytes) -> None:
    certs = x509.load_pem_x509_certificates(cert_pem)
    key = serialization.load_pem_private_key(key_pem, password=None)
    spki = serialization.PublicFormat.SubjectPublicKeyInfo
    der = serialization.Encoding.DER
    if certs[0].public_key().public_bytes(der, spki) != key.public_key().public_bytes(der, spki):
        raise ValueError("tls: private key does not match public key")


def _one_month_before(moment: datetime) -> datetime:
    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    # days past the end of the month roll over into the next one
    return moment.replace(year=year, month=month, day=1) + timedelta(days=moment.day - 1)


def _format_duration(duration: timedelta) -> str:
    return str(timedelta(seconds=int(duration.total_seconds())))


def _caused_by(err: BaseException, kind: type) -> bool:
    pending: List[Optional[BaseException]] = [err]
    seen = set()
    while pending:
        current = pending.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, kind):
            return True
        unwrap = getattr(current, "unwrap", None)
        inner = unwrap() if callable(unwrap) else None
        if isinstance(inner, (list, tuple)):
            pending.extend(inner)
        elif inner is not None:
            pending.append(inner)
        pending.append(current.__cause__)
    return False


def _reraise_wrapped(exc: Exception) -> None:
    wrapped = errors.wrap(exc)
    if wrapped is exc:
        raise exc
    raise wrapped from exc


class Provider:
    """Holds the current certificate and renews it through the obtainer."""

    def __init__(
        self, cfg: AutoCertConfig, user: User, obtainer: Optional[Obtainer] = None
    ) -> None:
        self.cfg = cfg
        self.user = user
        self.obtainer = obtainer
        self.tls_cert: Optional[Tuple[bytes, bytes]] = None
        self.expiries: Dict[str, datetime] = {}
        self._renewal_stop = threading.Event()
        self._renewal_thread: Optional[threading.Thread] = None

    @property
    def name(self) -> str:
        return self.cfg.provider

    @property
    def cert_path(self) -> str:
        return self.cfg.cert_path

    @property
    def key_path(self) -> str:
        return self.cfg.key_path

    def get_cert(self) -> Tuple[bytes, bytes]:
        """The certificate chain and key, both PEM encoded."""
        if self.tls_cert is None:
            raise ERR_GET_CERT_FAILURE
        return self.tls_cert

    def obtain_cert(self) -> None:
        """Request a new certificate, save it and make it current."""
        if self.cfg.provider == PROVIDER_LOCAL:
            return
        if self.obtainer is None:
            raise ERR_NO_OBTAINER
        try:
            cert_pem, key_pem = self.obtainer(
                self.user, list(self.cfg.domains), dict(self.cfg.options)
            )
            self.save_cert(cert_pem, key_pem)
            _check_key_pair(cert_pem, key_pem)
            expiries = get_cert_expiries(cert_pem)
        except Exception as exc:
            _reraise_wrapped(exc)
        self.tls_cert = (cert_pem, key_pem)
        self.expiries = expiries

    def load_cert(self) -> None:
        """Load the certificate from disk, renewing it if needed."""
        try:
            cert_pem = Path(self.cfg.cert_path).read_bytes()
            key_pem = Path(self.cfg.key_path).read_bytes()
            _check_key_pair(cert_pem, key_pem)
        except (OSError, ValueError) as exc:
            raise errors.errorf("load SSL certificate: %s", exc) from exc
        try:
            expiries = get_cert_expiries(cert_pem)
        except ValueError as exc:
            raise errors.errorf("parse SSL certificate: %s", exc) from exc
        self.tls_cert = (cert_pem, key_pem)
        self.expiries = expiries

        remaining = self.should_renew_on() - datetime.now(timezone.utc)
        _logger.info("next renewal in %s", _format_duration(remaining))
        self.renew_if_needed()

    def should_renew_on(self) -> datetime:
        """One month before the certificate expires."""
        for expiry in self.expiries.values():
            return _one_month_before(expiry)
        raise RuntimeError("no certificate available")

    def cert_state(self) -> CertState:
        if datetime.now(timezone.utc) > self.should_renew_on():
            return CertState.EXPIRED
        cert_domains = sorted(self.expiries)
        wanted_domains = sorted(self.cfg.domains)
        if cert_domains != wanted_domains:
            _logger.info("cert domains mismatch: %s != %s", cert_domains, self.cfg.domains)
            return CertState.MISMATCH
        return CertState.VALID

    def renew_if_needed(self) -> None:
        if self.cfg.provider == PROVIDER_LOCAL:
            return
        state = self.cert_state()
        if state is CertState.EXPIRED:
            _logger.info("certs expired, renewing")
        elif state is CertState.MISMATCH:
            _logger.info("cert domains mismatch with config, renewing")
        else:
            return
        self.obtain_cert()

    def save_cert(self, cert_pem: bytes, key_pem: bytes) -> None:
        """Write the key (owner only) and the certificate chain to disk."""
        Path(self.cfg.cert_path).parent.mkdir(parents=True, exist_ok=True)
        _write_file(self.cfg.key_path, key_pem, 0o600)
        _write_file(self.cfg.cert_path, cert_pem, 0o644)

    def setup(self) -> None:
        """Load the certificate, obtaining one if none exists, and start renewal."""
        try:
            self.load_cert()
        except Exception as exc:
            if not _caused_by(exc, FileNotFoundError):
                raise
            _logger.debug("obtaining cert due to error loading cert")
            self.obtain_cert()

        self._schedule_renewal()

        for expiry in self.expiries.values():
            _logger.info("certificate expire on %s", expiry)
            break

    def _schedule_renewal(self) -> None:
        if self.name == PROVIDER_LOCAL or self._renewal_thread is not None:
            return

        def run() -> None:
            while not self._renewal_stop.wait(_RENEW_CHECK_INTERVAL):
                try:
                    self.renew_if_needed()
                except Exception as exc:
                    errors.log_warn("cert renew failed", exc, _logger)

        self._renewal_thread = threading.Thread(
            target=run, name="cert renew scheduler", daemon=True
        )
        self._renewal_thread.start()


def _write_file(path: str, data: bytes, mode: int) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "wb") as handle:
        handle.write(data)