import os
from datetime import datetime, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from godoxy import autocert, errors
from godoxy.autocert import (
    CERT_FILE_DEFAULT,
    KEY_FILE_DEFAULT,
    PROVIDER_LOCAL,
    CertState,
    DummyProvider,
    Provider,
    get_cert_expiries,
    get_provider,
    new_config,
)
from godoxy.config_types import AutoCertConfig

UTC = timezone.utc
FUTURE = datetime(2099, 1, 1, tzinfo=UTC)
PAST = datetime(2021, 1, 1, tzinfo=UTC)
DOMAINS = ["a.example.com", "b.example.com"]


def _make_cert(domains, not_after, ca=False):
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, domains[0])])
    builder = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(datetime(2020, 1, 1, tzinfo=UTC))
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(d) for d in domains]), critical=False
        )
    )
    cert = builder.sign(key, hashes.SHA256())
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return cert.public_bytes(serialization.Encoding.PEM), key_pem


class _Obtainer:
    def __init__(self, not_after=FUTURE):
        self.not_after = not_after
        self.calls = []

    def __call__(self, user, domains, options):
        self.calls.append((user, domains, options))
        return _make_cert(domains, self.not_after)


def _cfg(tmp_path, provider="cloudflare", domains=DOMAINS):
    return AutoCertConfig(
        email="admin@example.com",
        domains=list(domains),
        cert_path=str(tmp_path / "certs" / "cert.crt"),
        key_path=str(tmp_path / "certs" / "priv.key"),
        provider=provider,
        options={"api_token": "token"},
    )


def test_new_config_defaults():
    cfg = new_config(AutoCertConfig())
    assert cfg.cert_path == CERT_FILE_DEFAULT == "certs/cert.crt"
    assert cfg.key_path == KEY_FILE_DEFAULT == "certs/priv.key"
    assert cfg.provider == PROVIDER_LOCAL


def test_new_config_keeps_values(tmp_path):
    cfg = _cfg(tmp_path)
    assert new_config(cfg) is cfg
    assert cfg.provider == "cloudflare"
    assert cfg.cert_path == str(tmp_path / "certs" / "cert.crt")


def test_local_provider_needs_nothing():
    provider = get_provider(new_config(AutoCertConfig()))
    assert provider.name == "local"
    assert isinstance(provider.user.key, ec.EllipticCurvePrivateKey)
    assert provider.user.key.curve.name == ec.SECP256R1.name


def test_missing_fields():
    cfg = AutoCertConfig(provider="cloudflare")
    with pytest.raises(errors.NestedError) as info:
        get_provider(cfg)
    text = str(info.value)
    assert text.startswith("autocert errors")
    assert "missing field 'domains'" in text
    assert "missing field 'email'" in text
    assert "unknown provider" not in text


def test_unknown_provider():
    cfg = AutoCertConfig(email="admin@example.com", domains=DOMAINS, provider="cloudflar")
    with pytest.raises(errors.NestedError) as info:
        get_provider(cfg)
    text = str(info.value)
    assert "unknown provider" in text
    assert "cloudflar" in text
    assert "cloudflare" in text


def test_get_cert_without_cert():
    provider = get_provider(new_config(AutoCertConfig()))
    with pytest.raises(errors.BaseError) as info:
        provider.get_cert()
    assert info.value is autocert.ERR_GET_CERT_FAILURE


def test_get_cert_expiries_skips_ca():
    leaf, _ = _make_cert(DOMAINS, FUTURE)
    ca, _ = _make_cert(["ca.example.com"], FUTURE, ca=True)
    expiries = get_cert_expiries(leaf + ca)
    assert sorted(expiries) == DOMAINS
    assert set(expiries.values()) == {FUTURE}


def test_should_renew_on_month_before():
    provider = Provider(AutoCertConfig(), None)
    provider.expiries = {"a": datetime(2030, 3, 31, tzinfo=UTC)}
    assert provider.should_renew_on() == datetime(2030, 3, 3, tzinfo=UTC)
    provider.expiries = {"a": datetime(2030, 1, 15, tzinfo=UTC)}
    assert provider.should_renew_on() == datetime(2029, 12, 15, tzinfo=UTC)


def test_should_renew_on_without_cert():
    with pytest.raises(RuntimeError):
        Provider(AutoCertConfig(), None).should_renew_on()


def test_cert_state(tmp_path):
    provider = Provider(_cfg(tmp_path), None)
    provider.expiries = {d: FUTURE for d in reversed(DOMAINS)}
    assert provider.cert_state() is CertState.VALID
    provider.expiries = {DOMAINS[0]: FUTURE}
    assert provider.cert_state() is CertState.MISMATCH
    provider.expiries = {d: PAST for d in DOMAINS}
    assert provider.cert_state() is CertState.EXPIRED


def test_save_cert_modes(tmp_path):
    provider = Provider(_cfg(tmp_path), None)
    cert_pem, key_pem = _make_cert(DOMAINS, FUTURE)
    provider.save_cert(cert_pem, key_pem)
    assert (tmp_path / "certs" / "cert.crt").read_bytes() == cert_pem
    assert (tmp_path / "certs" / "priv.key").read_bytes() == key_pem
    assert os.stat(provider.key_path).st_mode & 0o777 == 0o600


def test_load_cert_round_trip(tmp_path):
    obtainer = _Obtainer()
    provider = get_provider(_cfg(tmp_path), obtainer)
    cert_pem, key_pem = _make_cert(DOMAINS, FUTURE)
    provider.save_cert(cert_pem, key_pem)
    provider.load_cert()
    assert provider.get_cert() == (cert_pem, key_pem)
    assert sorted(provider.expiries) == DOMAINS
    assert obtainer.calls == []


def test_load_cert_missing_file(tmp_path):
    provider = get_provider(_cfg(tmp_path), _Obtainer())
    with pytest.raises(errors.BaseError) as info:
        provider.load_cert()
    assert str(info.value).startswith("load SSL certificate")
    assert isinstance(info.value.__cause__, FileNotFoundError)


def test_obtain_cert(tmp_path):
    obtainer = _Obtainer()
    provider = get_provider(_cfg(tmp_path), obtainer)
    provider.obtain_cert()
    user, domains, options = obtainer.calls[0]
    assert user is provider.user
    assert domains == DOMAINS
    assert options == {"api_token": "token"}
    cert_pem, _ = provider.get_cert()
    assert (tmp_path / "certs" / "cert.crt").read_bytes() == cert_pem
    assert provider.cert_state() is CertState.VALID


def test_obtain_cert_key_mismatch(tmp_path):
    cert_pem, _ = _make_cert(DOMAINS, FUTURE)
    _, other_key = _make_cert(DOMAINS, FUTURE)
    provider = get_provider(_cfg(tmp_path), lambda user, domains, options: (cert_pem, other_key))
    with pytest.raises(errors.BaseError) as info:
        provider.obtain_cert()
    assert "private key does not match public key" in str(info.value)
    assert provider.tls_cert is None


def test_obtain_cert_without_obtainer(tmp_path):
    provider = get_provider(_cfg(tmp_path))
    with pytest.raises(errors.BaseError) as info:
        provider.obtain_cert()
    assert info.value is autocert.ERR_NO_OBTAINER


def test_expired_cert_is_renewed_on_load(tmp_path):
    obtainer = _Obtainer()
    provider = get_provider(_cfg(tmp_path), obtainer)
    provider.save_cert(*_make_cert(DOMAINS, PAST))
    provider.load_cert()
    assert len(obtainer.calls) == 1
    assert set(provider.expiries.values()) == {FUTURE}


def test_mismatched_cert_is_renewed_on_load(tmp_path):
    obtainer = _Obtainer()
    provider = get_provider(_cfg(tmp_path), obtainer)
    provider.save_cert(*_make_cert(DOMAINS[:1], FUTURE))
    provider.load_cert()
    assert len(obtainer.calls) == 1
    assert sorted(provider.expiries) == DOMAINS


def test_setup_local_without_files(tmp_path):
    provider = get_provider(_cfg(tmp_path, provider="local"))
    provider.setup()
    assert provider.expiries == {}
    assert provider.tls_cert is None


def test_setup_obtains_when_missing(tmp_path):
    obtainer = _Obtainer()
    provider = get_provider(_cfg(tmp_path), obtainer)
    provider.setup()
    assert len(obtainer.calls) == 1
    assert sorted(provider.expiries) == DOMAINS


def test_dummy_provider_does_nothing():
    dummy = DummyProvider()
    assert dummy.present("a.example.com", "token", "token") is None
    assert dummy.cleanup("a.example.com", "token", "token") is None