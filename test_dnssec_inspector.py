# test_dnssec_inspector.py
from __future__ import annotations

import asyncio
import logging
import os
from types import SimpleNamespace

import dns.asyncresolver
import dns.exception
import dns.rdata
import dns.rdataclass
import dns.rdatatype
import dns.resolver
import pytest

import dnssec.resolver as resolver_mod
from conftest import FakeResolver, make_answer, rrset
from diagnostics.errors import ParseError, ValidationError
from dnssec import DNSSECInspector, SYSTEM_DEFAULT, ValidationStatus, select_resolver
from dnssec.algorithms import algorithm_name, digest_type_name, key_type
from dnssec.inspector import format_sig_time, parse_dnskey, parse_ds, parse_rrsig, parse_sig_wire
from dnssec.models import derive_validation_status

KEY_A = "QUFB" * 21
KEY_B = "QkJC" * 21
DIGEST = "BE74359954660069D5C63D200C39F5603827D7DD02B56F120EE9F3A86764247C"
SIG = "c2lnbmF0dXJlYnl0ZXM="  # b"signaturebytes"


def _dnskeys():
    return rrset("DNSKEY", f"257 3 13 {KEY_A}", f"256 3 13 {KEY_B}")


def _ds():
    return rrset("DS", f"12345 13 2 {DIGEST}")


def _soa_with_sig():
    soa = rrset("SOA", "ns1.example.com. hostmaster.example.com. 1 7200 3600 1209600 3600")
    sig = rrset("RRSIG", f"SOA 13 2 3600 20301231000000 20201201000000 12345 example.com. {SIG}")
    return make_answer(soa, sig)


def _rfc4034_key_tag(wire: bytes) -> int:
    ac = 0
    for i, b in enumerate(wire):
        ac += b if i & 1 else b << 8
    ac += (ac >> 16) & 0xFFFF
    return ac & 0xFFFF


class _SigSet(list):
    rdtype = dns.rdatatype.SIG


# ----------------------------
# Lookup tables / helpers
# ----------------------------
def test_algorithm_and_digest_names():
    assert algorithm_name(8) == "RSA/SHA-256"
    assert algorithm_name(13) == "ECDSAP256SHA256"
    assert algorithm_name(15) == "Ed25519"
    assert algorithm_name(200) == "Unknown (200)"
    assert digest_type_name(2) == "SHA-256"
    assert digest_type_name(4) == "SHA-384"
    assert digest_type_name(99) == "Unknown (99)"


def test_key_type_from_flags():
    assert key_type(257) == "KSK"
    assert key_type(256) == "ZSK"
    assert key_type(0) == "Unknown (flags=0)"


def test_format_sig_time():
    assert format_sig_time(0) == "1970-01-01 00:00:00 UTC"
    assert format_sig_time(1924905600) == "2030-12-31 00:00:00 UTC"
    assert format_sig_time(10**20) == f"Invalid ({10**20})"


@pytest.mark.parametrize(
    "dnskey,ds,rrsig,expected",
    [
        (False, False, False, ValidationStatus.INSECURE),
        (True, True, False, ValidationStatus.SECURE),
        (True, True, True, ValidationStatus.SECURE),
        (True, False, False, ValidationStatus.INDETERMINATE),
        (False, True, True, ValidationStatus.INDETERMINATE),
        (False, False, True, ValidationStatus.INSECURE),
    ],
)
def test_verdict_table(dnskey, ds, rrsig, expected):
    enabled = dnskey or ds or rrsig
    assert derive_validation_status(enabled, has_dnskey=dnskey, has_ds=ds) is expected


# ----------------------------
# Record parsing
# ----------------------------
def test_parse_dnskey_fields_and_key_tag():
    rd = list(_dnskeys())
    ksk = next(r for r in rd if r.flags == 257)
    rec = parse_dnskey(ksk)

    assert rec.flags == 257
    assert rec.protocol == 3
    assert rec.algorithm == 13
    assert rec.algorithm_name == "ECDSAP256SHA256"
    assert rec.public_key == KEY_A
    assert rec.key_type == "KSK"
    assert rec.key_tag == _rfc4034_key_tag(ksk.to_wire())


def test_parse_ds_lowercase_hex():
    (rd,) = list(_ds())
    rec = parse_ds(rd)
    assert rec.key_tag == 12345
    assert rec.algorithm_name == "ECDSAP256SHA256"
    assert rec.digest_type == 2
    assert rec.digest_type_name == "SHA-256"
    assert rec.digest == DIGEST.lower()


def test_parse_rrsig_fields():
    sig_rrset = _soa_with_sig().response.answer[1]
    (rd,) = list(sig_rrset)
    rec = parse_rrsig(rd)

    assert rec.type_covered == "SOA"
    assert rec.algorithm == 13
    assert rec.labels == 2
    assert rec.original_ttl == 3600
    assert rec.signature_expiration == "2030-12-31 00:00:00 UTC"
    assert rec.signature_inception == "2020-12-01 00:00:00 UTC"
    assert rec.key_tag == 12345
    assert rec.signer_name == "example.com."
    assert rec.signature == SIG


def test_legacy_sig_parsed_from_wire_like_rrsig():
    (rd,) = list(_soa_with_sig().response.answer[1])
    generic = dns.rdata.GenericRdata(dns.rdataclass.IN, dns.rdatatype.SIG, rd.to_wire())
    assert parse_rrsig(generic) == parse_rrsig(rd)


@pytest.mark.parametrize("wire", [b"", b"\x00" * 10, b"\x00\x06" + b"\x00" * 16 + b"\x05abc"])
def test_truncated_signature_wire_is_parse_error(wire):
    with pytest.raises(ParseError):
        parse_sig_wire(wire)


# ----------------------------
# Inspector (fake resolver)
# ----------------------------
@pytest.mark.asyncio
async def test_fully_signed_zone_is_secure(resolver_factory):
    factory = resolver_factory(
        {"DNSKEY": make_answer(_dnskeys()), "DS": make_answer(_ds()), "SOA": _soa_with_sig()}
    )
    result = await DNSSECInspector(resolver_factory=factory).inspect("example.com")

    assert result.dnssec_enabled is True
    assert result.validation_status is ValidationStatus.SECURE
    assert sorted(k.key_type for k in result.dnskey_records) == ["KSK", "ZSK"]
    assert len(result.ds_records) == 1
    assert len(result.rrsig_records) == 1
    assert result.nameserver == "192.0.2.53"
    assert result.error is None
    assert isinstance(result.response_time_ms, int) and result.response_time_ms >= 0
    assert sorted(t for _q, t in factory.resolver.calls) == ["DNSKEY", "DS", "SOA"]


@pytest.mark.asyncio
async def test_unsigned_zone_is_insecure_and_disabled(resolver_factory):
    soa_only = make_answer(rrset("SOA", "ns1.example.com. hostmaster.example.com. 1 7200 3600 1209600 3600"))
    result = await DNSSECInspector(resolver_factory=resolver_factory({"SOA": soa_only})).inspect("example.com")

    assert result.dnssec_enabled is False
    assert result.validation_status is ValidationStatus.INSECURE
    assert result.dnskey_records == [] and result.ds_records == [] and result.rrsig_records == []


@pytest.mark.asyncio
async def test_rrsig_only_is_enabled_but_insecure(resolver_factory):
    result = await DNSSECInspector(resolver_factory=resolver_factory({"SOA": _soa_with_sig()})).inspect(
        "example.com"
    )
    assert result.dnssec_enabled is True
    assert result.validation_status is ValidationStatus.INSECURE


@pytest.mark.asyncio
async def test_dnskey_without_ds_is_indeterminate(resolver_factory):
    result = await DNSSECInspector(resolver_factory=resolver_factory({"DNSKEY": make_answer(_dnskeys())})).inspect(
        "example.com"
    )
    assert result.validation_status is ValidationStatus.INDETERMINATE


@pytest.mark.asyncio
async def test_failed_lookup_does_not_abort_the_others(resolver_factory):
    factory = resolver_factory(
        {
            "DNSKEY": dns.exception.Timeout(),
            "DS": make_answer(_ds()),
            "SOA": dns.resolver.NXDOMAIN(),
        }
    )
    result = await DNSSECInspector(resolver_factory=factory).inspect("example.com")

    assert result.dnskey_records == []
    assert len(result.ds_records) == 1
    assert result.validation_status is ValidationStatus.INDETERMINATE


@pytest.mark.asyncio
async def test_malformed_record_is_skipped_and_logged(resolver_factory, caplog):
    good = list(_dnskeys())[0]
    broken = SimpleNamespace(flags=257)  # no algorithm/key
    factory = resolver_factory({"DNSKEY": SimpleNamespace(rrset=[good, broken], response=None)})

    with caplog.at_level(logging.WARNING, logger="dnssec.inspector"):
        result = await DNSSECInspector(resolver_factory=factory).inspect("example.com")

    assert len(result.dnskey_records) == 1
    assert any("skipping malformed DNSKEY" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_legacy_sig_rrset_counts_as_signature(resolver_factory):
    (rd,) = list(_soa_with_sig().response.answer[1])
    sigs = _SigSet([dns.rdata.GenericRdata(dns.rdataclass.IN, dns.rdatatype.SIG, rd.to_wire())])
    soa = rrset("SOA", "ns1.example.com. hostmaster.example.com. 1 7200 3600 1209600 3600")
    factory = resolver_factory({"SOA": make_answer(soa, sigs)})

    result = await DNSSECInspector(resolver_factory=factory).inspect("example.com")
    assert len(result.rrsig_records) == 1
    assert result.rrsig_records[0].type_covered == "SOA"
    assert result.dnssec_enabled is True


@pytest.mark.asyncio
async def test_custom_nameserver_is_reported(resolver_factory):
    result = await DNSSECInspector(resolver_factory=resolver_factory({})).inspect("example.com", "9.9.9.9")
    assert result.nameserver == "9.9.9.9"


@pytest.mark.asyncio
async def test_invalid_nameserver_rejected_before_any_query():
    with pytest.raises(ValidationError):
        await DNSSECInspector().inspect("example.com", "not-an-ip")


@pytest.mark.asyncio
async def test_empty_domain_rejected(resolver_factory):
    with pytest.raises(ValidationError):
        await DNSSECInspector(resolver_factory=resolver_factory({})).inspect("   ")


@pytest.mark.asyncio
async def test_cancellation_propagates(resolver_factory):
    class Hanging(FakeResolver):
        async def resolve(self, qname, rdtype):
            await asyncio.sleep(3600)

    inspector = DNSSECInspector(resolver_factory=resolver_factory(fake=Hanging()))
    task = asyncio.create_task(inspector.inspect("example.com"))
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


def test_to_dict_uses_wire_names():
    from dnssec.models import DnssecResult

    r = DnssecResult(domain="example.com", nameserver="System Default")
    r.finalize()
    d = r.to_dict()
    assert d["dnssecEnabled"] is False
    assert d["validationStatus"] == "insecure"
    assert d["responseTimeMs"] == 0
    assert d["dnskeyRecords"] == []


# ----------------------------
# Resolver selection
# ----------------------------
def test_select_custom_nameserver():
    sel = select_resolver("8.8.8.8", timeout=1.0, lifetime=2.0)
    assert sel.nameserver == "8.8.8.8"
    assert sel.resolver.port == 53
    assert sel.resolver.timeout == 1.0
    assert sel.resolver.lifetime == 2.0


def test_select_ipv6_nameserver():
    assert select_resolver(" 2001:4860:4860::8888 ").nameserver == "2001:4860:4860::8888"


@pytest.mark.parametrize("bad", ["dns.google", "8.8.8", "1.2.3.4:53"])
def test_select_rejects_non_ip(bad):
    with pytest.raises(ValidationError):
        select_resolver(bad)


@pytest.mark.parametrize("empty", [None, ""])
def test_system_default_reports_configured_ips(monkeypatch, empty):
    def fake_system():
        r = dns.asyncresolver.Resolver(configure=False)
        r.nameservers = ["10.0.0.1", "10.0.0.2"]
        return r

    monkeypatch.setattr(resolver_mod, "_system_resolver", fake_system)
    assert select_resolver(empty).nameserver == "10.0.0.1, 10.0.0.2"


def test_system_default_without_servers(monkeypatch):
    monkeypatch.setattr(resolver_mod, "_system_resolver", lambda: dns.asyncresolver.Resolver(configure=False))
    assert select_resolver(None).nameserver == SYSTEM_DEFAULT


# ----------------------------
# Optional integration tests (real DNS)
# ----------------------------
integration = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION", "0") != "1",
    reason="Integration tests disabled. Run with RUN_INTEGRATION=1",
)


@integration
@pytest.mark.integration
@pytest.mark.asyncio
@pytest.mark.parametrize("domain", ["cloudflare.com", "iana.org"])
async def test_integration_signed_domains(domain):
    result = await DNSSECInspector(timeout=5, lifetime=10).inspect(domain)
    assert result.dnssec_enabled
    assert result.dnskey_records
    assert result.validation_status in (ValidationStatus.SECURE, ValidationStatus.INDETERMINATE)
