import dns.flags
import dns.message
import dns.rcode
import dns.rdataclass
import dns.rdatatype
import pytest

from fleetboard.crossdns import (
    LABEL_CLUSTER_ID,
    LABEL_SERVICE_NAME,
    LABEL_SERVICE_NAMESPACE,
    SYNCER_NAMESPACE,
    ConfigError,
    CrossDNS,
    DNSRecord,
    EndpointSlice,
    parse_block,
)
from fleetboard.parse import DEFAULT_TTL

ZONE = "clusterset.local."


def make_slice(name, cluster, addresses, service="nginx", namespace="default"):
    return EndpointSlice(
        name=name,
        namespace=SYNCER_NAMESPACE,
        labels={
            LABEL_SERVICE_NAMESPACE: namespace,
            LABEL_SERVICE_NAME: service,
            LABEL_CLUSTER_ID: cluster,
        },
        endpoints=[[a] for a in addresses],
    )


SLICES = [
    make_slice("a", "east", ["10.0.0.1", "10.0.0.2"]),
    make_slice("b", "west", ["10.1.0.1"]),
]


def lister(namespace, selector):
    return [s for s in SLICES if s.namespace == namespace and selector.items() <= s.labels.items()]


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, message):
        self.calls.append(message)
        return dns.rcode.REFUSED, None


def answer_ips(response):
    return sorted(rd.address for rrset in response.answer for rd in rrset)


def test_name():
    assert CrossDNS([ZONE], lister).name() == "crossdns"


def test_a_query_returns_all_clusters():
    handler = CrossDNS([ZONE], lister)
    query = dns.message.make_query("nginx.default.svc." + ZONE, "A")
    rcode, response = handler.serve_dns(query)
    assert rcode == dns.rcode.NOERROR
    assert answer_ips(response) == ["10.0.0.1", "10.0.0.2", "10.1.0.1"]
    assert response.flags & dns.flags.AA
    assert all(rrset.ttl == DEFAULT_TTL for rrset in response.answer)


def test_a_query_for_one_cluster():
    handler = CrossDNS([ZONE], lister)
    query = dns.message.make_query("west.nginx.default.svc." + ZONE, "A")
    _, response = handler.serve_dns(query)
    assert answer_ips(response) == ["10.1.0.1"]


def test_unknown_service_gives_empty_authoritative_answer():
    handler = CrossDNS([ZONE], lister)
    query = dns.message.make_query("other.default.svc." + ZONE, "A")
    rcode, response = handler.serve_dns(query)
    assert rcode == dns.rcode.NOERROR
    assert response.answer == []
    assert response.flags & dns.flags.AA


def test_aaaa_query_has_no_answers():
    handler = CrossDNS([ZONE], lister)
    query = dns.message.make_query("nginx.default.svc." + ZONE, "AAAA")
    rcode, response = handler.serve_dns(query)
    assert rcode == dns.rcode.NOERROR
    assert response.answer == []


def test_other_zone_goes_to_next():
    nxt = Recorder()
    handler = CrossDNS([ZONE], lister, next_handler=nxt)
    query = dns.message.make_query("nginx.default.svc.example.org.", "A")
    assert handler.serve_dns(query) == (dns.rcode.REFUSED, None)
    assert nxt.calls == [query]


def test_unsupported_type_goes_to_next():
    nxt = Recorder()
    handler = CrossDNS([ZONE], lister, next_handler=nxt)
    query = dns.message.make_query("nginx.default.svc." + ZONE, "TXT")
    handler.serve_dns(query)
    assert len(nxt.calls) == 1


def test_pod_query_goes_to_next():
    nxt = Recorder()
    handler = CrossDNS([ZONE], lister, next_handler=nxt)
    query = dns.message.make_query("nginx.default.pod." + ZONE, "A")
    handler.serve_dns(query)
    assert len(nxt.calls) == 1


def test_no_next_handler_raises():
    handler = CrossDNS([ZONE], lister)
    query = dns.message.make_query("example.org.", "A")
    with pytest.raises(RuntimeError):
        handler.serve_dns(query)


def test_records_from_endpoint_slices():
    handler = CrossDNS([ZONE], lister)
    records = handler.records_from_endpoint_slices(SLICES)
    assert records[0] == DNSRecord(ip="10.0.0.1", cluster_name="east")
    assert [r.cluster_name for r in records] == ["east", "east", "west"]


def test_create_a_records():
    handler = CrossDNS([ZONE], lister)
    name = "nginx.default.svc." + ZONE
    rrsets = handler.create_a_records(
        [DNSRecord(ip="10.0.0.1"), DNSRecord(ip="10.0.0.2")], name, dns.rdataclass.IN
    )
    assert [rd.address for rrset in rrsets for rd in rrset] == ["10.0.0.1", "10.0.0.2"]
    assert all(rrset.rdtype == dns.rdatatype.A for rrset in rrsets)
    assert all(rrset.name.to_text() == name for rrset in rrsets)


def test_parse_block_uses_args():
    zones, fall = parse_block([ZONE], ["ignored."], [])
    assert zones == [ZONE]
    assert fall == []


def test_parse_block_falls_back_to_server_keys():
    zones, _ = parse_block([], ["dns://Example.Org:53"], [])
    assert zones == ["example.org."]


def test_parse_block_fallthrough_defaults_to_root():
    _, fall = parse_block([ZONE], [], [("fallthrough", [])])
    assert fall == ["."]


def test_parse_block_fallthrough_zones():
    _, fall = parse_block([ZONE], [], [("fallthrough", [ZONE]), ("}", [])])
    assert fall == [ZONE]


def test_parse_block_unknown_property():
    with pytest.raises(ConfigError, match="unknown property 'bogus'"):
        parse_block([ZONE], [], [("bogus", [])])