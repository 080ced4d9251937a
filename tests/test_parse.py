import dns.rdatatype
import pytest

from fleetboard.parse import (
    POD,
    SVC,
    InvalidRequestError,
    RecordRequest,
    parse_request,
    parse_segments,
    strip_underscore,
)

ZONE = "clusterset.local."


def test_service_only():
    req = parse_request("nginx.default.svc.clusterset.local.", ZONE, dns.rdatatype.A)
    assert req.service == "nginx"
    assert req.namespace == "default"
    assert req.pod_or_svc == SVC
    assert req.cluster == ""


def test_cluster_and_service():
    req = parse_request("east.nginx.default.svc.clusterset.local.", ZONE, dns.rdatatype.A)
    assert req.cluster == "east"
    assert req.hostname == ""


def test_hostname_and_cluster():
    req = parse_request("web-0.east.nginx.default.svc.clusterset.local.", ZONE, dns.rdatatype.A)
    assert req.hostname == "web-0"
    assert req.cluster == "east"
    assert req.service == "nginx"


def test_too_long_a_query_raises():
    with pytest.raises(InvalidRequestError):
        parse_request("x.web-0.east.nginx.default.svc.clusterset.local.", ZONE, dns.rdatatype.A)


def test_upper_case_name_is_lowered():
    req = parse_request("NGINX.Default.SVC.clusterset.local.", ZONE, dns.rdatatype.A)
    assert req.service == "nginx"
    assert req.namespace == "default"


def test_pod_type():
    req = parse_request("nginx.default.pod.clusterset.local.", ZONE, dns.rdatatype.A)
    assert req.pod_or_svc == POD


def test_invalid_kind_raises_with_partial_request():
    with pytest.raises(InvalidRequestError) as info:
        parse_request("nginx.default.foo.clusterset.local.", ZONE, dns.rdatatype.A)
    assert info.value.request.pod_or_svc == "foo"


@pytest.mark.parametrize("name", [ZONE, "svc." + ZONE, "pod." + ZONE])
def test_apex_queries_are_empty(name):
    assert parse_request(name, ZONE, dns.rdatatype.A) == RecordRequest()


def test_namespace_only():
    req = parse_request("default.svc.clusterset.local.", ZONE, dns.rdatatype.A)
    assert req.namespace == "default"
    assert req.service == ""


def test_srv_port_and_protocol():
    req = parse_request("_http._tcp.nginx.default.svc.clusterset.local.", ZONE, dns.rdatatype.SRV)
    assert req.port == "http"
    assert req.protocol == "tcp"
    assert req.cluster == ""


def test_srv_cluster_port_and_protocol():
    req = parse_request("_http._tcp.east.nginx.default.svc.clusterset.local.", ZONE, dns.rdatatype.SRV)
    assert (req.port, req.protocol, req.cluster) == ("http", "tcp", "east")


def test_srv_too_long_raises():
    with pytest.raises(InvalidRequestError):
        parse_request("a._http._tcp.east.nginx.default.svc.clusterset.local.", ZONE, dns.rdatatype.SRV)


def test_aaaa_extra_labels_ignored():
    req = parse_request("a.b.c.nginx.default.svc.clusterset.local.", ZONE, dns.rdatatype.AAAA)
    assert req.cluster == "" and req.hostname == ""
    assert req.service == "nginx"


def test_parse_segments_directly():
    req = parse_segments(["web-0", "east"], 1, RecordRequest(), dns.rdatatype.A)
    assert (req.hostname, req.cluster) == ("web-0", "east")


def test_str_joins_fields():
    req = RecordRequest(hostname="h", cluster="c", service="s", namespace="n", pod_or_svc=SVC)
    assert str(req) == "h.c.s.n.svc"


def test_strip_underscore():
    assert strip_underscore("_tcp") == "tcp"
    assert strip_underscore("tcp") == "tcp"
    with pytest.raises(IndexError):
        strip_underscore("")