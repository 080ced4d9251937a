"""DNS handler answering multi-cluster service queries from endpoint slices."""

from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Sequence

import dns.flags
import dns.message
import dns.name
import dns.rcode
import dns.rdatatype
import dns.rrset

from .parse import DEFAULT_TTL, SVC, InvalidRequestError, parse_request

log = logging.getLogger(__name__)

PLUGIN_NAME = "crossdns"
SYNCER_NAMESPACE = "syncer-operator"
LABEL_SERVICE_NAMESPACE = "fleetboard.io/service-namespace"
LABEL_SERVICE_NAME = "fleetboard.io/service-name"
LABEL_CLUSTER_ID = "fleetboard.io/cluster-id"

_SUPPORTED_TYPES = (dns.rdatatype.A, dns.rdatatype.AAAA, dns.rdatatype.SRV)

Lister = Callable[[str, Mapping[str, str]], Iterable["EndpointSlice"]]
Handler = Callable[[dns.message.Message], "tuple[int, dns.message.Message | None]"]


class ConfigError(ValueError):
    """Raised for an invalid plugin configuration block."""


@dataclass
class EndpointSlice:
    """An endpoint slice: labels and, per endpoint, its list of addresses."""

    name: str
    namespace: str
    labels: dict[str, str] = field(default_factory=dict)
    endpoints: list[list[str]] = field(default_factory=list)


@dataclass
class DNSRecord:
    ip: str
    hostname: str = ""
    cluster_name: str = ""


def _normalize_host(host: str) -> str:
    if "://" in host:
        host = host.split("://", 1)[1]
    if host.count(":") == 1:
        host = host.split(":", 1)[0]
    host = host.lower()
    return host if host.endswith(".") else host + "."


def parse_block(
    args: Sequence[str],
    server_block_keys: Sequence[str],
    properties: Iterable[tuple[str, Sequence[str]]],
) -> tuple[list[str], list[str]]:
    """Read the plugin's configuration; return (zones, fallthrough zones)."""
    zones = [_normalize_host(z) for z in (args or server_block_keys)]
    fall_zones: list[str] = []
    for prop, prop_args in properties:
        if prop == "fallthrough":
            fall_zones = [_normalize_host(z) for z in prop_args] if prop_args else ["."]
        elif prop != "}":
            raise ConfigError(f"unknown property '{prop}'")
    return zones, fall_zones


class CrossDNS:
    """Answers A queries for exported services from synced endpoint slices."""

    def __init__(
        self,
        zones: Sequence[str],
        lister: Lister,
        next_handler: Handler | None = None,
        fall_zones: Sequence[str] = (),
    ):
        self.zones = list(zones)
        self.lister = lister
        self.next_handler = next_handler
        self.fall_zones = list(fall_zones)

    def name(self) -> str:
        return PLUGIN_NAME

    def _next(self, message: dns.message.Message):
        if self.next_handler is None:
            raise RuntimeError(f"{self.name()}: no next plugin found")
        return self.next_handler(message)

    def _match_zone(self, qname: str) -> str:
        target = dns.name.from_text(qname)
        best = ""
        for zone in self.zones:
            if target.is_subdomain(dns.name.from_text(zone)) and len(zone) > len(best):
                best = zone
        return best

    def serve_dns(self, message: dns.message.Message) -> tuple[int, dns.message.Message | None]:
        """Handle a query; return the rcode and the response message."""
        question = message.question[0]
        qname = question.name.to_text()
        zone = self._match_zone(qname)
        if not zone:
            log.info("Request does not match configured zones %s", self.zones)
            return self._next(message)

        log.info("Request received for %r", qname)
        qtype = question.rdtype
        if qtype not in _SUPPORTED_TYPES:
            log.info("Query of type %d is not supported", qtype)
            return self._next(message)
        zone = qname[len(qname) - len(zone):]

        try:
            request = parse_request(qname, zone, qtype)
        except InvalidRequestError as exc:
            log.info("Request is not a 'svc' type query - err was %s", exc)
            return self._next(message)
        if request.pod_or_svc != SVC:
            log.info("Request type %r is not a 'svc' type query", request.pod_or_svc)
            return self._next(message)

        selector = {
            LABEL_SERVICE_NAMESPACE: request.namespace,
            LABEL_SERVICE_NAME: request.service,
        }
        if request.cluster:
            selector[LABEL_CLUSTER_ID] = request.cluster
        records = self.records_from_endpoint_slices(self.lister(SYNCER_NAMESPACE, selector))

        response = dns.message.make_response(message)
        response.flags |= dns.flags.AA
        if not records:
            log.info("Couldn't find a connected cluster or valid IPs for %r", qname)
            return dns.rcode.NOERROR, response

        if qtype == dns.rdatatype.A:
            response.answer.extend(self.create_a_records(records, qname, question.rdclass))
        log.info("Responding to query with %s", response.answer)
        return dns.rcode.NOERROR, response

    def records_from_endpoint_slices(self, slices: Iterable[EndpointSlice]) -> list[DNSRecord]:
        return [
            DNSRecord(ip=addresses[0], cluster_name=eps.labels.get(LABEL_CLUSTER_ID, ""))
            for eps in slices
            for addresses in eps.endpoints
        ]

    def create_a_records(self, records: Iterable[DNSRecord], qname: str, qclass: int) -> list[dns.rrset.RRset]:
        result = []
        for record in records:
            try:
                address = ipaddress.ip_address(record.ip)
            except ValueError:
                log.error("Skipping invalid address %r", record.ip)
                continue
            if isinstance(address, ipaddress.IPv6Address):
                if address.ipv4_mapped is None:
                    log.error("Skipping non-IPv4 address %r for A record", record.ip)
                    continue
                address = address.ipv4_mapped
            result.append(dns.rrset.from_text(qname, DEFAULT_TTL, qclass, dns.rdatatype.A, str(address)))
        return result