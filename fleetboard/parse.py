"""Parsing of multi-cluster service query names into their components."""

from __future__ import annotations

from dataclasses import dataclass

import dns.rdatatype

SVC = "svc"
POD = "pod"
DEFAULT_TTL = 5


class InvalidRequestError(ValueError):
    """Raised when a query name cannot be mapped onto a service request."""

    def __init__(self, request: "RecordRequest | None" = None, message: str = "invalid query name"):
        super().__init__(message)
        self.request = request


@dataclass
class RecordRequest:
    """The parts of a query name, filled in from the right."""

    port: str = ""
    protocol: str = ""
    hostname: str = ""
    cluster: str = ""
    service: str = ""
    namespace: str = ""
    pod_or_svc: str = ""

    def __str__(self) -> str:
        return ".".join(
            (self.hostname, self.cluster, self.service, self.namespace, self.pod_or_svc)
        )


def _trim_zone(name: str, zone: str) -> str:
    """Strip the zone from the end of name; return name unchanged if it is not inside it."""
    if zone != "." and not (name == zone or name.endswith("." + zone)):
        return name
    base = name[: len(name) - len(zone)]
    if base.endswith("."):
        base = base[:-1]
    return base


def _split_labels(name: str) -> list[str]:
    if name.endswith("."):
        name = name[:-1]
    if not name:
        return []
    return name.split(".")


def parse_request(name: str, zone: str, qtype: int) -> RecordRequest:
    """Parse a query name of one of these forms, relative to zone:

    host.cluster.service.namespace.svc|pod
    cluster.service.namespace.svc|pod
    service.namespace.svc|pod
    """
    request = RecordRequest()
    base = _trim_zone(name.lower(), zone.lower())
    if base in ("", SVC, POD):
        return request

    remaining = _split_labels(base)
    if not remaining:
        return request

    request.pod_or_svc = remaining.pop()
    if request.pod_or_svc not in (POD, SVC):
        raise InvalidRequestError(request)

    if not remaining:
        return request
    request.namespace = remaining.pop()

    if not remaining:
        return request
    request.service = remaining.pop()

    if not remaining:
        return request
    return parse_segments(remaining, len(remaining) - 1, request, qtype)


def parse_segments(segs: list[str], count: int, request: RecordRequest, qtype: int) -> RecordRequest:
    """Fill in cluster, hostname, port and protocol from the labels left of the service."""
    if qtype == dns.rdatatype.A:
        if count == 0:
            request.cluster = segs[0]
        elif count == 1:
            request.cluster = segs[1]
            request.hostname = segs[0]
        else:
            raise InvalidRequestError(request)
    elif qtype == dns.rdatatype.SRV:
        if count == 0:
            request.cluster = segs[0]
        elif count == 1:
            request.protocol = strip_underscore(segs[1])
            request.port = strip_underscore(segs[0])
        elif count == 2:
            request.cluster = segs[2]
            request.protocol = strip_underscore(segs[1])
            request.port = strip_underscore(segs[0])
        else:
            raise InvalidRequestError(request)
    return request


def strip_underscore(s: str) -> str:
    """Remove one leading underscore from s."""
    if not s:
        raise IndexError("empty label")
    return s[1:] if s.startswith("_") else s