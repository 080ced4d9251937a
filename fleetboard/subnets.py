"""Parsing of subnet lists for tunnel peers."""

from __future__ import annotations

import ipaddress
import logging
from typing import Iterable

log = logging.getLogger(__name__)

Network = "ipaddress.IPv4Network | ipaddress.IPv6Network"


def parse_subnets(
    subnets: Iterable[str],
) -> list[ipaddress.IPv4Network | ipaddress.IPv6Network]:
    """Parse CIDR strings into networks, logging and skipping those that are invalid.

    Host bits are masked off, so "10.1.2.3/8" yields 10.0.0.0/8.
    """
    networks: list[ipaddress.IPv4Network | ipaddress.IPv6Network] = []
    for subnet in subnets:
        if "/" not in subnet:
            log.error("failed to parse subnet %s", subnet)
            continue
        try:
            networks.append(ipaddress.ip_network(subnet, strict=False))
        except ValueError:
            log.error("failed to parse subnet %s", subnet)
    return networks