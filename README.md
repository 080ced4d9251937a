# fleetboard

Building blocks for services that span a fleet of Kubernetes clusters:

- `fleetboard.parse` – split multi-cluster service query names into their parts.
- `fleetboard.crossdns` – answer `A` queries for exported services from
  EndpointSlices, and read the handler's configuration block.
- `fleetboard.options` – command-line options for a tunnel agent that runs as
  hub or as member cluster, with validation and defaults.
- `fleetboard.subnets` – turn CIDR strings into networks, skipping bad ones.
- `fleetboard.metrics` – in-process counters, gauges and histograms for the
  EndpointSlice controller.
- `fleetboard.cache` – running totals of desired endpoints and of actual
  versus ideally packed EndpointSlices.

The only third-party dependency is `dnspython`.

## Query names

Relative to a zone, a name takes one of these shapes:

```
service.namespace.svc
cluster.service.namespace.svc
hostname.cluster.service.namespace.svc
```

`pod` may stand in place of `svc`. `parse_request(name, zone, qtype)` returns
a `RecordRequest` with the fields `hostname`, `cluster`, `service`,
`namespace`, `pod_or_svc`, `port` and `protocol`. A name whose last label is
neither `svc` nor `pod`, or one with too many labels for the query type,
raises `InvalidRequestError` (a `ValueError`).

```python
import dns.rdatatype
from fleetboard.parse import parse_request

request = parse_request("c1.nginx.default.svc.clusterset.local.",
                        "clusterset.local.", dns.rdatatype.A)
request.cluster   # "c1"
request.service   # "nginx"
str(request)      # ".c1.nginx.default.svc"  (hostname.cluster.service.namespace.kind)
```

For `SRV` queries the labels left of the service are read as
`_port._protocol` or `_port._protocol.cluster`; `strip_underscore` drops the
leading underscore. `parse_segments` does this step on its own.

## Answering queries

```python
from fleetboard.crossdns import CrossDNS, EndpointSlice

def lister(namespace, selector):
    # return the EndpointSlices in `namespace` whose labels match `selector`
    ...

handler = CrossDNS(["clusterset.local."], lister, next_handler=None)
rcode, response = handler.serve_dns(query)   # query is a dns.message.Message
```

`serve_dns` looks up slices in the `syncer-operator` namespace by the labels
`fleetboard.io/service-namespace`, `fleetboard.io/service-name` and, when the
name carries a cluster, `fleetboard.io/cluster-id`. Each endpoint contributes
its first address. For an `A` query the authoritative reply holds one record
per IPv4 address with a TTL of 5 seconds; `AAAA` and `SRV` queries for a
service get an authoritative reply with no answers, as does a service with no
endpoints. Queries outside the zones, of other types, or that are not for a
`svc` name are passed to `next_handler`; without one, `RuntimeError` is
raised.

`EndpointSlice` holds a slice's `name`, `namespace`, `labels` and
`endpoints` (one address list per endpoint). `records_from_endpoint_slices`
and `create_a_records` expose the two steps of building the answer.

`parse_block(args, server_block_keys, properties)` reads a configuration
block and returns `(zones, fall_zones)`. Zones come from `args`, or from the
server block keys when there are none, and are lower-cased with a trailing
dot. `fallthrough` with no arguments falls through for every zone (`["."]`);
any other property raises `ConfigError`.

## Options

```python
from fleetboard.options import Options

options = Options.from_args(["--as-hub", "--shared-namespace", "shared"])
options.complete()
problems = options.validate()   # list of messages; empty when valid
```

Flags: `--kubeconfig`, `--as-hub`, `--as-cluster`, `--cidr`, `--hub-url`,
`--hub-secret-namespace`, `--hub-secret-name`, `--shared-namespace`,
`--local-namespace` and `-v/--v` for verbosity (default 2). `--as-hub` and
`--as-cluster` accept an optional boolean value. `build_parser()` returns the
underlying `argparse` parser.

A hub given no `--cidr` gets `20.112.0.0/12` from `complete()`. Every role
needs `--shared-namespace`; a hub needs a CIDR; a non-hub needs `--hub-url`,
`--local-namespace`, `--hub-secret-namespace` and `--hub-secret-name`.

## Subnets

```python
from fleetboard.subnets import parse_subnets

parse_subnets(["10.1.2.3/8", "not-a-cidr", "fd00::/64"])
# [IPv4Network('10.0.0.0/8'), IPv6Network('fd00::/64')]
```

Host bits are masked off; entries without a prefix length or that do not
parse are logged and skipped.

## EndpointSlice accounting

```python
from fleetboard.cache import (
    Cache, EfficiencyInfo, NamespacedName, ServicePortCache, num_desired_slices,
)

num_desired_slices(250, 100)   # 3

ports = ServicePortCache()
ports.set("80", EfficiencyInfo(endpoints=12, slices=5))
ports.set("80,443", EfficiencyInfo(endpoints=18, slices=8))
ports.totals(100)              # (actual slices, desired slices, endpoints) == (13, 2, 30)

cache = Cache(100)
cache.update_service_port_cache(NamespacedName("ns1", "svc1"), ports)
cache.num_slices_desired, cache.num_slices_actual, cache.num_endpoints   # (2, 13, 30)
cache.delete_service(NamespacedName("ns1", "svc1"))
```

A service always counts for at least one desired slice, its placeholder.
Every change also sets the gauges `NUM_ENDPOINT_SLICES`,
`DESIRED_ENDPOINT_SLICES` and `ENDPOINTS_DESIRED`.

## Metrics

`fleetboard.metrics` has `Counter` (`inc`, `value`), `Gauge` (`set`,
`value`) and `Histogram` (`observe`, `count`, `sum`, cumulative
`bucket_counts`). A `MetricVec` groups one kind by label values:
`with_label_values(*values)` returns or creates a child and
`delete(labels)` drops one, returning whether it existed.
`exponential_buckets(start, factor, count)` builds histogram bounds, and
`register_metrics()` puts the controller's metrics into `registry` once.

## What this package does not do

It provides no command and runs no DNS server: `CrossDNS` handles messages
handed to it. It does not talk to a Kubernetes API server; the caller
supplies the EndpointSlice lister. It does not create network devices or
configure tunnels, and it does not reconcile EndpointSlices; it only keeps the
metrics and totals described above.