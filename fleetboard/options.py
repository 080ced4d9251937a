"""Command-line options for the tunnel agent, run either as hub or as cluster."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, fields
from typing import Sequence

DEFAULT_HUB_CIDR = "20.112.0.0/12"
DEFAULT_VERBOSITY = 2

_TRUE_WORDS = {"1", "t", "true", "yes", "y", "on"}
_FALSE_WORDS = {"0", "f", "false", "no", "n", "off"}


def _parse_bool(text: str) -> bool:
    lowered = text.strip().lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value {text!r}")


@dataclass
class Options:
    """Settings that decide how the agent joins the multi-cluster network."""

    hub_secret_namespace: str = ""
    hub_secret_name: str = ""
    share_namespace: str = ""
    local_namespace: str = ""
    as_hub: bool = False
    as_cluster: bool = False
    cidr: str = ""
    hub_url: str = ""
    kubeconfig: str = ""
    verbosity: int = DEFAULT_VERBOSITY

    def validate(self) -> list[str]:
        """Return every problem with these options; an empty list means valid."""
        problems: list[str] = []
        if self.as_hub and not self.cidr:
            problems.append("--cidr must be specified when run as hub")
        if not self.as_hub and not self.hub_url:
            problems.append("--hub-url must be specified when run as cluster")
        if not self.share_namespace:
            problems.append("--shared-namespace must be specified")
        if not self.as_hub and not self.local_namespace:
            problems.append("--local-namespace must be specified when run as cluster")
        if not self.as_hub and not self.hub_secret_namespace:
            problems.append("--hub-secret-namespace must be specified when run as cluser")
        if not self.as_hub and not self.hub_secret_name:
            problems.append("--hub-secret-name must be specified when run as cluser")
        return problems

    def complete(self) -> None:
        """Fill in defaults that depend on other settings."""
        if self.as_hub and not self.cidr:
            self.cidr = DEFAULT_HUB_CIDR

    @classmethod
    def from_args(cls, argv: Sequence[str] | None = None) -> "Options":
        """Build options from command-line arguments."""
        namespace = build_parser().parse_args(argv)
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in vars(namespace).items() if k in names})


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for the agent's flags."""
    parser = argparse.ArgumentParser(description="Multi-cluster tunnel agent.")

    logs = parser.add_argument_group("logs")
    logs.add_argument(
        "-v", "--v",
        dest="verbosity",
        type=int,
        default=DEFAULT_VERBOSITY,
        help="number for the log level verbosity",
    )

    misc = parser.add_argument_group("misc")
    misc.add_argument(
        "--kubeconfig",
        default="",
        help="Path to a kubeconfig file pointing at the 'core' kubernetes server. "
        "Only required if out-of-cluster.",
    )
    misc.add_argument(
        "--as-hub",
        dest="as_hub",
        type=_parse_bool,
        nargs="?",
        const=True,
        default=False,
        help="If true, run as hub. [default=false]",
    )
    misc.add_argument(
        "--as-cluster",
        dest="as_cluster",
        type=_parse_bool,
        nargs="?",
        const=True,
        default=False,
        help="If true, run as cluster. [default=false]",
    )
    misc.add_argument(
        "--cidr",
        default="",
        help="usually global cidr used in multi-cluster ipam, or your cluster local ip range",
    )
    misc.add_argument("--hub-url", dest="hub_url", default="", help="hub public url, used by cluster.")
    misc.add_argument(
        "--hub-secret-namespace",
        dest="hub_secret_namespace",
        default="",
        help="hub secret locate namespace to access peer crd.",
    )
    misc.add_argument(
        "--hub-secret-name",
        dest="hub_secret_name",
        default="",
        help="hub secret locate name to access peer crd.",
    )
    misc.add_argument(
        "--shared-namespace",
        dest="share_namespace",
        default="",
        help="shared namespace in hub used to share endpoint slices across clusters",
    )
    misc.add_argument(
        "--local-namespace",
        dest="local_namespace",
        default="",
        help="local namespace in cluster used to share endpoint slices across clusters",
    )
    return parser