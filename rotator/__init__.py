"""Kluster node rotator package."""
import argparse as _argparse

from rotator import _configs
from rotator import _runner


def parse(arguments: list = None) -> dict:
    """Parse command line arguments to invoke the node rotator."""
    parser = _argparse.ArgumentParser(prog="kluster-node-rotator")
    parser.add_argument(
        "--role",
        choices=[*_configs.ROLES, _configs.BOTH_ROLES],
    )
    parser.add_argument("--resume-marker")
    parser.add_argument("--resume-role", choices=_configs.ROLES)
    parser.add_argument("--drain-timeout", type=int)
    parser.add_argument("-p", "--profile", dest="aws_profile")
    parser.add_argument("--context", dest="kube_context")
    parser.add_argument("--in-cluster", action="store_true")
    parser.add_argument("--pretty-print", action="store_true")
    parser.add_argument("--config-path")
    return vars(parser.parse_args(arguments))


def main():
    """Execute the kluster node rotator."""
    return _runner.main(parse())
