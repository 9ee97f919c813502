"""Output writing — Service manifests file, warnings."""

import os
import sys

import yaml

from svcgen.pacts.types import ServiceResource


def write_manifests(resources: list[ServiceResource], output_dir: str,
                    manifest_file: str) -> str:
    """Write all resources as one multi-document YAML file, return its path."""
    path = os.path.join(output_dir, manifest_file)
    with open(path, "w", encoding="utf-8") as f:
        f.write("# Generated by svcgen — do not edit manually\n")
        yaml.safe_dump_all((r.to_dict() for r in resources), f,
                           default_flow_style=False, sort_keys=False,
                           explicit_start=True)
    print(f"Wrote {path}", file=sys.stderr)
    return path


def emit_warnings(warnings: list[str]) -> None:
    """Print all warnings to stderr."""
    for w in warnings:
        print(f"⚠ {w}", file=sys.stderr)
