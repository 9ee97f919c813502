"""CLI entry point — argument parsing, orchestration."""

import argparse
import os
import sys

from svcgen.core.constants import DEFAULT_CONFIG_FILE
from svcgen.core.services import build_services, has_exposure
from svcgen.io.config import (
    ConfigError, GitSettings, load_config, parse_annotations, parse_git_settings,
    parse_services, save_config, starter_config,
)
from svcgen.io.git import GitError, UserDetails, find_repository
from svcgen.io.output import emit_warnings, write_manifests


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate Kubernetes Service manifests and publish them to git"
    )
    parser.add_argument(
        "--config", default=DEFAULT_CONFIG_FILE,
        help=f"Service configuration file (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "--output-dir", default=".",
        help="Where to write the manifest file (default: .)",
    )
    parser.add_argument(
        "--manifest-file",
        help="Name of the generated manifest file (default: 'output' from config)",
    )
    parser.add_argument(
        "--init", action="store_true",
        help="Write a starter configuration file and exit",
    )
    parser.add_argument(
        "--commit", action="store_true", default=None,
        help="Commit the manifest file to the enclosing git repository",
    )
    parser.add_argument(
        "--no-push", dest="push", action="store_false", default=None,
        help="Commit only, do not push",
    )
    parser.add_argument("-m", "--message", help="Commit message")
    parser.add_argument("--branch", help="Remote branch to push to (default: current)")
    parser.add_argument("--remote", help="Git remote to push to (default: origin)")
    parser.add_argument("--ssh-private-key", help="SSH private key for pushing")
    parser.add_argument("--ssh-public-key", help="SSH public key matching --ssh-private-key")
    parser.add_argument(
        "--strict-host-key-checking", action="store_true", default=None,
        help="Verify the SSH host key when pushing with --ssh-private-key",
    )
    parser.add_argument(
        "--trust-all-ssl", action="store_true", default=None,
        help="Accept any TLS certificate from the git remote",
    )
    return parser


def _apply_git_args(settings: GitSettings, args) -> GitSettings:
    """Command-line options win over the config file's git section."""
    overrides = {
        "commit": args.commit,
        "push": args.push,
        "message": args.message,
        "branch": args.branch,
        "remote": args.remote,
        "ssh_private_key": args.ssh_private_key,
        "ssh_public_key": args.ssh_public_key,
        "strict_host_key_checking": args.strict_host_key_checking,
        "trust_all_ssl_certificates": args.trust_all_ssl,
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(settings, key, value)
    return settings


def _user_details(settings: GitSettings) -> UserDetails:
    return UserDetails(
        name=settings.author_name,
        email=settings.author_email,
        username=settings.username,
        password=settings.password,
        ssh_private_key=settings.ssh_private_key,
        ssh_public_key=settings.ssh_public_key,
        strict_host_key_checking=settings.strict_host_key_checking,
        trust_all_ssl_certificates=settings.trust_all_ssl_certificates,
    )


def _publish(manifest_path: str, settings: GitSettings) -> None:
    """Commit (and push) the manifest file in its enclosing repository."""
    repo = find_repository(os.path.dirname(os.path.abspath(manifest_path)))
    if repo is None:
        raise GitError(["git", "commit"], None,
                       f"no git repository contains {manifest_path}")
    if settings.remote_url:
        if settings.branch:
            repo.configure_branch(settings.branch, settings.remote, settings.remote_url)
        else:
            repo.configure_remote(settings.remote, settings.remote_url)
    if not repo.has_changes(manifest_path):
        print("No manifest changes — nothing to commit.", file=sys.stderr)
        return
    repo.add_files(manifest_path)
    repo.commit_and_push(settings.message, _user_details(settings),
                         branch=settings.branch, remote=settings.remote,
                         push=settings.push, paths=[manifest_path])


def main(argv: list[str] | None = None):
    """CLI entry point."""
    args = _build_parser().parse_args(argv)

    # Step 0: starter config
    if args.init:
        if os.path.exists(args.config):
            print(f"Error: {args.config} already exists", file=sys.stderr)
            sys.exit(1)
        name = os.path.basename(os.path.realpath(os.path.dirname(args.config) or "."))
        save_config(args.config, starter_config(name))
        print(f"Wrote {args.config}", file=sys.stderr)
        return

    # Step 1: load and parse config
    try:
        config = load_config(args.config)
        services = parse_services(config)
        annotations = parse_annotations(config)
        git_settings = _apply_git_args(parse_git_settings(config), args)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    print(f"Loaded {len(services)} service(s) from {args.config}", file=sys.stderr)

    # Step 2: build
    resources = build_services(services, annotations)
    warnings = [
        f"service '{s.name}' has no ports and is not headless — skipped"
        for s in services if not has_exposure(s, s.ports)
    ]
    emit_warnings(warnings)

    if not resources:
        print("No services generated — nothing to write.", file=sys.stderr)
        sys.exit(1)

    # Step 3: write
    os.makedirs(args.output_dir, exist_ok=True)
    manifest_file = args.manifest_file or config["output"]
    path = write_manifests(resources, args.output_dir, manifest_file)

    # Step 4: publish
    if git_settings.commit:
        try:
            _publish(path, git_settings)
        except GitError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
