"""Git publishing — commit and push generated manifests, transport setup.

Everything runs through the ``git`` executable. Network commands get a
:class:`Transport` (extra ``-c`` options and environment) built from
:class:`UserDetails` by :func:`configure_transport`.
"""

import configparser
import os
import shlex
import subprocess
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlsplit

from svcgen.core.constants import DEFAULT_REMOTE, GITKEEP_NAME, GITKEEP_TEXT

# Credentials reach git through these, never through argv
_USERNAME_ENV = "SVCGEN_CREDENTIAL_USERNAME"
_PASSWORD_ENV = "SVCGEN_CREDENTIAL_PASSWORD"
_CREDENTIAL_HELPER = (
    "!f() { test \"$1\" = get || exit 0; "
    f"echo \"username=${{{_USERNAME_ENV}}}\"; "
    f"echo \"password=${{{_PASSWORD_ENV}}}\"; }}; f"
)


class GitError(RuntimeError):
    """A git command failed (transport, auth, or repository error)."""

    def __init__(self, cmd: list[str], returncode: int | None, stderr: str):
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        super().__init__(f"{' '.join(cmd)} failed (exit {returncode}): {self.stderr}")


@dataclass
class UserDetails:
    """Who commits, how to authenticate, and which trust downgrades to allow.

    ``strict_host_key_checking`` is off by default: with an SSH private key
    the remote host key is not verified unless this is set, and the
    downgrade is reported on stderr.
    """
    name: str | None = None
    email: str | None = None
    username: str | None = None
    password: str | None = None
    ssh_private_key: str | None = None
    ssh_public_key: str | None = None
    strict_host_key_checking: bool = False
    trust_all_ssl_certificates: bool = False

    def __repr__(self):
        return f"UserDetails(username={self.username!r}, name={self.name!r})"


@dataclass
class Transport:
    """Per-command git options and environment for remote operations."""
    config: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)

    def config_args(self) -> list[str]:
        args = []
        for opt in self.config:
            args.extend(["-c", opt])
        return args


def _ssh_command(private_key: str, strict_host_key_checking: bool) -> str:
    parts = ["ssh", "-i", str(Path(private_key).expanduser().absolute()), "-o", "IdentitiesOnly=yes"]
    if not strict_host_key_checking:
        parts.extend(["-o", "StrictHostKeyChecking=no"])
    return " ".join(shlex.quote(p) for p in parts)


def disable_ssl_certificate_checks(transport: Transport) -> None:
    """Make *transport* accept any TLS certificate and host name."""
    print("⚠ Trusting all SSL certificates", file=sys.stderr)
    transport.config.append("http.sslVerify=false")


def configure_transport(user_details: UserDetails) -> Transport:
    """Build the transport for push/fetch from *user_details*."""
    transport = Transport()
    if user_details.username:
        print(f"Using credentials for {user_details.username}", file=sys.stderr)
        # Empty value resets inherited helpers so ours is the only one asked
        transport.config.extend(["credential.helper=", f"credential.helper={_CREDENTIAL_HELPER}"])
        transport.env[_USERNAME_ENV] = user_details.username
        transport.env[_PASSWORD_ENV] = user_details.password or ""
    if user_details.ssh_private_key:
        print(f"Adding identity privateKey: {user_details.ssh_private_key} "
              f"publicKey: {user_details.ssh_public_key}", file=sys.stderr)
        if not user_details.strict_host_key_checking:
            print("⚠ SSH host key checking disabled "
                  "(set git.strictHostKeyChecking to enable)", file=sys.stderr)
        transport.env["GIT_SSH_COMMAND"] = _ssh_command(
            user_details.ssh_private_key, user_details.strict_host_key_checking)
    if user_details.trust_all_ssl_certificates:
        disable_ssl_certificate_checks(transport)
    return transport


def _run(args: list[str], cwd: str, transport: Transport | None = None,
         env: dict[str, str] | None = None) -> str:
    """Run git in *cwd*, return stdout. Raises GitError on failure."""
    cmd = ["git"]
    if transport:
        cmd.extend(transport.config_args())
    cmd.extend(args)
    full_env = dict(os.environ)
    if transport:
        full_env.update(transport.env)
    if env:
        full_env.update(env)
    try:
        result = subprocess.run(cmd, cwd=cwd, env=full_env,
                                capture_output=True, text=True, check=True)
    except FileNotFoundError as exc:
        raise GitError(cmd, None, "git executable not found") from exc
    except subprocess.CalledProcessError as exc:
        raise GitError(cmd, exc.returncode, exc.stderr) from exc
    return result.stdout


def _identity_env(user_details: UserDetails | None) -> dict[str, str]:
    env = {}
    if user_details and user_details.name:
        env["GIT_AUTHOR_NAME"] = env["GIT_COMMITTER_NAME"] = user_details.name
    if user_details and user_details.email:
        env["GIT_AUTHOR_EMAIL"] = env["GIT_COMMITTER_EMAIL"] = user_details.email
    return env


def get_file_pattern(root_dir: str, path: str) -> str:
    """Path of *path* relative to *root_dir*, '/'-separated for git."""
    rel = os.path.relpath(os.path.abspath(path), os.path.abspath(root_dir))
    return rel.replace(os.sep, "/")


def format_ref_updates(porcelain: str) -> str:
    """Summarize ``git push --porcelain`` ref lines on one line."""
    updates = []
    for line in porcelain.splitlines():
        fields = line.split("\t")
        if len(fields) < 2:
            continue  # "To <url>" and "Done"
        refs = fields[1]
        summary = fields[2].strip() if len(fields) > 2 else ""
        remote_ref = refs.split(":", 1)[-1]
        updates.append(f"{summary} {remote_ref}".strip())
    return " ".join(updates)


class GitRepo:
    """A git working tree."""

    def __init__(self, work_tree: str):
        self.work_tree = os.path.abspath(work_tree)

    def __repr__(self):
        return f"GitRepo({self.work_tree!r})"

    @property
    def root_directory(self) -> str:
        return self.work_tree

    def run(self, *args: str, transport: Transport | None = None,
            env: dict[str, str] | None = None) -> str:
        return _run(list(args), self.work_tree, transport=transport, env=env)

    def get_remote_url(self, remote: str = DEFAULT_REMOTE) -> str | None:
        """URL configured for *remote*, or None if there is none."""
        try:
            return self.run("config", "--get", f"remote.{remote}.url").strip() or None
        except GitError as exc:
            if exc.returncode == 1:  # key not set
                return None
            raise

    def configure_remote(self, remote: str, remote_url: str) -> None:
        """Set the URL and fetch spec of *remote*.

        Failures to write the config are reported and ignored.
        """
        self._write_config([
            (f"remote.{remote}.url", remote_url),
            (f"remote.{remote}.fetch", f"+refs/heads/*:refs/remotes/{remote}/*"),
        ], f"on {remote} remote repo: {remote_url}")

    def configure_branch(self, branch: str | None, remote: str, remote_url: str) -> None:
        """Point *branch* at *remote* and set the remote's URL and fetch spec.

        A blank branch changes nothing. Failures to write the config are
        reported and ignored.
        """
        if not branch or not branch.strip():
            return
        self._write_config([
            (f"branch.{branch}.remote", remote),
            (f"branch.{branch}.merge", f"refs/heads/{branch}"),
        ], f"with branch {branch} on {remote}")
        self.configure_remote(remote, remote_url)

    def _write_config(self, settings: list[tuple[str, str]], what: str) -> None:
        try:
            for key, value in settings:
                self.run("config", key, value)
        except GitError as exc:
            print(f"Failed to save the git configuration to {self.work_tree} "
                  f"{what} due: {exc.stderr}. This error is ignored.", file=sys.stderr)

    def has_changes(self, *paths: str) -> bool:
        """Whether *paths* (or the whole tree) differ from HEAD or are untracked."""
        patterns = [get_file_pattern(self.work_tree, p) for p in paths]
        return bool(self.run("status", "--porcelain", "--", *patterns).strip())

    def add_files(self, *paths: str) -> None:
        for path in paths:
            self.run("add", "--", get_file_pattern(self.work_tree, path))

    def commit_and_push(self, message: str, user_details: UserDetails | None = None,
                        branch: str | None = None, remote: str = DEFAULT_REMOTE,
                        push: bool = True, paths: list[str] | None = None) -> str:
        """Commit, push if asked, return the commit id.

        With *paths*, only those files go into the commit and other edits in
        the tree stay uncommitted; otherwise all tracked changes are
        committed. An unchanged tree still yields an empty commit.
        """
        if paths:
            scope = ["--only", "--", *(get_file_pattern(self.work_tree, p) for p in paths)]
        else:
            scope = ["--all"]
        self.run("commit", "--allow-empty", "--message", message, *scope,
                 env=_identity_env(user_details))
        commit_id = self.run("rev-parse", "HEAD").strip()
        print(f"Committed {commit_id} {message}", file=sys.stderr)
        if push:
            transport = configure_transport(user_details or UserDetails())
            refspec = f"HEAD:refs/heads/{branch}" if branch else "HEAD"
            out = self.run("push", "--porcelain", remote, refspec, transport=transport)
            print(f"Pushed {remote} branch: {branch or 'HEAD'} "
                  f"updates: {format_ref_updates(out)}", file=sys.stderr)
        return commit_id

    def add_commit_and_push_all(self, message: str, user_details: UserDetails | None = None,
                                branch: str | None = None, remote: str = DEFAULT_REMOTE,
                                push: bool = True) -> str:
        """Stage everything under the work tree, then commit_and_push()."""
        self.run("add", ".")
        return self.commit_and_push(message, user_details, branch, remote, push)

    def commit_date(self, commit_id: str | None) -> datetime:
        """Commit time of *commit_id* (UTC), or the epoch when it is None."""
        if commit_id is None:
            return datetime.fromtimestamp(0, tz=timezone.utc)
        ts = self.run("show", "--no-patch", "--format=%ct", commit_id).strip()
        return datetime.fromtimestamp(int(ts), tz=timezone.utc)


def find_repository(base_dir: str) -> GitRepo | None:
    """Return the repository containing *base_dir*, or None if there is none."""
    current = Path(base_dir).resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return GitRepo(str(candidate))
    return None


def add_dummy_file_to_empty_folders(path: str) -> None:
    """Put a .gitkeep into every empty folder below *path* so git keeps it."""
    if not os.path.isdir(path):
        return
    children = os.listdir(path)
    if not children:
        keep = os.path.join(path, GITKEEP_NAME)
        try:
            with open(keep, "w", encoding="utf-8") as f:
                f.write(GITKEEP_TEXT)
        except OSError as exc:
            print(f"⚠ Failed to write file {keep}: {exc}", file=sys.stderr)
        return
    for child in sorted(children):
        add_dummy_file_to_empty_folders(os.path.join(path, child))


def parse_git_config(path: str | None = None) -> dict[str, dict[str, str]]:
    """Parse ~/.gitconfig (or *path*) into {section: {key: value}}."""
    if path is None:
        path = os.path.join(os.path.expanduser("~"), ".gitconfig")
    if not os.path.isfile(path):
        return {}
    parser = configparser.ConfigParser(strict=False, interpolation=None)
    parser.read(path, encoding="utf-8")
    return {name: dict(parser.items(name)) for name in parser.sections()}


def _scp_prefix(git_url: str) -> str | None:
    """The ``user@host`` part of an scp-like ``user@host:path`` URL."""
    prefix, sep, _rest = git_url.partition(":")
    return prefix if sep else None


def get_git_host_name(git_url: str) -> str | None:
    """Host of a git URL, for both ``scheme://host/...`` and ``user@host:path``."""
    if "://" in git_url:
        return urlsplit(git_url).hostname
    prefix = _scp_prefix(git_url)
    if prefix is None:
        return None
    return prefix.split("@", 1)[-1]


def get_git_protocol(git_url: str) -> str | None:
    """Protocol of a git URL; scp-like ``user@host:path`` URLs are ssh."""
    if "://" in git_url:
        return urlsplit(git_url).scheme or None
    prefix = _scp_prefix(git_url)
    if prefix is not None and "@" in prefix:
        return "ssh"
    return None
