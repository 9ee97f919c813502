import os
import shutil
import subprocess
from datetime import datetime, timezone

import pytest

from svcgen.io.git import (
    GitError, GitRepo, UserDetails, add_dummy_file_to_empty_folders, configure_transport,
    find_repository, format_ref_updates, get_file_pattern, get_git_host_name,
    get_git_protocol, parse_git_config,
)

needs_git = pytest.mark.skipif(shutil.which('git') is None, reason="git executable not found")


def _rev(git_dir, ref):
    return subprocess.run(['git', '--git-dir', str(git_dir), 'rev-parse', ref],
                          check=True, capture_output=True, text=True).stdout.strip()


#
# Transport configuration.
#
def test_transport_plain_is_empty(capsys):
    transport = configure_transport(UserDetails())
    assert transport.config == []
    assert transport.env == {}
    assert transport.config_args() == []
    assert capsys.readouterr().err == ''


def test_transport_credentials_stay_out_of_argv(capsys):
    transport = configure_transport(UserDetails(username='bot', password='s3cret'))
    assert transport.env['SVCGEN_CREDENTIAL_USERNAME'] == 'bot'
    assert transport.env['SVCGEN_CREDENTIAL_PASSWORD'] == 's3cret'
    assert transport.config[0] == 'credential.helper='
    assert transport.config[1].startswith('credential.helper=!')
    assert not any('s3cret' in arg for arg in transport.config_args())
    assert 'bot' in capsys.readouterr().err


def test_transport_ssh_key_disables_host_key_checking_by_default(tmp_path, capsys):
    key = tmp_path / 'id_deploy'
    transport = configure_transport(UserDetails(ssh_private_key=str(key)))
    cmd = transport.env['GIT_SSH_COMMAND']
    assert cmd.startswith('ssh -i ')
    assert str(key) in cmd
    assert 'IdentitiesOnly=yes' in cmd
    assert 'StrictHostKeyChecking=no' in cmd
    assert 'host key checking disabled' in capsys.readouterr().err


def test_transport_ssh_key_with_strict_host_key_checking(tmp_path, capsys):
    key = tmp_path / 'id_deploy'
    details = UserDetails(ssh_private_key=str(key), ssh_public_key=str(key) + '.pub',
                          strict_host_key_checking=True)
    transport = configure_transport(details)
    assert 'StrictHostKeyChecking' not in transport.env['GIT_SSH_COMMAND']
    err = capsys.readouterr().err
    assert 'host key checking disabled' not in err
    assert 'id_deploy.pub' in err


def test_transport_ssh_key_path_with_spaces_is_quoted(tmp_path):
    key = tmp_path / 'my keys' / 'id'
    cmd = configure_transport(UserDetails(ssh_private_key=str(key))).env['GIT_SSH_COMMAND']
    assert f"'{key}'" in cmd


def test_transport_trust_all_ssl(capsys):
    transport = configure_transport(UserDetails(trust_all_ssl_certificates=True))
    assert transport.config_args() == ['-c', 'http.sslVerify=false']
    assert 'Trusting all SSL certificates' in capsys.readouterr().err


def test_user_details_repr_hides_password():
    assert 's3cret' not in repr(UserDetails(username='bot', password='s3cret'))


#
# Pure helpers.
#
def test_format_ref_updates():
    porcelain = (
        "To /srv/remote.git\n"
        "*\trefs/heads/main:refs/heads/main\t[new branch]\n"
        " \tHEAD:refs/heads/deploy\tabc123..def456\n"
        "Done\n"
    )
    assert format_ref_updates(porcelain) == (
        "[new branch] refs/heads/main abc123..def456 refs/heads/deploy")


def test_format_ref_updates_empty():
    assert format_ref_updates("") == ""


def test_get_file_pattern(tmp_path):
    root = tmp_path / 'repo'
    assert get_file_pattern(str(root), str(root / 'deploy' / 'services.yml')) == 'deploy/services.yml'


@pytest.mark.parametrize('url, host, protocol', [
    ('https://github.com/org/repo.git', 'github.com', 'https'),
    ('ssh://git@gitlab.example.com:2222/org/repo.git', 'gitlab.example.com', 'ssh'),
    ('git@github.com:org/repo.git', 'github.com', 'ssh'),
    ('github.com:org/repo.git', 'github.com', None),
    ('/srv/git/repo.git', None, None),
], ids=['https', 'ssh-url', 'scp-like', 'scp-no-user', 'local-path'])
def test_git_url_helpers(url, host, protocol):
    assert get_git_host_name(url) == host
    assert get_git_protocol(url) == protocol


def test_add_dummy_file_to_empty_folders(tmp_path):
    (tmp_path / 'empty').mkdir()
    (tmp_path / 'full').mkdir()
    (tmp_path / 'full' / 'file.txt').write_text('x')
    (tmp_path / 'full' / 'nested').mkdir()

    add_dummy_file_to_empty_folders(str(tmp_path))

    assert (tmp_path / 'empty' / '.gitkeep').is_file()
    assert (tmp_path / 'full' / 'nested' / '.gitkeep').is_file()
    assert not (tmp_path / 'full' / '.gitkeep').exists()
    assert sorted(os.listdir(tmp_path / 'full')) == ['file.txt', 'nested']


def test_add_dummy_file_ignores_missing_dir(tmp_path):
    add_dummy_file_to_empty_folders(str(tmp_path / 'absent'))
    assert not (tmp_path / 'absent').exists()


def test_parse_git_config(tmp_path):
    path = tmp_path / '.gitconfig'
    path.write_text(
        "[user]\n"
        "\tname = Jane Doe\n"
        "\temail = jane@example.com\n"
        "[remote \"origin\"]\n"
        "\turl = git@github.com:org/repo.git\n"
    )
    cfg = parse_git_config(str(path))
    assert cfg['user'] == {'name': 'Jane Doe', 'email': 'jane@example.com'}
    assert cfg['remote "origin"']['url'] == 'git@github.com:org/repo.git'


def test_parse_git_config_defaults_to_home(tmp_path, monkeypatch):
    monkeypatch.setenv('HOME', str(tmp_path))
    assert parse_git_config() == {}
    (tmp_path / '.gitconfig').write_text("[core]\n\teditor = vi\n")
    assert parse_git_config() == {'core': {'editor': 'vi'}}


def test_find_repository_none(tmp_path):
    if any((p / '.git').exists() for p in (tmp_path, *tmp_path.resolve().parents)):
        pytest.skip("temporary directory lives inside a git repository")
    assert find_repository(str(tmp_path)) is None


#
# Against real repositories.
#
@needs_git
def test_find_repository_walks_up(work_dir):
    nested = work_dir / 'a' / 'b'
    nested.mkdir(parents=True)
    repo = find_repository(str(nested))
    assert repo.root_directory == str(work_dir.resolve())


@needs_git
def test_get_remote_url(repo, remote_dir):
    assert repo.get_remote_url() == str(remote_dir)
    assert repo.get_remote_url('absent') is None


@needs_git
def test_configure_branch(repo):
    repo.configure_branch('deploy', 'upstream', 'https://example.com/org/repo.git')
    assert repo.run('config', '--get', 'branch.deploy.remote').strip() == 'upstream'
    assert repo.run('config', '--get', 'branch.deploy.merge').strip() == 'refs/heads/deploy'
    assert repo.get_remote_url('upstream') == 'https://example.com/org/repo.git'
    assert repo.run('config', '--get', 'remote.upstream.fetch').strip() == \
        '+refs/heads/*:refs/remotes/upstream/*'


@needs_git
def test_configure_branch_blank_is_noop(repo):
    repo.configure_branch('  ', 'upstream', 'https://example.com/org/repo.git')
    assert repo.get_remote_url('upstream') is None


@needs_git
def test_commit_and_push(repo, work_dir, remote_dir, author, capsys):
    manifest = work_dir / 'deploy' / 'services.yml'
    manifest.parent.mkdir()
    manifest.write_text('kind: Service\n')
    assert repo.has_changes(str(manifest))

    repo.add_files(str(manifest))
    commit_id = repo.commit_and_push('Add services', author, branch='main')

    assert not repo.has_changes(str(manifest))
    assert _rev(remote_dir, 'refs/heads/main') == commit_id
    log = repo.run('log', '-1', '--format=%an <%ae>|%s').strip()
    assert log == 'Test Author <author@example.com>|Add services'
    err = capsys.readouterr().err
    assert f'Committed {commit_id}' in err
    assert 'Pushed origin branch: main' in err


@needs_git
def test_commit_without_push(repo, work_dir, remote_dir, author):
    (work_dir / 'README').write_text('changed\n')
    commit_id = repo.commit_and_push('Change readme', author, push=False)
    assert commit_id == repo.run('rev-parse', 'HEAD').strip()
    assert repo.run('show', '--format=', '--name-only', 'HEAD').strip() == 'README'
    with pytest.raises(subprocess.CalledProcessError):
        _rev(remote_dir, 'refs/heads/main')


@needs_git
def test_add_commit_and_push_all_to_named_branch(repo, work_dir, remote_dir, author):
    (work_dir / 'new.txt').write_text('new\n')
    commit_id = repo.add_commit_and_push_all('Add all', author, branch='deploy')
    assert _rev(remote_dir, 'refs/heads/deploy') == commit_id
    assert repo.run('ls-files', 'new.txt').strip() == 'new.txt'


@needs_git
def test_configure_remote(repo):
    repo.configure_remote('mirror', 'https://example.com/org/mirror.git')
    assert repo.get_remote_url('mirror') == 'https://example.com/org/mirror.git'
    assert repo.run('config', '--get', 'remote.mirror.fetch').strip() == \
        '+refs/heads/*:refs/remotes/mirror/*'
    assert repo.run('config', '--get-regexp', r'^branch\.').strip() == ''


@needs_git
def test_commit_only_given_paths(repo, work_dir, author):
    (work_dir / 'README').write_text('dirty\n')
    manifest = work_dir / 'services.yml'
    manifest.write_text('kind: Service\n')
    repo.add_files(str(manifest))

    repo.commit_and_push('Manifest only', author, push=False, paths=[str(manifest)])

    assert repo.run('show', '--name-only', '--format=', 'HEAD').split() == ['services.yml']
    assert repo.has_changes(str(work_dir / 'README'))


@needs_git
def test_commit_with_nothing_changed_is_empty_commit(repo, author):
    parent = repo.run('rev-parse', 'HEAD').strip()
    commit_id = repo.commit_and_push('Nothing', author, push=False)
    assert commit_id != parent
    assert repo.run('rev-parse', 'HEAD~1').strip() == parent


@needs_git
def test_push_failure_raises(repo, author):
    with pytest.raises(GitError) as err:
        repo.commit_and_push('Broken', author, remote='nowhere')
    assert err.value.returncode != 0
    assert err.value.stderr


@needs_git
def test_commit_date(repo):
    assert repo.commit_date(None) == datetime.fromtimestamp(0, tz=timezone.utc)
    head = repo.run('rev-parse', 'HEAD').strip()
    date = repo.commit_date(head)
    assert date.tzinfo is timezone.utc
    assert abs((datetime.now(tz=timezone.utc) - date).total_seconds()) < 3600


@needs_git
def test_git_repo_on_non_repository_raises(tmp_path):
    ceiling = {'GIT_CEILING_DIRECTORIES': str(tmp_path.parent)}
    with pytest.raises(GitError):
        GitRepo(str(tmp_path)).run('rev-parse', 'HEAD', env=ceiling)
