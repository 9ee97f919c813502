import subprocess

import pytest

from svcgen.io.git import GitRepo, UserDetails


def _git(cwd, *args):
    subprocess.run(['git', *args], cwd=cwd, check=True, capture_output=True, text=True)


@pytest.fixture()
def author():
    return UserDetails(name='Test Author', email='author@example.com')


@pytest.fixture()
def isolated_git_env(monkeypatch, tmp_path):
    # Neither the user's ~/.gitconfig nor the system one should leak into tests.
    home = tmp_path / 'home'
    home.mkdir()
    monkeypatch.setenv('HOME', str(home))
    monkeypatch.setenv('GIT_CONFIG_NOSYSTEM', '1')
    monkeypatch.setenv('GIT_AUTHOR_NAME', 'Fixture')
    monkeypatch.setenv('GIT_AUTHOR_EMAIL', 'fixture@example.com')
    monkeypatch.setenv('GIT_COMMITTER_NAME', 'Fixture')
    monkeypatch.setenv('GIT_COMMITTER_EMAIL', 'fixture@example.com')
    return home


@pytest.fixture()
def remote_dir(tmp_path, isolated_git_env):
    path = tmp_path / 'remote.git'
    _git(tmp_path, 'init', '--bare', '--initial-branch=main', str(path))
    return path


@pytest.fixture()
def work_dir(tmp_path, isolated_git_env, remote_dir):
    path = tmp_path / 'work'
    path.mkdir()
    _git(path, 'init', '--initial-branch=main')
    _git(path, 'remote', 'add', 'origin', str(remote_dir))
    (path / 'README').write_text('hello\n')
    _git(path, 'add', 'README')
    _git(path, 'commit', '-m', 'initial')
    return path


@pytest.fixture()
def repo(work_dir):
    return GitRepo(str(work_dir))
