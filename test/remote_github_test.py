# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import datetime
import unittest.mock

import github3.exceptions
import pytest

import changelog.model as cm
import changelog.remote
import changelog.remote.github as crg


def raw_commit(sha: str, day: int, *parents: str) -> dict:
    return {
        'sha': sha,
        'commit': {'committer': {'date': f'2024-01-0{day}T00:00:00Z'}},
        'parents': [{'sha': parent} for parent in parents],
    }


# history: c1 <- c2 <- c3, c1 <- c4 (branch merged into c3)
raw_commits = {
    'c3': raw_commit('c3', 3, 'c2', 'c4'),
    'c2': raw_commit('c2', 2, 'c1'),
    'c4': raw_commit('c4', 2, 'c1'),
    'c1': raw_commit('c1', 1),
}


def user(login: str):
    return unittest.mock.MagicMock(
        login=login,
        html_url=f'https://github.com/{login}',
        email=None,
    )


def event(name: str, login: str, commit_id: str | None=None):
    return unittest.mock.MagicMock(event=name, actor=user(login), commit_id=commit_id)


def label(name: str):
    lbl = unittest.mock.MagicMock()
    lbl.name = name
    return lbl


def gh_issue(number: int, events: list, pull_request: bool=False, labels=()):
    issue = unittest.mock.MagicMock(
        number=number,
        title=f'title {number}',
        closed_at=datetime.datetime(2024, 1, 2, tzinfo=datetime.timezone.utc),
        user=user('alice'),
        html_url=f'https://github.com/owner/repo/issues/{number}',
        pull_request_urls={'url': 'x'} if pull_request else None,
        original_labels=[label(name) for name in labels],
        milestone=None,
    )
    issue.events.return_value = events
    return issue


@pytest.fixture
def github_api():
    api = unittest.mock.MagicMock()
    api._get.return_value.headers = {'X-OAuth-Scopes': 'read:org, repo'}
    api._get.return_value.links = {}

    repository = api.repository.return_value
    repository.commit.side_effect = lambda ref: unittest.mock.MagicMock(
        **{'as_dict.return_value': raw_commits[ref]},
    )
    repository.default_branch = 'main'

    def users(login):
        u = user(login)
        u.name = login.capitalize()
        return u
    api.user.side_effect = users

    return api


@pytest.fixture
def repo(github_api):
    return crg.GitHubRepo(path='owner/repo', access_token='token', github_api=github_api)


def test_urls(repo):
    assert repo.compare_url('v0.1.1', 'v0.1.2') == \
        'https://github.com/owner/repo/compare/v0.1.1...v0.1.2'

    tag = repo.future_tag('v1.0.0')
    assert tag.is_future
    assert tag.web_url == 'https://github.com/owner/repo/tree/v1.0.0'


def test_remote_repo_factory():
    repo = changelog.remote.remote_repo(
        platform='github.com',
        path='owner/repo',
        access_token='token',
    )
    assert isinstance(repo, crg.GitHubRepo)

    with pytest.raises(ValueError):
        changelog.remote.remote_repo(platform='example.org', path='a/b', access_token='')


def test_missing_scope(repo, github_api):
    github_api._get.return_value.headers = {'X-OAuth-Scopes': 'read:org'}

    with pytest.raises(changelog.remote.RemoteError, match='scope: repo'):
        repo.fetch_tags()


def test_fetch_parent_commits(repo, github_api):
    commits = repo.fetch_parent_commits('c3')

    assert sorted(c.hash for c in commits) == ['c1', 'c2', 'c3', 'c4']
    assert commits[0] == cm.Commit(
        hash='c3',
        time=datetime.datetime(2024, 1, 3, tzinfo=datetime.timezone.utc),
    )

    # each commit is fetched at most once, also across walks
    repo.fetch_parent_commits('c2')
    assert github_api.repository.return_value.commit.call_count == 4


def test_fetch_tags(repo, github_api):
    github_api.repository.return_value.tags.return_value = [
        unittest.mock.MagicMock(**{'as_dict.return_value': {'name': name, 'commit': {'sha': sha}}})
        for name, sha in (('v0.1.1', 'c1'), ('v0.1.2', 'c2'))
    ]

    tags = repo.fetch_tags()

    assert cm.tag_names(tags) == ['v0.1.1', 'v0.1.2']
    assert tags[1].commit.hash == 'c2'
    assert tags[1].time == datetime.datetime(2024, 1, 2, tzinfo=datetime.timezone.utc)
    assert tags[1].web_url == 'https://github.com/owner/repo/tree/v0.1.2'


def test_fetch_default_branch(repo, github_api):
    gh_branch = unittest.mock.MagicMock(**{'commit.sha': 'c3'})
    gh_branch.name = 'main'
    github_api.repository.return_value.branch.return_value = gh_branch

    branch = repo.fetch_default_branch()

    assert branch.name == 'main'
    assert branch.commit.hash == 'c3'
    github_api.repository.return_value.branch.assert_called_once_with('main')


def test_fetch_first_commit(repo, github_api):
    first_page = unittest.mock.MagicMock(
        headers={'X-OAuth-Scopes': 'repo'},
        links={'last': {'url': 'https://api.github.com/last'}},
    )
    last_page = unittest.mock.MagicMock()
    last_page.json.return_value = [raw_commits['c1']]
    github_api._get.side_effect = [first_page, first_page, last_page]

    assert repo.fetch_first_commit().hash == 'c1'
    assert github_api._get.call_args.args == ('https://api.github.com/last',)


def test_fetch_issues_and_merges(repo, github_api):
    github_api.repository.return_value.issues.return_value = [
        gh_issue(1, [event('labeled', 'alice'), event('closed', 'bob')], labels=('bug',)),
        gh_issue(2, [event('closed', 'alice'), event('merged', 'bob', 'c3')], pull_request=True),
        # closed without being merged
        gh_issue(3, [event('closed', 'alice')], pull_request=True),
    ]

    issues, merges = repo.fetch_issues_and_merges(since=None)

    assert [i.number for i in issues] == [1]
    assert issues[0].labels == ('bug',)
    assert issues[0].author.username == 'alice'
    assert issues[0].author.name == 'Alice'
    assert issues[0].closer.username == 'bob'

    assert [m.number for m in merges] == [2]
    assert merges[0].merger.username == 'bob'
    assert merges[0].commit.hash == 'c3'
    assert merges[0].time == datetime.datetime(2024, 1, 3, tzinfo=datetime.timezone.utc)

    github_api.repository.return_value.issues.assert_called_once_with(state='closed', since=None)


def forbidden_response(message: str, headers: dict):
    response = unittest.mock.MagicMock(status_code=403, headers=headers)
    response.json.return_value = {'message': message}
    return response


def test_retry_and_throttle(monkeypatch):
    waits = []
    monkeypatch.setattr(crg.time, 'sleep', waits.append)
    response = forbidden_response('API rate limit exceeded', {'Retry-After': '5'})

    calls = []

    @crg.retry_and_throttle
    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise github3.exceptions.ForbiddenError(response)
        return 'ok'

    assert flaky() == 'ok'
    assert len(calls) == 3
    assert waits == [5, 5]

    @crg.retry_and_throttle
    def forbidden():
        raise github3.exceptions.ForbiddenError(forbidden_response('forbidden', {}))

    with pytest.raises(github3.exceptions.ForbiddenError):
        forbidden()


def test_retry_and_throttle_gives_up(monkeypatch):
    monkeypatch.setattr(crg.time, 'sleep', lambda seconds: None)
    calls = []

    def limited():
        calls.append(1)
        raise github3.exceptions.ForbiddenError(
            forbidden_response('You have exceeded a secondary rate limit', {}),
        )

    with pytest.raises(github3.exceptions.ForbiddenError):
        crg.retry_and_throttle(limited, retries=2)()
    assert len(calls) == 3


def test_rate_limit_wait_seconds(monkeypatch):
    monkeypatch.setattr(crg.time, 'time', lambda: 1000.0)

    assert crg._rate_limit_wait_seconds(unittest.mock.MagicMock(headers={})) == 60
    assert crg._rate_limit_wait_seconds(
        unittest.mock.MagicMock(headers={'X-RateLimit-Reset': '1100'}),
    ) == 101
    # reset already passed
    assert crg._rate_limit_wait_seconds(
        unittest.mock.MagicMock(headers={'X-RateLimit-Reset': '900'}),
    ) == 1
    assert crg._rate_limit_wait_seconds(
        unittest.mock.MagicMock(headers={'Retry-After': '86400'}),
    ) == 15 * 60
