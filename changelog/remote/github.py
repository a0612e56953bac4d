# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import concurrent.futures
import datetime
import functools
import logging
import threading
import time

import dateutil.parser
import github3
import github3.exceptions
import github3.issues.issue
import github3.repos
import github3.session

import changelog.http_requests
import changelog.model as cm
import changelog.remote

logger = logging.getLogger(__name__)

REQUIRED_SCOPE = 'repo'


def _rate_limit_wait_seconds(response, default: int=60, maximum: int=15 * 60) -> int:
    '''
    seconds to wait until github accepts requests again, from `Retry-After` (secondary
    rate limits) or `X-RateLimit-Reset` (primary rate limit)
    '''
    headers = getattr(response, 'headers', None) or {}

    if retry_after := headers.get('Retry-After'):
        wait = int(retry_after)
    elif reset := headers.get('X-RateLimit-Reset'):
        wait = int(reset) - int(time.time()) + 1
    else:
        wait = default

    return min(max(wait, 1), maximum)


def retry_and_throttle(function: callable, retries=5):
    '''
    decorator for functions issueing github-api-requests that may exceed the rate limit.
    Waits until the rate limit is reset and retries. Any other errors than rate limit
    related `github3.exceptions.ForbiddenError`s are re-raised, as is the last error after
    the configured amount of retries.
    '''
    @functools.wraps(function)
    def call_with_retry(*args, **kwargs):
        for remaining in range(retries, -1, -1):
            try:
                return function(*args, **kwargs)
            except github3.exceptions.ForbiddenError as fbe:
                message = fbe.message
                if isinstance(message, bytes):
                    message = message.decode('utf-8')
                if not remaining or 'rate limit' not in message.lower():
                    raise

                wait = _rate_limit_wait_seconds(fbe.response)
                logger.warning(f'github rate limit exceeded - retrying in {wait}s ({remaining=})')
                time.sleep(wait)

    return call_with_retry


class _Store:
    '''
    thread-safe memo of already-fetched objects
    '''
    def __init__(self):
        self._lock = threading.Lock()
        self._entries = {}

    def load(self, key):
        with self._lock:
            return self._entries.get(key)

    def save(self, key, value):
        with self._lock:
            self._entries[key] = value

    def __len__(self):
        with self._lock:
            return len(self._entries)


def _parse_time(value: str) -> datetime.datetime:
    parsed = dateutil.parser.isoparse(value)
    if not parsed.tzinfo:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def _to_commit(raw_commit: dict) -> cm.Commit:
    return cm.Commit(
        hash=raw_commit['sha'],
        time=_parse_time(raw_commit['commit']['committer']['date']),
    )


def _to_user(user) -> cm.User:
    return cm.User(
        name=user.name or '',
        email=user.email or '',
        username=user.login,
        web_url=user.html_url,
    )


class GitHubRepo(changelog.remote.RemoteRepo):
    def __init__(
        self,
        path: str,
        access_token: str,
        github_api: github3.GitHub | None=None,
        max_workers: int=8,
    ):
        '''
        :param path: `<owner>/<name>`
        :param github_api: pre-configured api object (created from access_token if not given)
        '''
        super().__init__(path=path)

        if not github_api:
            session = changelog.http_requests.mount_default_adapter(
                session=github3.session.GitHubSession(),
                flags=changelog.http_requests.AdapterFlag.RETRY,
                max_pool_size=16, # increase with care, might cause github api "secondary-rate-limit"
            )
            github_api = github3.GitHub(token=access_token, session=session)
        self.github = github_api

        self.owner, self.name = path.split('/', 1)
        self.max_workers = max_workers

        self._repository = None
        self._scopes_checked = False
        self._commits = _Store() # sha -> raw commit (dict)
        self._users = _Store() # login -> cm.User

    @property
    def repository(self) -> github3.repos.Repository:
        if not self._repository:
            self._repository = self.github.repository(self.owner, self.name)
        return self._repository

    def _check_scopes(self):
        if self._scopes_checked:
            return

        logger.debug(f'checking github token scopes: {REQUIRED_SCOPE}')
        # pylint: disable=protected-access
        # noinspection PyProtectedMember
        resp = self.github._get(self.github._build_url('user'))
        resp.raise_for_status()

        scopes = [
            scope.strip() for scope in resp.headers.get('X-OAuth-Scopes', '').split(',')
        ]
        if REQUIRED_SCOPE not in scopes:
            raise changelog.remote.RemoteError(
                f'access token does not have the scope: {REQUIRED_SCOPE}'
            )

        self._scopes_checked = True

    @retry_and_throttle
    def _commit(self, ref: str) -> dict:
        if raw_commit := self._commits.load(ref):
            return raw_commit

        logger.debug(f'fetching github commit {ref} ...')
        raw_commit = self.repository.commit(ref).as_dict()

        self._commits.save(raw_commit['sha'], raw_commit)
        if ref != raw_commit['sha']:
            self._commits.save(ref, raw_commit)

        return raw_commit

    @retry_and_throttle
    def _user(self, login: str) -> cm.User:
        if user := self._users.load(login):
            return user

        logger.debug(f'fetching github user {login} ...')
        user = _to_user(self.github.user(login))
        self._users.save(login, user)

        return user

    @retry_and_throttle
    def _find_event(
        self,
        issue: github3.issues.issue.ShortIssue,
        name: str,
    ):
        for event in issue.events():
            if event.event == name:
                return event
        return None

    def future_tag(self, name: str) -> cm.Tag:
        return cm.Tag(
            name=name,
            time=datetime.datetime.now(tz=datetime.timezone.utc),
            web_url=f'https://github.com/{self.path}/tree/{name}',
        )

    def compare_url(self, base: str, head: str) -> str:
        return f'https://github.com/{self.path}/compare/{base}...{head}'

    def fetch_first_commit(self) -> cm.Commit:
        self._check_scopes()
        logger.debug('fetching the first github commit ...')

        # pylint: disable=protected-access
        # noinspection PyProtectedMember
        url = self.github._build_url('repos', self.owner, self.name, 'commits')
        resp = self.github._get(url, params={'per_page': 1})
        resp.raise_for_status()

        # commits are listed most recent first; the last page holds the first commit
        if last := resp.links.get('last'):
            resp = self.github._get(last['url'])
            resp.raise_for_status()

        raw_commits = resp.json()
        if not raw_commits:
            raise changelog.remote.RemoteError(f'no commits found in {self.path}')

        first_commit = _to_commit(raw_commits[-1])
        logger.debug(f'first github commit: {first_commit}')

        return first_commit

    def fetch_branch(self, name: str) -> cm.Branch:
        self._check_scopes()
        logger.debug(f'fetching github branch {name} ...')

        branch = self.repository.branch(name)

        return cm.Branch(
            name=branch.name,
            commit=_to_commit(self._commit(branch.commit.sha)),
        )

    def fetch_default_branch(self) -> cm.Branch:
        self._check_scopes()
        return self.fetch_branch(self.repository.default_branch)

    def fetch_tags(self) -> list[cm.Tag]:
        self._check_scopes()
        logger.debug('fetching github tags ...')

        raw_tags = [tag.as_dict() for tag in self.repository.tags()]

        def to_tag(raw_tag: dict) -> cm.Tag:
            commit = _to_commit(self._commit(raw_tag['commit']['sha']))
            return cm.Tag(
                name=raw_tag['name'],
                time=commit.time,
                commit=commit,
                web_url=f'https://github.com/{self.path}/tree/{raw_tag["name"]}',
            )

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            tags = list(executor.map(to_tag, raw_tags))

        logger.debug(f'fetched github tags: {", ".join(cm.tag_names(tags))}')

        return tags

    def _resolve_issue(
        self,
        issue: github3.issues.issue.ShortIssue,
    ) -> cm.Issue | cm.Merge | None:
        labels = tuple(label.name for label in issue.original_labels)
        milestone = issue.milestone.title if issue.milestone else None

        if not issue.pull_request_urls:
            if not (event := self._find_event(issue, 'closed')):
                raise changelog.remote.RemoteError(
                    f'closed event for issue #{issue.number} not found'
                )

            return cm.Issue(
                number=issue.number,
                title=issue.title,
                time=issue.closed_at,
                labels=labels,
                milestone=milestone,
                author=self._user(issue.user.login),
                web_url=issue.html_url,
                closer=self._user(event.actor.login),
            )

        # pull requests closed without being merged have no merged event
        if not (event := self._find_event(issue, 'merged')):
            return None

        # the committer time of the merge commit is the actual time of merge
        commit = _to_commit(self._commit(event.commit_id))

        return cm.Merge(
            number=issue.number,
            title=issue.title,
            time=commit.time,
            labels=labels,
            milestone=milestone,
            author=self._user(issue.user.login),
            web_url=issue.html_url,
            merger=self._user(event.actor.login),
            commit=commit,
        )

    def fetch_issues_and_merges(
        self,
        since: datetime.datetime | None=None,
    ) -> tuple[list[cm.Issue], list[cm.Merge]]:
        self._check_scopes()

        if since:
            logger.info(f'fetching github issues since {since.isoformat()} ...')
        else:
            logger.info('fetching github issues since the beginning ...')

        raw_issues = list(self.repository.issues(state='closed', since=since))

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            resolved = list(executor.map(self._resolve_issue, raw_issues))

        issues = cm.sort_changes(r for r in resolved if isinstance(r, cm.Issue))
        merges = cm.sort_changes(r for r in resolved if isinstance(r, cm.Merge))

        logger.info(f'fetched {len(issues)} github issue(s) and {len(merges)} pull request(s)')

        return issues, merges

    def fetch_parent_commits(self, ref: str) -> list[cm.Commit]:
        self._check_scopes()
        logger.debug(f'fetching all github parent commits for {ref} ...')

        commits = []
        visited = set()
        pending = [ref]

        while pending:
            sha = pending.pop()
            if sha in visited:
                continue
            visited.add(sha)

            raw_commit = self._commit(sha)
            visited.add(raw_commit['sha'])
            commits.append(_to_commit(raw_commit))

            pending.extend(parent['sha'] for parent in raw_commit.get('parents', ()))

        logger.debug(f'fetched {len(commits)} github parent commit(s) for {ref}')

        return commits
