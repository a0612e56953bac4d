# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import collections.abc
import datetime
import logging
import threading
import urllib.parse

import dateutil.parser
import requests

import changelog.http_requests
import changelog.model as cm
import changelog.remote

logger = logging.getLogger(__name__)

GITLAB_API_URL = 'https://gitlab.com/api/v4'
PAGE_SIZE = 100


def _parse_time(value: str) -> datetime.datetime:
    parsed = dateutil.parser.isoparse(value)
    if not parsed.tzinfo:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def _to_user(raw_user: dict | None) -> cm.User:
    if not raw_user:
        return cm.User()
    return cm.User(
        name=raw_user.get('name') or '',
        username=raw_user.get('username') or '',
        web_url=raw_user.get('web_url') or '',
    )


def _to_commit(raw_commit: dict) -> cm.Commit:
    return cm.Commit(
        hash=raw_commit['id'],
        time=_parse_time(raw_commit['committed_date']),
    )


class GitLabRepo(changelog.remote.RemoteRepo):
    def __init__(
        self,
        path: str,
        access_token: str,
        api_url: str=GITLAB_API_URL,
        session: requests.Session | None=None,
    ):
        super().__init__(path=path)

        self.api_url = api_url.rstrip('/')
        self.project_url = f'{self.api_url}/projects/{urllib.parse.quote(path, safe="")}'

        if not session:
            session = changelog.http_requests.mount_default_adapter(requests.Session())
        session.headers.update({
            'PRIVATE-TOKEN': access_token,
            'Accept': 'application/json',
        })
        self.session = session

        self._lock = threading.Lock()
        self._commits = {} # sha -> raw commit (dict)

    def _get(self, url: str, params: dict | None=None) -> requests.Response:
        return changelog.http_requests.check_http_code(self.session.get)(
            url,
            params=params,
            timeout=(4, 31),
        )

    def _iter(
        self,
        url: str,
        params: dict | None=None,
    ) -> collections.abc.Generator[dict, None, None]:
        '''
        yields all entries of a paginated list, following the `X-Next-Page` header
        '''
        params = dict(params or {})
        params['per_page'] = PAGE_SIZE
        page = 1

        while True:
            params['page'] = page
            resp = self._get(url, params=params)
            yield from resp.json()

            if not (next_page := resp.headers.get('X-Next-Page')):
                return
            page = int(next_page)

    def _commit(self, ref: str) -> dict:
        with self._lock:
            if raw_commit := self._commits.get(ref):
                return raw_commit

        logger.debug(f'fetching gitlab commit {ref} ...')
        raw_commit = self._get(
            f'{self.project_url}/repository/commits/{urllib.parse.quote(ref, safe="")}',
        ).json()

        with self._lock:
            self._commits[raw_commit['id']] = raw_commit
            self._commits[ref] = raw_commit

        return raw_commit

    def future_tag(self, name: str) -> cm.Tag:
        return cm.Tag(
            name=name,
            time=datetime.datetime.now(tz=datetime.timezone.utc),
            web_url=f'https://gitlab.com/{self.path}/-/tags/{name}',
        )

    def compare_url(self, base: str, head: str) -> str:
        return f'https://gitlab.com/{self.path}/-/compare/{base}...{head}'

    def fetch_first_commit(self) -> cm.Commit:
        logger.debug('fetching the first gitlab commit ...')

        resp = self._get(
            f'{self.project_url}/repository/commits',
            params={'per_page': 1},
        )
        # commits are listed most recent first; the last page holds the first commit
        if total_pages := resp.headers.get('X-Total-Pages'):
            resp = self._get(
                f'{self.project_url}/repository/commits',
                params={'per_page': 1, 'page': int(total_pages)},
            )
        elif resp.headers.get('X-Next-Page'):
            # gitlab omits the total for more than 10,000 commits
            return self._first_commit_from_ancestry()

        raw_commits = resp.json()
        if not raw_commits:
            raise changelog.remote.RemoteError(f'no commits found in {self.path}')

        return _to_commit(raw_commits[-1])

    def _first_commit_from_ancestry(self) -> cm.Commit:
        head = self.fetch_default_branch().commit
        logger.info(f'walking the ancestry of {head} to find the first gitlab commit ...')

        root_commits = [
            commit for commit in self.fetch_parent_commits(head.hash)
            if not self._commit(commit.hash).get('parent_ids')
        ]
        if not root_commits:
            raise changelog.remote.RemoteError(f'no root commit found in {self.path}')

        # unrelated histories may have been merged
        return min(root_commits, key=lambda commit: commit.time)

    def fetch_branch(self, name: str) -> cm.Branch:
        logger.debug(f'fetching gitlab branch {name} ...')
        raw_branch = self._get(
            f'{self.project_url}/repository/branches/{urllib.parse.quote(name, safe="")}',
        ).json()

        return cm.Branch(
            name=raw_branch['name'],
            commit=_to_commit(raw_branch['commit']),
        )

    def fetch_default_branch(self) -> cm.Branch:
        project = self._get(self.project_url).json()
        if not (default_branch := project.get('default_branch')):
            raise changelog.remote.RemoteError(f'{self.path} has no default branch')

        return self.fetch_branch(default_branch)

    def fetch_tags(self) -> list[cm.Tag]:
        logger.debug('fetching gitlab tags ...')

        tags = []
        for raw_tag in self._iter(f'{self.project_url}/repository/tags'):
            commit = _to_commit(raw_tag['commit'])
            tags.append(cm.Tag(
                name=raw_tag['name'],
                time=commit.time,
                commit=commit,
                web_url=f'https://gitlab.com/{self.path}/-/tags/{raw_tag["name"]}',
            ))

        logger.debug(f'fetched gitlab tags: {", ".join(cm.tag_names(tags))}')

        return tags

    def fetch_issues_and_merges(
        self,
        since: datetime.datetime | None=None,
    ) -> tuple[list[cm.Issue], list[cm.Merge]]:
        params = {}
        if since:
            logger.info(f'fetching gitlab issues since {since.isoformat()} ...')
            params['updated_after'] = since.isoformat()
        else:
            logger.info('fetching gitlab issues since the beginning ...')

        issues = []
        for raw_issue in self._iter(
            f'{self.project_url}/issues',
            params={**params, 'state': 'closed'},
        ):
            issues.append(cm.Issue(
                number=raw_issue['iid'],
                title=raw_issue['title'],
                time=_parse_time(raw_issue['closed_at']),
                labels=tuple(raw_issue.get('labels') or ()),
                milestone=(raw_issue.get('milestone') or {}).get('title'),
                author=_to_user(raw_issue.get('author')),
                web_url=raw_issue['web_url'],
                closer=_to_user(raw_issue.get('closed_by')),
            ))

        merges = []
        for raw_merge in self._iter(
            f'{self.project_url}/merge_requests',
            params={**params, 'state': 'merged'},
        ):
            sha = (
                raw_merge.get('merge_commit_sha')
                or raw_merge.get('squash_commit_sha')
                or raw_merge['sha']
            )
            commit = _to_commit(self._commit(sha))
            merges.append(cm.Merge(
                number=raw_merge['iid'],
                title=raw_merge['title'],
                time=commit.time,
                labels=tuple(raw_merge.get('labels') or ()),
                milestone=(raw_merge.get('milestone') or {}).get('title'),
                author=_to_user(raw_merge.get('author')),
                web_url=raw_merge['web_url'],
                merger=_to_user(raw_merge.get('merged_by')),
                commit=commit,
            ))

        issues = cm.sort_changes(issues)
        merges = cm.sort_changes(merges)

        logger.info(f'fetched {len(issues)} gitlab issue(s) and {len(merges)} merge request(s)')

        return issues, merges

    def fetch_parent_commits(self, ref: str) -> list[cm.Commit]:
        logger.debug(f'fetching all gitlab parent commits for {ref} ...')

        commits = []
        visited = set()
        pending = [ref]

        while pending:
            sha = pending.pop()
            if sha in visited:
                continue
            visited.add(sha)

            raw_commit = self._commit(sha)
            visited.add(raw_commit['id'])
            commits.append(_to_commit(raw_commit))

            pending.extend(raw_commit.get('parent_ids') or ())

        logger.debug(f'fetched {len(commits)} gitlab parent commit(s) for {ref}')

        return commits
