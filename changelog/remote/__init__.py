# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

'''
read access to remote repositories (GitHub, GitLab)

Implementations are expected to memoise commits by hash, so that repeated ancestry walks over
shared history fetch each commit at most once.
'''

import abc
import datetime

import changelog.model as cm


class RemoteError(RuntimeError):
    pass


class RemoteRepo(abc.ABC):
    def __init__(self, path: str):
        '''
        :param path: repository path on the remote platform, e.g. `<owner>/<name>`
        '''
        self.path = path

    @abc.abstractmethod
    def future_tag(self, name: str) -> cm.Tag:
        '''
        returns a tag for a release that does not exist yet (tagged "now")
        '''
        raise NotImplementedError

    @abc.abstractmethod
    def compare_url(self, base: str, head: str) -> str:
        raise NotImplementedError

    @abc.abstractmethod
    def fetch_first_commit(self) -> cm.Commit:
        raise NotImplementedError

    @abc.abstractmethod
    def fetch_branch(self, name: str) -> cm.Branch:
        raise NotImplementedError

    @abc.abstractmethod
    def fetch_default_branch(self) -> cm.Branch:
        raise NotImplementedError

    @abc.abstractmethod
    def fetch_tags(self) -> list[cm.Tag]:
        '''
        returns all tags (in no particular order)
        '''
        raise NotImplementedError

    @abc.abstractmethod
    def fetch_issues_and_merges(
        self,
        since: datetime.datetime | None=None,
    ) -> tuple[list[cm.Issue], list[cm.Merge]]:
        '''
        returns closed issues and merged pull/merge requests updated since the given time (or
        all of them, if `since` is None), each ordered from the most recent to the least recent
        '''
        raise NotImplementedError

    @abc.abstractmethod
    def fetch_parent_commits(self, ref: str) -> list[cm.Commit]:
        '''
        returns the commit referenced by `ref` and all of its (transitive) parents
        '''
        raise NotImplementedError


def remote_repo(
    platform: str,
    path: str,
    access_token: str,
) -> RemoteRepo:
    '''
    :param platform: one of `github.com`, `gitlab.com` (see changelog.spec.Platform)
    '''
    if platform == 'github.com':
        import changelog.remote.github
        return changelog.remote.github.GitHubRepo(
            path=path,
            access_token=access_token,
        )
    elif platform == 'gitlab.com':
        import changelog.remote.gitlab
        return changelog.remote.gitlab.GitLabRepo(
            path=path,
            access_token=access_token,
        )
    else:
        raise ValueError(f'unsupported remote platform: {platform}')
