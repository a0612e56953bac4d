# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import logging
import re

import git

logger = logging.getLogger(__name__)

_id_pattern = r'[A-Za-z][0-9A-Za-z-]+[0-9A-Za-z]'
_domain_pattern = rf'{_id_pattern}\.[A-Za-z]{{2,63}}'
_repo_path_pattern = rf'(?:{_id_pattern}/){{1,20}}{_id_pattern}'

https_regex = re.compile(rf'^https://({_domain_pattern})/({_repo_path_pattern})(?:\.git)?$')
ssh_regex = re.compile(rf'^git@({_domain_pattern}):({_repo_path_pattern})(?:\.git)?$')


class GitRemoteError(ValueError):
    pass


def parse_remote_url(url: str) -> tuple[str, str]:
    '''
    splits a git remote url into domain and repository path

    e.g. `git@github.com:owner/name.git` -> (`github.com`, `owner/name`)
    '''
    if match := https_regex.match(url) or ssh_regex.match(url):
        return match.group(1), match.group(2)

    raise GitRemoteError(f'invalid git remote url: {url}')


class GitRepo:
    def __init__(
        self,
        repo: git.Repo | str,
    ):
        if repo is None:
            raise ValueError(repo)
        if isinstance(repo, str):
            repo = git.Repo(repo, search_parent_directories=True)
        if not isinstance(repo, git.Repo):
            raise ValueError(repo)

        self.repo = repo

    def remote_info(self, remote_name: str='origin') -> tuple[str, str]:
        '''
        returns domain and repository path of the given remote's (first) url
        '''
        logger.debug(f'reading git remote url of {remote_name} ...')

        try:
            remote = self.repo.remote(remote_name)
        except ValueError as ve:
            raise GitRemoteError(f'git remote not found: {remote_name}') from ve

        if not (urls := list(remote.urls)):
            raise GitRemoteError(f'git remote {remote_name} has no url')

        domain, path = parse_remote_url(urls[0])
        logger.info(f'git remote url: {urls[0]}')

        return domain, path
