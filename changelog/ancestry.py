# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

'''
indexes, for each commit, the release branch and the tags whose history contain it
'''

import collections.abc
import logging
import types

import changelog.model as cm

logger = logging.getLogger(__name__)


def index_commits(
    remote_repo,
    branch: cm.Branch,
    sorted_tags: collections.abc.Sequence[cm.Tag],
) -> cm.CommitIndex:
    '''
    returns a read-only mapping of commit-hash to `Revisions` for every commit reachable from
    the given branch's head or from any of the given tags.

    Postcondition: for every commit, `Revisions.tags` lists the names of all containing tags
    ordered from the most recent to the least recent tag (i.e. in the order of
    `sorted_tags`). Hence, the last entry is the earliest release that shipped the commit.

    Future tags (tags without a commit) are skipped. Errors raised by `remote_repo` are
    propagated; no partial index is returned.

    :param remote_repo: changelog.remote.RemoteRepo
    :param sorted_tags: tags ordered from the most recent to the least recent
    '''
    index: dict[str, cm.Revisions] = {}

    logger.debug(f'indexing commits reachable from branch {branch.name} ...')
    for commit in remote_repo.fetch_parent_commits(branch.commit.hash):
        index.setdefault(commit.hash, cm.Revisions()).branch = branch.name

    for tag in sorted_tags:
        if tag.is_future:
            continue

        logger.debug(f'indexing commits reachable from tag {tag.name} ...')
        for commit in remote_repo.fetch_parent_commits(tag.commit.hash):
            revisions = index.setdefault(commit.hash, cm.Revisions())
            # guard against collaborators returning a commit more than once
            if not revisions.tags or revisions.tags[-1] != tag.name:
                revisions.tags.append(tag.name)

    logger.info(f'indexed {len(index)} commits')

    return types.MappingProxyType(index)
