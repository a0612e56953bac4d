# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import unittest.mock

import pytest

import changelog.remote
import changelog.spec

import _test_utils as tu


@pytest.fixture
def remote_repo():
    '''
    a remote repository with history c1 <- c2 <- c3 <- c4 (main), tagged v0.1.1 (c1),
    v0.1.2 (c2) and v0.1.3 (c3)
    '''
    history = [tu.commit4, tu.commit3, tu.commit2, tu.commit1]
    parents = {c.hash: history[idx:] for idx, c in enumerate(history)}

    repo = unittest.mock.MagicMock(spec=changelog.remote.RemoteRepo)
    repo.fetch_tags.return_value = [tu.tag1, tu.tag3, tu.tag2]
    repo.fetch_default_branch.return_value = tu.branch
    repo.fetch_branch.return_value = tu.branch
    repo.fetch_first_commit.return_value = tu.commit1
    repo.fetch_parent_commits.side_effect = lambda ref: list(parents[ref])
    repo.fetch_issues_and_merges.return_value = ([], [])
    repo.future_tag.side_effect = tu.future_tag
    repo.compare_url.side_effect = lambda base, head: f'https://x/compare/{base}...{head}'

    return repo


@pytest.fixture
def spec():
    return changelog.spec.default_spec(platform='github.com', path='owner/repo')
