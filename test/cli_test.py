# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import logging
import unittest.mock

import pytest

import changelog.cli
import changelog.generate
import changelog.gitrepo
import changelog.spec


def test_version(capsys):
    with pytest.raises(SystemExit) as se:
        changelog.cli.parse_args(['--version'])

    assert se.value.code == 0
    assert capsys.readouterr().out.strip() == changelog.cli.version()


def test_spec_overrides():
    parsed = changelog.cli.parse_args([
        '--file', 'HISTORY.md',
        '--print',
        '--exclude-tags', 'v0.1.0, v0.2.0,',
        '--issues-selection', 'labeled',
        '--merges-grouping', 'label',
        '--merges-branch', 'release',
        '--issues-bug-labels', 'bug,defect',
        '--merges-breaking-labels', 'breaking',
        '--merges-security-labels', 'cve',
        '--release-url', 'https://x/{tag}',
    ])

    spec = changelog.spec.merge_spec(
        changelog.spec.default_spec(),
        changelog.cli.spec_overrides(parsed),
    )

    assert spec.general.file == 'HISTORY.md'
    assert spec.general.print is True
    assert spec.general.verbose is False
    assert spec.tags.exclude == ['v0.1.0', 'v0.2.0']
    assert spec.issues.selection is changelog.spec.Selection.LABELED
    # absent flags do not override defaults
    assert spec.issues.exclude_labels == ['duplicate', 'invalid', 'question', 'wontfix']
    assert spec.merges.grouping is changelog.spec.Grouping.LABEL
    assert spec.merges.branch == 'release'
    assert spec.issues.bug_labels == ['bug', 'defect']
    assert spec.issues.feature_labels == ['feature']
    assert spec.merges.breaking_labels == ['breaking']
    assert spec.merges.security_labels == ['cve']
    assert spec.merges.feature_labels == []
    assert [g.labels for g in spec.merge_groups()][2] == ('breaking',)
    assert spec.content.release_url == 'https://x/{tag}'


def test_invalid_choice():
    with pytest.raises(SystemExit):
        changelog.cli.parse_args(['--issues-grouping', 'random'])


@pytest.mark.parametrize('verbose,print_,level', [
    (False, False, logging.INFO),
    (True, False, logging.DEBUG),
    (False, True, logging.WARNING),
    (True, True, logging.DEBUG),
])
def test_log_level(verbose, print_, level):
    spec = changelog.spec.default_spec()
    spec.general.verbose = verbose
    spec.general.print = print_

    assert changelog.cli.log_level(spec) == level


def test_main(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    git_repo = unittest.mock.MagicMock()
    git_repo.return_value.remote_info.return_value = ('github.com', 'owner/repo')
    generator = unittest.mock.MagicMock()
    monkeypatch.setattr(changelog.gitrepo, 'GitRepo', git_repo)
    monkeypatch.setattr(changelog.generate, 'Generator', generator)

    assert changelog.cli.main(['--access-token', 'token', '--future-tag', 'v1.0.0']) == 0

    spec = generator.call_args.kwargs['spec']
    assert spec.repo.platform is changelog.spec.Platform.GITHUB
    assert spec.repo.path == 'owner/repo'
    assert spec.repo.access_token == 'token'
    assert spec.tags.future_tag == 'v1.0.0'
    generator.return_value.generate.assert_called_once()


def test_main_error(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    git_repo = unittest.mock.MagicMock()
    git_repo.return_value.remote_info.side_effect = ValueError('invalid git remote url: x')
    monkeypatch.setattr(changelog.gitrepo, 'GitRepo', git_repo)

    assert changelog.cli.main([]) == 1
