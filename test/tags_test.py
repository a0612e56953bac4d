# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import pytest

import changelog.document as cd
import changelog.model as cm
import changelog.tags

import _test_utils as tu


sorted_tags = [tu.tag3, tu.tag2, tu.tag1]


def resolve(chlog=None, **kwargs):
    return changelog.tags.resolve_tags(
        sorted_tags=sorted_tags,
        chlog=chlog or cd.Changelog(),
        future_tag_factory=tu.future_tag,
        **kwargs,
    )


def test_sort_tags():
    assert changelog.tags.sort_tags([tu.tag1, tu.tag3, tu.tag2]) == sorted_tags
    assert changelog.tags.sort_tags([]) == []


def test_exclude_tags():
    assert changelog.tags.exclude_tags(sorted_tags, ['v0.1.2']) == [tu.tag3, tu.tag1]
    assert changelog.tags.exclude_tags(sorted_tags, []) == sorted_tags
    assert changelog.tags.exclude_tags(sorted_tags, ['v9.9.9']) == sorted_tags


def test_exclude_tags_regex():
    assert changelog.tags.exclude_tags_regex(sorted_tags, r'\.[12]$') == [tu.tag3]
    assert changelog.tags.exclude_tags_regex(sorted_tags, '^x') == sorted_tags


def test_resolve_tags_without_changelog():
    assert resolve() == [tu.tag3, tu.tag2, tu.tag1]


def test_resolve_tags_skips_tags_in_changelog():
    assert resolve(chlog=tu.changelog_with('v0.1.1')) == [tu.tag3, tu.tag2]


def test_resolve_tags_up_to_date():
    assert resolve(chlog=tu.changelog_with('v0.1.3', 'v0.1.2', 'v0.1.1')) == []


def test_resolve_tags_from_tag():
    assert resolve(from_tag='v0.1.2') == [tu.tag3, tu.tag2]


def test_resolve_tags_to_tag():
    assert resolve(to_tag='v0.1.2') == [tu.tag2, tu.tag1]


def test_resolve_tags_from_and_to_tag():
    assert resolve(from_tag='v0.1.2', to_tag='v0.1.2') == [tu.tag2]
    assert resolve(from_tag='v0.1.1', to_tag='v0.1.2') == [tu.tag2, tu.tag1]


def test_resolve_tags_invalid_from_tag():
    with pytest.raises(
        changelog.tags.TagRangeError,
        match=r'^from-tag can be one of \[v0\.1\.3, v0\.1\.2\]$',
    ):
        resolve(chlog=tu.changelog_with('v0.1.1'), from_tag='invalid')

    # tags already in changelog are no candidates
    with pytest.raises(changelog.tags.TagRangeError, match=r'\[v0\.1\.3, v0\.1\.2\]'):
        resolve(chlog=tu.changelog_with('v0.1.1'), from_tag='v0.1.1')


def test_resolve_tags_inverted_range():
    # candidates are truncated by from-tag first
    with pytest.raises(
        changelog.tags.TagRangeError,
        match=r'^to-tag can be one of \[v0\.1\.3, v0\.1\.2\]$',
    ):
        resolve(from_tag='v0.1.2', to_tag='v0.1.1')


def test_resolve_tags_invalid_to_tag():
    with pytest.raises(
        changelog.tags.TagRangeError,
        match=r'^to-tag can be one of \[v0\.1\.3, v0\.1\.2, v0\.1\.1\]$',
    ):
        resolve(to_tag='v9.9.9')


def test_resolve_tags_future_tag():
    resolved = resolve(chlog=tu.changelog_with('v0.1.1'), future_tag='v0.2.0')

    assert cm.tag_names(resolved) == ['v0.2.0', 'v0.1.3', 'v0.1.2']
    assert resolved[0].is_future


def test_resolve_tags_future_tag_with_range():
    resolved = resolve(from_tag='v0.1.2', to_tag='v0.1.3', future_tag='v0.1.4')

    assert cm.tag_names(resolved) == ['v0.1.4', 'v0.1.3', 'v0.1.2']


def test_resolve_tags_future_tag_only():
    resolved = resolve(chlog=tu.changelog_with('v0.1.3', 'v0.1.2', 'v0.1.1'), future_tag='v1.0.0')

    assert cm.tag_names(resolved) == ['v1.0.0']


def test_resolve_tags_future_tag_collision():
    with pytest.raises(
        changelog.tags.FutureTagError,
        match='^future tag cannot be same as an existing tag: v0.1.1$',
    ):
        # collisions are checked against all tags, including those in the changelog
        resolve(chlog=tu.changelog_with('v0.1.1'), future_tag='v0.1.1')


def test_resolve_tags_is_idempotent():
    new_tags = resolve(chlog=tu.changelog_with('v0.1.1'))
    chlog = tu.changelog_with(*cm.tag_names(new_tags), 'v0.1.1')

    assert resolve(chlog=chlog) == []
