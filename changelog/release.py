# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import collections.abc
import logging

import changelog.document as cd
import changelog.grouping
import changelog.model as cm
import changelog.spec

logger = logging.getLogger(__name__)


def base_revision(
    all_tags: collections.abc.Sequence[cm.Tag],
    new_tags: collections.abc.Sequence[cm.Tag],
    remote_repo,
) -> str:
    '''
    returns the revision the oldest of the new tags is compared against: the next older tag
    (from all known tags), or the repository's first commit if there is no older tag.

    :param all_tags: all known tags, sorted and filtered
    :param new_tags: tags for which releases are to be assembled, most recent first
    :param remote_repo: changelog.remote.RemoteRepo
    '''
    released_tags = [tag for tag in new_tags if not tag.is_future]

    if released_tags:
        oldest_name = released_tags[-1].name
        names = cm.tag_names(all_tags)
        if oldest_name in names and (idx := names.index(oldest_name)) + 1 < len(all_tags):
            return all_tags[idx + 1].name
    elif all_tags:
        # only a future tag: compare against the most recent existing tag
        return all_tags[0].name

    first_commit = remote_repo.fetch_first_commit()
    logger.debug(f'no older tag found - using first commit {first_commit.hash} as base')

    return first_commit.hash


def release_url(template: str, tag_name: str) -> str:
    if not template:
        return ''
    return template.replace('{tag}', tag_name)


def assemble_releases(
    sorted_tags: collections.abc.Sequence[cm.Tag],
    issue_map: collections.abc.Mapping[str, list[cm.Issue]],
    merge_map: collections.abc.Mapping[str, list[cm.Merge]],
    base_rev: str,
    remote_repo,
    spec: changelog.spec.Spec,
) -> list[cd.Release]:
    '''
    returns one release per tag, in the order of `sorted_tags` (most recent first)

    Each release is compared against the next older tag in `sorted_tags`; the oldest one is
    compared against `base_rev`.
    '''
    releases = []
    issue_groups = spec.issue_groups()
    merge_groups = spec.merge_groups()

    for idx, tag in enumerate(sorted_tags):
        if idx + 1 < len(sorted_tags):
            base = sorted_tags[idx + 1].name
        else:
            base = base_rev

        issues = changelog.grouping.group_changes(
            changes=issue_map.get(tag.name, []),
            grouping=spec.issues.grouping,
            groups=issue_groups,
            catch_all_title=changelog.grouping.ISSUES_CATCH_ALL_TITLE,
        )
        merges = changelog.grouping.group_changes(
            changes=merge_map.get(tag.name, []),
            grouping=spec.merges.grouping,
            groups=merge_groups,
            catch_all_title=changelog.grouping.MERGES_CATCH_ALL_TITLE,
        )

        releases.append(cd.Release(
            tag_name=tag.name,
            tag_url=tag.web_url,
            tag_time=tag.time,
            release_url=release_url(spec.content.release_url, tag.name),
            compare_url=remote_repo.compare_url(base, tag.name),
            issue_groups=[cd.issue_group(title, selected) for title, selected in issues],
            merge_groups=[cd.merge_group(title, selected) for title, selected in merges],
        ))

        logger.debug(
            f'assembled release {tag.name}: {len(issue_map.get(tag.name, []))} issue(s), '
            f'{len(merge_map.get(tag.name, []))} merge(s)'
        )

    return releases
