# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

'''
attributes closed issues and merged changes to the earliest release that contains them

issues are attributed by time (the earliest tag released at or after the issue was closed),
merges by commit ancestry (the earliest tag whose history contains the merge commit).
'''

import collections.abc
import logging

import changelog.model as cm
import changelog.spec

logger = logging.getLogger(__name__)


def _select(
    changes: collections.abc.Iterable[cm.Change],
    spec: changelog.spec.Changes,
) -> list[cm.Change]:
    Selection = changelog.spec.Selection
    include = spec.include_labels
    exclude = spec.exclude_labels

    if spec.selection == Selection.NONE:
        return []

    if spec.selection == Selection.ALL:
        # unlabeled changes are always selected
        return [
            change for change in changes
            if not change.labels or (
                (not include or change.has_any_label(*include))
                and (not exclude or not change.has_any_label(*exclude))
            )
        ]

    if spec.selection == Selection.LABELED:
        return [
            change for change in changes
            if change.labels
            and (not include or change.has_any_label(*include))
            and (not exclude or not change.has_any_label(*exclude))
        ]

    raise ValueError(f'unsupported selection: {spec.selection}')


def filter_by_labels(
    issues: collections.abc.Iterable[cm.Issue],
    merges: collections.abc.Iterable[cm.Merge],
    spec: changelog.spec.Spec,
) -> tuple[list[cm.Issue], list[cm.Merge]]:
    issues = _select(issues, spec.issues)
    merges = _select(merges, spec.merges)

    logger.debug(f'selected {len(issues)} issue(s) and {len(merges)} merge(s)')

    return issues, merges


def attribute_issues(
    issues: collections.abc.Iterable[cm.Issue],
    sorted_tags: collections.abc.Sequence[cm.Tag],
) -> dict[str, list[cm.Issue]]:
    '''
    returns a mapping of tag-name to issues. Each issue is attributed to the earliest tag
    released at or after the issue's closing time. Issues closed after the most recent tag
    are unreleased and hence omitted.

    :param sorted_tags: tags ordered from the most recent to the least recent
    '''
    attributed: dict[str, list[cm.Issue]] = {}

    for issue in issues:
        tag = None
        for candidate in sorted_tags:
            if candidate.time >= issue.time:
                tag = candidate # keep going: older tags come last

        if not tag:
            logger.debug(f'issue #{issue.number} is unreleased')
            continue

        attributed.setdefault(tag.name, []).append(issue)

    return attributed


def attribute_merges(
    merges: collections.abc.Iterable[cm.Merge],
    sorted_tags: collections.abc.Sequence[cm.Tag],
    commit_index: cm.CommitIndex,
) -> dict[str, list[cm.Merge]]:
    '''
    returns a mapping of tag-name to merges. Each merge is attributed to the earliest tag
    whose history contains the merge commit, i.e. the last entry of the commit's
    `Revisions.tags` (see `changelog.ancestry.index_commits`).

    A merge whose commit is not yet contained in any tag is attributed to the future tag,
    if the most recent tag is one. Otherwise (and if the commit is not indexed at all, e.g.
    because it was merged into another branch), the merge is omitted.

    :param sorted_tags: tags ordered from the most recent to the least recent
    '''
    attributed: dict[str, list[cm.Merge]] = {}
    future_tag = sorted_tags[0] if sorted_tags and sorted_tags[0].is_future else None

    for merge in merges:
        if not merge.commit or not (revisions := commit_index.get(merge.commit.hash)):
            logger.debug(f'merge #{merge.number} is not reachable from any release')
            continue

        if tag_name := revisions.earliest_tag:
            attributed.setdefault(tag_name, []).append(merge)
        elif future_tag:
            attributed.setdefault(future_tag.name, []).append(merge)
        else:
            logger.debug(f'merge #{merge.number} is unreleased')

    return attributed
