# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

'''
partitions the changes attributed to a single release into named, ordered groups
'''

import collections.abc
import dataclasses
import typing

import changelog.model as cm

ISSUES_CATCH_ALL_TITLE = 'Closed Issues'
MERGES_CATCH_ALL_TITLE = 'Merged Changes'

C = typing.TypeVar('C', bound=cm.Change)


@dataclasses.dataclass(frozen=True)
class GroupSpec:
    '''
    a configured group: changes carrying any of `labels` are listed under `title`
    '''
    title: str
    labels: tuple[str, ...] = ()

    def matches(self, change: cm.Change) -> bool:
        return change.has_any_label(*self.labels)


def group_by_labels(
    changes: collections.abc.Sequence[C],
    groups: collections.abc.Iterable[GroupSpec],
    catch_all_title: str,
) -> list[tuple[str, list[C]]]:
    '''
    returns (title, changes)-pairs in the order of the given groups, followed by a catch-all
    group for all changes not matched by any group. Groups without matching changes are
    omitted.

    Each group selects from the complete list of changes. Thus, a change carrying labels of
    more than one group is listed in each of those groups. Only the catch-all group is
    exclusive.
    '''
    result = []
    leftover = list(changes)

    for group in groups:
        selected = [change for change in changes if group.matches(change)]
        leftover = [change for change in leftover if not group.matches(change)]

        if selected:
            result.append((group.title, selected))

    if leftover:
        result.append((catch_all_title, leftover))

    return result


def group_by_milestone(
    changes: collections.abc.Sequence[C],
    catch_all_title: str,
) -> list[tuple[str, list[C]]]:
    '''
    returns one group per milestone (in order of first appearance), followed by a catch-all
    group for changes without a milestone
    '''
    by_milestone: dict[str, list[C]] = {}
    leftover = []

    for change in changes:
        if change.milestone:
            by_milestone.setdefault(change.milestone, []).append(change)
        else:
            leftover.append(change)

    result = [
        (f'Milestone {milestone}', selected)
        for milestone, selected in by_milestone.items()
    ]
    if leftover:
        result.append((catch_all_title, leftover))

    return result


def group_changes(
    changes: collections.abc.Sequence[C],
    grouping: str,
    groups: collections.abc.Iterable[GroupSpec],
    catch_all_title: str,
) -> list[tuple[str, list[C]]]:
    '''
    grouping: one of `simple`, `label`, `milestone` (see changelog.spec.Grouping)
    '''
    if not changes:
        return []

    if grouping == 'label':
        return group_by_labels(
            changes=changes,
            groups=groups,
            catch_all_title=catch_all_title,
        )
    elif grouping == 'milestone':
        return group_by_milestone(
            changes=changes,
            catch_all_title=catch_all_title,
        )
    elif grouping == 'simple':
        return [(catch_all_title, list(changes))]
    else:
        raise ValueError(f'unsupported grouping: {grouping}')
