# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

'''
determines the (ordered) set of tags a changelog run needs to add releases for

All functions operating on lists of tags expect and return tags ordered from the most recent
to the least recent tag.
'''

import collections.abc
import logging
import re

import changelog.document as cd
import changelog.model as cm

logger = logging.getLogger(__name__)


class TagRangeError(ValueError):
    pass


class FutureTagError(ValueError):
    pass


def sort_tags(tags: collections.abc.Iterable[cm.Tag]) -> list[cm.Tag]:
    return sorted(tags, key=lambda tag: tag.time, reverse=True)


def exclude_tags(
    tags: collections.abc.Iterable[cm.Tag],
    names: collections.abc.Iterable[str],
) -> list[cm.Tag]:
    names = set(names)
    return [tag for tag in tags if tag.name not in names]


def exclude_tags_regex(
    tags: collections.abc.Iterable[cm.Tag],
    regex: str | re.Pattern,
) -> list[cm.Tag]:
    if isinstance(regex, str):
        regex = re.compile(regex)
    return [tag for tag in tags if not regex.search(tag.name)]


def _format_names(tags: collections.abc.Iterable[cm.Tag]) -> str:
    return '[' + ', '.join(cm.tag_names(tags)) + ']'


def _index(tags: collections.abc.Sequence[cm.Tag], name: str) -> int:
    for idx, tag in enumerate(tags):
        if tag.name == name:
            return idx
    return -1


def resolve_tags(
    sorted_tags: collections.abc.Sequence[cm.Tag],
    chlog: cd.Changelog,
    future_tag_factory: collections.abc.Callable[[str], cm.Tag] | None=None,
    from_tag: str | None=None,
    to_tag: str | None=None,
    future_tag: str | None=None,
) -> list[cm.Tag]:
    '''
    returns the tags that need a new release in the changelog, most recent first. An empty
    list indicates that the changelog is up to date.

    :param sorted_tags: all known tags (sorted, and already filtered for excluded tags)
    :param chlog: the existing changelog; tags with a recorded release are not considered
    :param future_tag_factory: creates a placeholder tag for a release that does not exist
        yet; only called if `future_tag` is set
    :param from_tag: if set, tags before this tag are not considered
    :param to_tag: if set, tags after this tag are not considered
    :param future_tag: if set, a future tag with this name is prepended to the result

    :raises TagRangeError: if from_tag or to_tag is not one of the candidate tags
    :raises FutureTagError: if future_tag has the same name as a known tag
    '''
    logger.debug('resolving new tags ...')

    candidates = [tag for tag in sorted_tags if not chlog.contains(tag.name)]

    if from_tag:
        if (idx := _index(candidates, from_tag)) < 0:
            raise TagRangeError(f'from-tag can be one of {_format_names(candidates)}')
        candidates = candidates[:idx + 1]

    if to_tag:
        if (idx := _index(candidates, to_tag)) < 0:
            raise TagRangeError(f'to-tag can be one of {_format_names(candidates)}')
        candidates = candidates[idx:]

    if future_tag:
        if cm.find_tag(sorted_tags, future_tag):
            raise FutureTagError(f'future tag cannot be same as an existing tag: {future_tag}')
        if not future_tag_factory:
            raise ValueError('future_tag_factory must be passed if future_tag is set')
        candidates = [future_tag_factory(future_tag), *candidates]

    logger.info(f'new tags resolved: {", ".join(cm.tag_names(candidates)) or "(none)"}')

    return candidates
