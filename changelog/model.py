# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

'''
read-only snapshots of remote repository state, as fetched by `changelog.remote` variants
'''

import collections.abc
import dataclasses
import datetime
import typing


@dataclasses.dataclass(frozen=True)
class User:
    name: str = ''
    email: str = ''
    username: str = ''
    web_url: str = ''


@dataclasses.dataclass(frozen=True)
class Commit:
    hash: str
    time: datetime.datetime

    def __str__(self) -> str:
        return self.hash


@dataclasses.dataclass(frozen=True)
class Branch:
    name: str
    commit: Commit


@dataclasses.dataclass(frozen=True)
class Tag:
    '''
    a named, timestamped pointer to a commit

    commit: None for a future tag (a release that does not exist yet)
    '''
    name: str
    time: datetime.datetime
    commit: Commit | None = None
    web_url: str = ''

    @property
    def is_future(self) -> bool:
        return self.commit is None

    def before(self, other: typing.Self) -> bool:
        return self.time < other.time

    def after(self, other: typing.Self) -> bool:
        return self.time > other.time

    def __str__(self) -> str:
        if self.commit:
            return f'{self.commit.hash} {self.name}'
        return self.name


def tag_names(tags: collections.abc.Iterable[Tag]) -> list[str]:
    return [tag.name for tag in tags]


def find_tag(tags: collections.abc.Iterable[Tag], name: str) -> Tag | None:
    for tag in tags:
        if tag.name == name:
            return tag
    return None


def any_label(labels: collections.abc.Iterable[str], names: collections.abc.Iterable[str]) -> bool:
    names = set(names)
    return any(label in names for label in labels)


@dataclasses.dataclass(frozen=True)
class Change:
    '''
    common shape of closed issues and merged pull/merge requests

    time: closing time for issues, merge time for merges
    '''
    number: int
    title: str
    time: datetime.datetime
    labels: tuple[str, ...] = ()
    milestone: str | None = None
    author: User = dataclasses.field(default_factory=User)
    web_url: str = ''

    def has_any_label(self, *names: str) -> bool:
        return any_label(self.labels, names)


@dataclasses.dataclass(frozen=True)
class Issue(Change):
    closer: User = dataclasses.field(default_factory=User)


@dataclasses.dataclass(frozen=True)
class Merge(Change):
    merger: User = dataclasses.field(default_factory=User)
    commit: Commit | None = None


def sort_changes(changes: collections.abc.Iterable[Change]) -> list[Change]:
    '''
    returns changes ordered from the most recent to the least recent
    '''
    return sorted(changes, key=lambda change: change.time, reverse=True)


@dataclasses.dataclass
class Revisions:
    '''
    branch: name of the release branch, if the commit is reachable from its head
    tags: names of all tags whose history contains the commit, newest tag first
    '''
    branch: str | None = None
    tags: list[str] = dataclasses.field(default_factory=list)

    @property
    def earliest_tag(self) -> str | None:
        if not self.tags:
            return None
        return self.tags[-1]


# commit-hash -> Revisions; see changelog.ancestry.index_commits
CommitIndex = collections.abc.Mapping[str, Revisions]

