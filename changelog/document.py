# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import dataclasses
import datetime

import changelog.model as cm


DEFAULT_TITLE = 'Changelog'


@dataclasses.dataclass
class UserRef:
    name: str = ''
    username: str = ''
    url: str = ''


def user_ref(user: cm.User) -> UserRef:
    return UserRef(
        name=user.name,
        username=user.username,
        url=user.web_url,
    )


@dataclasses.dataclass
class IssueEntry:
    number: int
    title: str
    url: str
    opened_by: UserRef
    closed_by: UserRef


@dataclasses.dataclass
class MergeEntry:
    number: int
    title: str
    url: str
    opened_by: UserRef
    merged_by: UserRef


@dataclasses.dataclass
class IssueGroup:
    title: str
    issues: list[IssueEntry] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class MergeGroup:
    title: str
    merges: list[MergeEntry] = dataclasses.field(default_factory=list)


def issue_group(title: str, issues: list[cm.Issue]) -> IssueGroup:
    return IssueGroup(
        title=title,
        issues=[
            IssueEntry(
                number=issue.number,
                title=issue.title,
                url=issue.web_url,
                opened_by=user_ref(issue.author),
                closed_by=user_ref(issue.closer),
            ) for issue in issues
        ],
    )


def merge_group(title: str, merges: list[cm.Merge]) -> MergeGroup:
    return MergeGroup(
        title=title,
        merges=[
            MergeEntry(
                number=merge.number,
                title=merge.title,
                url=merge.web_url,
                opened_by=user_ref(merge.author),
                merged_by=user_ref(merge.merger),
            ) for merge in merges
        ],
    )


@dataclasses.dataclass
class Release:
    '''
    a single release (section) of a changelog

    for releases read from an existing changelog, only tag_name, tag_url and tag_time are
    known
    '''
    tag_name: str
    tag_url: str = ''
    tag_time: datetime.datetime | None = None
    release_url: str = ''
    compare_url: str = ''
    issue_groups: list[IssueGroup] = dataclasses.field(default_factory=list)
    merge_groups: list[MergeGroup] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class Changelog:
    '''
    new: releases generated by the current run, newest first
    existing: releases already recorded in the changelog document, newest first
    '''
    title: str = DEFAULT_TITLE
    new: list[Release] = dataclasses.field(default_factory=list)
    existing: list[Release] = dataclasses.field(default_factory=list)

    @property
    def last_release(self) -> Release | None:
        if not self.existing:
            return None
        return self.existing[0]

    def contains(self, tag_name: str) -> bool:
        return any(release.tag_name == tag_name for release in self.existing)
