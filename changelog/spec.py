# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

'''
Specifications (configuration) for generating a changelog.

Specifications are assembled from (in increasing order of precedence):
- built-in defaults (`default_spec`)
- a spec file in the repository root (`changelog.yml` or `changelog.yaml`)
- command line flags (see `changelog.cli`)

Keys of earlier spec file versions without a counterpart (`general.base`, `format.group-by`)
are logged and ignored; `format.release-url` is read as `content.release-url`.
'''

import dataclasses
import enum
import logging
import os

import dacite
import yaml

import changelog.grouping
import changelog.util

logger = logging.getLogger(__name__)

SPEC_FILES = ('changelog.yml', 'changelog.yaml')
ACCESS_TOKEN_ENV_VAR = 'CHANGELOG_ACCESS_TOKEN'


class SpecError(ValueError):
    pass


class Platform(enum.StrEnum):
    GITHUB = 'github.com'
    GITLAB = 'gitlab.com'


class Selection(enum.StrEnum):
    '''
    NONE: do not select any changes
    ALL: select all changes (subject to include-/exclude-labels)
    LABELED: select only changes that carry at least one label
    '''
    NONE = 'none'
    ALL = 'all'
    LABELED = 'labeled'


class Grouping(enum.StrEnum):
    SIMPLE = 'simple'
    LABEL = 'label'
    MILESTONE = 'milestone'


@dataclasses.dataclass
class Repo:
    platform: Platform | None = None
    path: str = ''
    access_token: str = dataclasses.field(default='', repr=False)


@dataclasses.dataclass
class General:
    file: str = 'CHANGELOG.md'
    print: bool = False
    verbose: bool = False


@dataclasses.dataclass
class Tags:
    from_tag: str = ''
    to_tag: str = ''
    future_tag: str = ''
    exclude: list[str] = dataclasses.field(default_factory=list)
    exclude_regex: str = ''


@dataclasses.dataclass
class Changes:
    '''
    common specification for selecting and grouping closed issues or merged changes
    '''
    selection: Selection = Selection.ALL
    include_labels: list[str] = dataclasses.field(default_factory=list)
    exclude_labels: list[str] = dataclasses.field(default_factory=list)
    grouping: Grouping = Grouping.LABEL
    summary_labels: list[str] = dataclasses.field(default_factory=list)
    removed_labels: list[str] = dataclasses.field(default_factory=list)
    breaking_labels: list[str] = dataclasses.field(default_factory=list)
    deprecated_labels: list[str] = dataclasses.field(default_factory=list)
    feature_labels: list[str] = dataclasses.field(default_factory=list)
    enhancement_labels: list[str] = dataclasses.field(default_factory=list)
    bug_labels: list[str] = dataclasses.field(default_factory=list)
    security_labels: list[str] = dataclasses.field(default_factory=list)

    def groups(self) -> list[changelog.grouping.GroupSpec]:
        '''
        returns label groups in display order
        '''
        GroupSpec = changelog.grouping.GroupSpec
        return [
            GroupSpec(title='Release Summary', labels=tuple(self.summary_labels)),
            GroupSpec(title='Removed', labels=tuple(self.removed_labels)),
            GroupSpec(title='Breaking Changes', labels=tuple(self.breaking_labels)),
            GroupSpec(title='Deprecated', labels=tuple(self.deprecated_labels)),
            GroupSpec(title='New Features', labels=tuple(self.feature_labels)),
            GroupSpec(title='Enhancements', labels=tuple(self.enhancement_labels)),
            GroupSpec(title='Fixed Bugs', labels=tuple(self.bug_labels)),
            GroupSpec(title='Security Fixes', labels=tuple(self.security_labels)),
        ]


@dataclasses.dataclass
class Issues(Changes):
    pass


@dataclasses.dataclass
class Merges(Changes):
    branch: str = '' # empty: use the default branch


@dataclasses.dataclass
class Content:
    release_url: str = '' # may contain a `{tag}` placeholder


@dataclasses.dataclass
class Spec:
    repo: Repo = dataclasses.field(default_factory=Repo)
    general: General = dataclasses.field(default_factory=General)
    tags: Tags = dataclasses.field(default_factory=Tags)
    issues: Issues = dataclasses.field(default_factory=Issues)
    merges: Merges = dataclasses.field(default_factory=Merges)
    content: Content = dataclasses.field(default_factory=Content)

    def issue_groups(self) -> list[changelog.grouping.GroupSpec]:
        return self.issues.groups()

    def merge_groups(self) -> list[changelog.grouping.GroupSpec]:
        return self.merges.groups()


def default_spec(
    platform: Platform | str | None=None,
    path: str='',
) -> Spec:
    return Spec(
        repo=Repo(
            platform=Platform(platform) if platform else None,
            path=path,
            access_token=os.environ.get(ACCESS_TOKEN_ENV_VAR, ''),
        ),
        issues=Issues(
            selection=Selection.ALL,
            exclude_labels=['duplicate', 'invalid', 'question', 'wontfix'],
            grouping=Grouping.LABEL,
            summary_labels=['summary', 'release-summary'],
            removed_labels=['removed'],
            breaking_labels=['breaking'],
            deprecated_labels=['deprecated'],
            feature_labels=['feature'],
            enhancement_labels=['enhancement'],
            bug_labels=['bug'],
            security_labels=['security'],
        ),
        merges=Merges(
            selection=Selection.ALL,
            grouping=Grouping.SIMPLE,
        ),
    )


# spec-file keys that do not match attribute names
_tags_key_mapping = {
    'from': 'from_tag',
    'to': 'to_tag',
    'future': 'future_tag',
}


def _normalise_raw_spec(raw: dict) -> dict:
    raw = changelog.util.normalise_dict_keys(raw, recursive=True)

    if isinstance(tags := raw.get('tags'), dict):
        raw['tags'] = {
            _tags_key_mapping.get(k, k): v for k, v in tags.items()
        }

    # the remote repository is never read from spec files
    raw.pop('repo', None)

    # keys of earlier spec file versions
    if isinstance(general := raw.get('general'), dict) and 'base' in general:
        logger.warning('ignoring unsupported spec file key: general.base')
        general.pop('base')

    if isinstance(fmt := raw.pop('format', None), dict):
        if 'release_url' in fmt:
            raw.setdefault('content', {}).setdefault('release_url', fmt.pop('release_url'))
        for key in fmt:
            logger.warning(f'ignoring unsupported spec file key: format.{key}')

    return raw


def _to_spec(data: dict) -> Spec:
    try:
        return dacite.from_dict(
            data_class=Spec,
            data=data,
            config=dacite.Config(
                cast=[enum.Enum],
                strict=True,
            ),
        )
    # enum-casts raise ValueError
    except (dacite.DaciteError, ValueError) as e:
        raise SpecError(f'invalid changelog specification: {e}') from e


def merge_spec(spec: Spec, overrides: dict) -> Spec:
    '''
    returns a new spec with the given (nested, attribute-named) overrides applied. `None`
    values in overrides are ignored.
    '''
    def drop_none(d: dict) -> dict:
        return {
            k: drop_none(v) if isinstance(v, dict) else v
            for k, v in d.items()
            if v is not None
        }

    merged = changelog.util.merge_dicts(
        dataclasses.asdict(spec),
        drop_none(overrides),
    )
    return _to_spec(merged)


def spec_from_file(spec: Spec, repo_dir: str='.') -> Spec:
    '''
    updates the given spec from the first existing spec file. If no spec file exists, the
    given spec is returned unchanged.
    '''
    for fname in SPEC_FILES:
        path = os.path.join(repo_dir, fname)
        if not os.path.isfile(path):
            continue

        logger.debug(f'reading specification from {path}')
        with open(path) as f:
            try:
                raw = yaml.safe_load(f)
            except yaml.YAMLError as ye:
                raise SpecError(f'{path} is not valid YAML: {ye}') from ye

        if raw is None:
            return spec
        if not isinstance(raw, dict):
            raise SpecError(f'{path} must contain a mapping')

        return merge_spec(spec, _normalise_raw_spec(raw))

    return spec
