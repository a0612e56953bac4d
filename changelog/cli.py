#! /usr/bin/env python3
# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import argparse
import logging
import os
import sys

import changelog.generate
import changelog.gitrepo
import changelog.log
import changelog.spec
import changelog.util

logger = logging.getLogger(__name__)

own_dir = os.path.abspath(os.path.dirname(__file__))

# label groups configurable per collection, see changelog.spec.Changes
label_groups = (
    'summary',
    'removed',
    'breaking',
    'deprecated',
    'feature',
    'enhancement',
    'bug',
    'security',
)


def version() -> str:
    with open(os.path.join(own_dir, 'VERSION')) as f:
        return f.read().strip()


def parse_args(argv=None) -> argparse.Namespace:
    ''' Parses CLI for the changelog generator '''
    parser = argparse.ArgumentParser(
        prog='changelog',
        description='Generate (and update) a changelog from tags, issues and merged changes',
    )
    parser.add_argument('--version', action='version', version=version())

    general = parser.add_argument_group('general')
    general.add_argument('--access-token', help='access token for the remote repository')
    general.add_argument('--file', '-f', help='changelog file (default: CHANGELOG.md)')
    general.add_argument(
        '--print', '-p',
        action='store_true',
        default=None,
        help='print the generated changelog to stdout',
    )
    general.add_argument(
        '--verbose', '-v',
        action='store_true',
        default=None,
        help='show debugging output',
    )

    tags = parser.add_argument_group('tags')
    tags.add_argument('--from-tag', help='changelog from this tag on (inclusive)')
    tags.add_argument('--to-tag', help='changelog up to this tag (inclusive)')
    tags.add_argument('--future-tag', help='name of an upcoming release for unreleased changes')
    tags.add_argument('--exclude-tags', help='comma-separated tag names to exclude')
    tags.add_argument('--exclude-tags-regex', help='exclude tags matching this regex')

    selections = [str(s) for s in changelog.spec.Selection]
    groupings = [str(g) for g in changelog.spec.Grouping]

    issues = parser.add_argument_group('issues')
    issues.add_argument('--issues-selection', choices=selections)
    issues.add_argument('--issues-include-labels', help='comma-separated labels')
    issues.add_argument('--issues-exclude-labels', help='comma-separated labels')
    issues.add_argument('--issues-grouping', choices=groupings)
    for name in label_groups:
        issues.add_argument(f'--issues-{name}-labels', help='comma-separated labels')

    merges = parser.add_argument_group('merges')
    merges.add_argument('--merges-selection', choices=selections)
    merges.add_argument('--merges-branch', help='release branch (default: default branch)')
    merges.add_argument('--merges-include-labels', help='comma-separated labels')
    merges.add_argument('--merges-exclude-labels', help='comma-separated labels')
    merges.add_argument('--merges-grouping', choices=groupings)
    for name in label_groups:
        merges.add_argument(f'--merges-{name}-labels', help='comma-separated labels')

    content = parser.add_argument_group('content')
    content.add_argument('--release-url', help='release url; `{tag}` is replaced by tag name')

    return parser.parse_args(argv)


def spec_overrides(parsed: argparse.Namespace) -> dict:
    '''
    returns spec overrides from command line arguments (None for absent arguments)
    '''
    split_csv = changelog.util.split_csv

    return {
        'repo': {
            'access_token': parsed.access_token,
        },
        'general': {
            'file': parsed.file,
            'print': parsed.print,
            'verbose': parsed.verbose,
        },
        'tags': {
            'from_tag': parsed.from_tag,
            'to_tag': parsed.to_tag,
            'future_tag': parsed.future_tag,
            'exclude': split_csv(parsed.exclude_tags),
            'exclude_regex': parsed.exclude_tags_regex,
        },
        'issues': {
            'selection': parsed.issues_selection,
            'include_labels': split_csv(parsed.issues_include_labels),
            'exclude_labels': split_csv(parsed.issues_exclude_labels),
            'grouping': parsed.issues_grouping,
            **{
                f'{name}_labels': split_csv(getattr(parsed, f'issues_{name}_labels'))
                for name in label_groups
            },
        },
        'merges': {
            'selection': parsed.merges_selection,
            'branch': parsed.merges_branch,
            'include_labels': split_csv(parsed.merges_include_labels),
            'exclude_labels': split_csv(parsed.merges_exclude_labels),
            'grouping': parsed.merges_grouping,
            **{
                f'{name}_labels': split_csv(getattr(parsed, f'merges_{name}_labels'))
                for name in label_groups
            },
        },
        'content': {
            'release_url': parsed.release_url,
        },
    }


def log_level(spec: changelog.spec.Spec) -> int:
    if spec.general.verbose:
        return logging.DEBUG
    if spec.general.print:
        # keep stdout free for the changelog
        return logging.WARNING
    return logging.INFO


def main(argv=None) -> int:
    parsed = parse_args(argv)
    changelog.log.configure_default_logging(level=logging.INFO)

    try:
        domain, path = changelog.gitrepo.GitRepo('.').remote_info()

        spec = changelog.spec.default_spec(platform=domain, path=path)
        spec = changelog.spec.spec_from_file(spec)
        spec = changelog.spec.merge_spec(spec, spec_overrides(parsed))

        changelog.log.configure_default_logging(level=log_level(spec))
        logger.debug(f'{spec=}')

        generator = changelog.generate.Generator(spec=spec)
        generator.generate()
    except Exception as e:
        logger.error(f'{e}')
        logger.debug('', exc_info=True)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
