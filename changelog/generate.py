# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import logging

import changelog.ancestry
import changelog.attribution
import changelog.markdown
import changelog.release
import changelog.remote
import changelog.spec
import changelog.tags

logger = logging.getLogger(__name__)


class Generator:
    def __init__(
        self,
        spec: changelog.spec.Spec,
        remote_repo: changelog.remote.RemoteRepo | None=None,
        processor: changelog.markdown.MarkdownProcessor | None=None,
    ):
        '''
        :param remote_repo: created from `spec.repo` if not passed
        :param processor: created from `spec.general.file` if not passed
        '''
        self.spec = spec

        if not remote_repo:
            remote_repo = changelog.remote.remote_repo(
                platform=spec.repo.platform,
                path=spec.repo.path,
                access_token=spec.repo.access_token,
            )
        self.remote_repo = remote_repo

        if not processor:
            processor = changelog.markdown.MarkdownProcessor(path=spec.general.file)
        self.processor = processor

    def _sorted_tags(self):
        logger.info('sorting and filtering tags ...')

        tags = changelog.tags.sort_tags(self.remote_repo.fetch_tags())
        tags = changelog.tags.exclude_tags(tags, self.spec.tags.exclude)
        if self.spec.tags.exclude_regex:
            tags = changelog.tags.exclude_tags_regex(tags, self.spec.tags.exclude_regex)

        return tags

    def generate(self) -> str | None:
        '''
        updates the changelog document with releases for all new tags.

        returns the rendered text of the new releases, or None if the changelog is up to date
        '''
        chlog = self.processor.parse()

        all_tags = self._sorted_tags()
        new_tags = changelog.tags.resolve_tags(
            sorted_tags=all_tags,
            chlog=chlog,
            future_tag_factory=self.remote_repo.future_tag,
            from_tag=self.spec.tags.from_tag,
            to_tag=self.spec.tags.to_tag,
            future_tag=self.spec.tags.future_tag,
        )

        if not new_tags:
            logger.info(f'{self.processor.path} is up to date')
            return None

        since = chlog.last_release.tag_time if chlog.last_release else None
        issues, merges = self.remote_repo.fetch_issues_and_merges(since=since)
        issues, merges = changelog.attribution.filter_by_labels(issues, merges, self.spec)

        if self.spec.merges.branch:
            branch = self.remote_repo.fetch_branch(self.spec.merges.branch)
        else:
            branch = self.remote_repo.fetch_default_branch()

        commit_index = changelog.ancestry.index_commits(
            remote_repo=self.remote_repo,
            branch=branch,
            sorted_tags=new_tags,
        )

        issue_map = changelog.attribution.attribute_issues(issues, new_tags)
        merge_map = changelog.attribution.attribute_merges(merges, new_tags, commit_index)

        base_rev = changelog.release.base_revision(
            all_tags=all_tags,
            new_tags=new_tags,
            remote_repo=self.remote_repo,
        )

        chlog.new = changelog.release.assemble_releases(
            sorted_tags=new_tags,
            issue_map=issue_map,
            merge_map=merge_map,
            base_rev=base_rev,
            remote_repo=self.remote_repo,
            spec=self.spec,
        )

        content = self.processor.render(chlog)

        if self.spec.general.print:
            print(content)

        return content
