# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

'''
reads and updates changelog documents in markdown format
'''

import datetime
import logging
import os
import re
import threading

import mako.template

import changelog.document as cd

logger = logging.getLogger(__name__)

own_dir = os.path.abspath(os.path.dirname(__file__))
templates_dir = os.path.join(own_dir, 'templates')

h1_regex = re.compile(r'^# (.+)$')
h2_regex = re.compile(r'^## \[([^\]]+)\]\(([^)]+)\) \((\d{4}-\d{2}-\d{2})\)$')

# workaround bug in mako: sequentialise invocations of mako.template.Template
# see: https://github.com/sqlalchemy/mako/issues/378
template_lock = threading.Lock()


def _render_template(name: str, **kwargs) -> str:
    with template_lock:
        template = mako.template.Template(filename=os.path.join(templates_dir, name))
        return template.render(**kwargs)


class MarkdownProcessor:
    def __init__(self, path: str):
        self.path = os.path.normpath(path)
        self.content = ''

    def parse(self) -> cd.Changelog:
        '''
        parses the changelog document. If it does not exist yet, an empty changelog is returned
        (and created upon `render`).
        '''
        if not os.path.isfile(self.path):
            logger.warning(f'{self.path} not found - a new changelog will be created')
            chlog = cd.Changelog()
            self.content = _render_template('header.mako', title=chlog.title)
            return chlog

        logger.debug(f'parsing {self.path} ...')

        chlog = cd.Changelog()
        with open(self.path) as f:
            self.content = f.read()

        for line in self.content.splitlines():
            if match := h1_regex.match(line):
                chlog.title = match.group(1)
            elif match := h2_regex.match(line):
                tag_time = datetime.datetime.strptime(match.group(3), '%Y-%m-%d').replace(
                    tzinfo=datetime.timezone.utc,
                )
                chlog.existing.append(cd.Release(
                    tag_name=match.group(1),
                    tag_url=match.group(2),
                    tag_time=tag_time,
                ))

        logger.info(f'parsed {self.path}: {len(chlog.existing)} existing release(s)')

        return chlog

    def render(self, chlog: cd.Changelog) -> str:
        '''
        renders the changelog's new releases and inserts them before the existing releases.
        The document is written once, after rendering succeeded.

        returns the rendered text for the new releases
        '''
        logger.debug(f'rendering {len(chlog.new)} new release(s) ...')

        new_content = _render_template('releases.mako', releases=chlog.new)

        if (idx := self.content.find('##')) < 0:
            content = self.content + new_content
        else:
            content = self.content[:idx] + new_content + self.content[idx:]

        with open(self.path, 'w') as f:
            f.write(content)
        self.content = content

        logger.info(f'updated changelog: {self.path}')

        return new_content
