# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

'''
HTTP session setup shared by the remote repositories
'''

import enum
import functools
import logging

import cachecontrol
import requests

from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)


class AdapterFlag(enum.Flag):
    RETRY = enum.auto()
    CACHE = enum.auto()


class LoggingRetry(Retry):
    '''
    retries idempotent requests on connection errors, rate limiting (429) and server errors,
    honouring `Retry-After`
    '''
    def __init__(self, **kwargs):
        kwargs.setdefault('total', 3)
        kwargs.setdefault('redirect', False)
        kwargs.setdefault('status_forcelist', (429, 500, 502, 503, 504))
        kwargs.setdefault('raise_on_status', False)
        kwargs.setdefault('backoff_factor', 1.0)

        super().__init__(**kwargs)

    def increment(self, method=None, url=None, response=None, error=None, **kwargs):
        retry = super().increment(method=method, url=url, response=response, error=error, **kwargs)

        status = response.status if response is not None else None
        logger.warning(
            f'{method} {url} failed ({status=} {error=}) - retry {len(retry.history)}/{self.total}'
        )
        return retry


def mount_default_adapter(
    session: requests.Session,
    flags: AdapterFlag=AdapterFlag.CACHE|AdapterFlag.RETRY,
    max_pool_size: int=32, # requests-library default
) -> requests.Session:
    '''
    mounts an adapter that retries failed requests (RETRY) and caches responses according to
    their cache headers (CACHE) for both http and https
    '''
    if AdapterFlag.CACHE in flags:
        adapter_constructor = cachecontrol.CacheControlAdapter
    else:
        adapter_constructor = HTTPAdapter

    if AdapterFlag.RETRY in flags:
        adapter_constructor = functools.partial(
            adapter_constructor,
            max_retries=LoggingRetry(),
        )

    adapter = adapter_constructor(pool_maxsize=max_pool_size)
    session.mount('http://', adapter)
    session.mount('https://', adapter)

    return session


def check_http_code(function):
    '''
    wraps a `requests` call (e.g. `session.get`) so that error responses are logged and raised

    @raises: `requests.HTTPError` if the response's status code indicates an error
    '''
    @functools.wraps(function)
    def http_checker(*args, **kwargs):
        resp = function(*args, **kwargs)
        if not resp.ok:
            url = kwargs.get('url', args[0] if args else None)
            logger.warning(f'{url} returned {resp.status_code}: {resp.content}')
        resp.raise_for_status()
        return resp
    return http_checker
