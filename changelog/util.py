# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import copy
import functools


def not_none(value):
    if value is None:
        raise ValueError('must not be None')
    return value


def merge_dicts(base: dict, *other: dict) -> dict:
    '''
    merges copies of the given dict instances and returns the merge result.
    The arguments remain unmodified.

    Merging is done using the `deepmerge` module. In case of merge conflicts, values from
    `other` overwrite values from `base`. Lists are not merged, but replaced.
    '''
    not_none(base)

    from deepmerge import Merger

    merger = Merger([(dict, ['merge'])], ['override'], ['override'])

    return functools.reduce(
        lambda b, o: merger.merge(b, copy.deepcopy(o)),
        [base, *other],
        {},
    )


def normalise_dict_keys(
    dic: dict,
    recursive: bool = False,
) -> dict:
    return {
        k.replace('-', '_').replace(' ', '_'):
        normalise_dict_keys(v, recursive=recursive) if recursive and isinstance(v, dict) else v
        for k, v in dic.items()
    }


def split_csv(value: str | None) -> list[str] | None:
    '''
    splits a comma-separated cli value into a list of stripped, non-empty entries; None is
    passed through to indicate absence
    '''
    if value is None:
        return None
    return [v.strip() for v in value.split(',') if v.strip()]
