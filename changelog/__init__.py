'''
Changelog Generator

Aggregates a repository's tags, commits, closed issues and merged pull/merge requests into
a re-runnable changelog document.

Every run only considers tags that are not yet recorded in the changelog. Each closed issue
is attributed to the earliest release published at or after the time it was closed. Each
merged change is attributed to the earliest release whose history contains the commit that
landed it. Changes which are not contained in any release are dropped, unless a future tag
was requested, in which case merged changes that only live on the release branch are
collected under that (not yet existing) tag.

See `changelog.generate` for the overall flow, and `changelog.remote` for the contract
remote platforms (GitHub, GitLab) need to fulfil.
'''
