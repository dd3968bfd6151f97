"""Targeting primitives used when deciding which variation a user sees.

Bucketing users into variations happens elsewhere; this package answers the
questions asked before bucketing: is the variation forced by the URL, does
the request URL match, which of two versions is newer, and does a targeting
tree accept the user's attributes.

"""
from flagcore.lib.experiments.overrides import get_query_string_override
from flagcore.lib.experiments.version import compare_versions
from flagcore.lib.experiments.version import padded_version_string


__all__ = ["compare_versions", "get_query_string_override", "padded_version_string"]
