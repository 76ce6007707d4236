"""State/store layer.

This package is the single owner of sessions, readings and subscriptions,
and of the pure policies that decide when to refetch, what counts as the
same subscription target and which way an index moved.
"""
