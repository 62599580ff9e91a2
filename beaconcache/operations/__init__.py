# beaconcache/operations/__init__.py
"""Operations behind the BeaconCache controller, grouped by concern."""

from .lifecycle import (
    close_op,
    self_heal_loop_op,
    self_heal_once_op,
    start_op,
)
from .lookup import (
    fetch_by_author_op,
    find_related_op,
    get_by_author_op,
    get_by_id_op,
    get_by_type_op,
    get_most_recent_op,
)
from .mutate import (
    add_beacon_op,
    clear_op,
    insert_op,
    invalidate_author_op,
    invalidate_op,
)
from .stats import stats_op

__all__ = [
    "add_beacon_op",
    "clear_op",
    "close_op",
    "fetch_by_author_op",
    "find_related_op",
    "get_by_author_op",
    "get_by_id_op",
    "get_by_type_op",
    "get_most_recent_op",
    "insert_op",
    "invalidate_author_op",
    "invalidate_op",
    "self_heal_loop_op",
    "self_heal_once_op",
    "start_op",
    "stats_op",
]
