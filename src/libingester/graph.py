"""Graph algorithms over asset ids.

The assembler keeps assets in an id-indexed table and their dependency
edges as ``{asset_id: [dependent ids]}``. Everything here works on those
plain structures so it can be tested without building assets.

Pruning runs two passes, not a fixed point: a failed asset takes
down its direct parents and the parents' other dependents, but a grandparent
is not re-examined. Such a grandparent survives while pointing at a pruned
asset, which ``find_dangling`` then reports.
"""

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence


@dataclass
class PruneResult:
    """Outcome of pruning a hatch run."""
    surviving: list[str]
    failed: set[str]
    failed_by_association: set[str] = field(default_factory=set)
    pruned_dependents: set[str] = field(default_factory=set)


def compute_top_level(
    asset_ids: Iterable[str],
    dependents: Mapping[str, Sequence[str]],
) -> set[str]:
    """IDs never listed as another asset's dependency.

    Evaluated over the full submission set, so an asset referenced by a
    parent that is later pruned is still not top-level.
    """
    top_level = set(asset_ids)
    for deps in dependents.values():
        top_level.difference_update(deps)
    return top_level


def prune_failures(
    asset_ids: Sequence[str],
    dependents: Mapping[str, Sequence[str]],
    failed_ids: Iterable[str],
) -> PruneResult:
    """Drop failed assets, their direct parents and the parents' dependents.

    Args:
        asset_ids: Every submitted asset id, in submission order
        dependents: Dependency edges per asset id
        failed_ids: IDs known to have failed after persistence settled

    Returns:
        PruneResult with the surviving ids in submission order
    """
    known_failed = set(failed_ids)
    associated = set()
    to_prune = set()

    # First pass: parents of failed assets fail with them
    for asset_id in asset_ids:
        if asset_id in known_failed:
            continue
        deps = dependents.get(asset_id, ())
        if any(dep in known_failed for dep in deps):
            associated.add(asset_id)
            to_prune.update(deps)

    failed = known_failed | associated

    # Second pass: siblings under a failed parent go too
    surviving = [
        asset_id for asset_id in asset_ids
        if asset_id not in failed and asset_id not in to_prune
    ]

    return PruneResult(
        surviving=surviving,
        failed=failed,
        failed_by_association=associated,
        pruned_dependents=to_prune - known_failed,
    )


def find_dangling(
    surviving: Iterable[str],
    dependents: Mapping[str, Sequence[str]],
) -> set[str]:
    """Dependency ids referenced by surviving assets that did not survive."""
    surviving = set(surviving)
    referenced = set()
    for asset_id in surviving:
        referenced.update(dependents.get(asset_id, ()))
    return referenced - surviving


def failure_rate(failed: int, total: int) -> float:
    if total == 0:
        return 0.0
    return failed / total
