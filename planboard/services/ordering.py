"""
Order normalization and the pure reorder engine.

Every sibling group (stages, layers in a stage, projects in a layer, columns
on a board, tasks in a column) keeps an integer ``order`` field. These
functions compute new sibling sequences after a move and renumber them. They
never touch storage; the reorder service persists what they return.
"""

from typing import Any, Dict, Iterable, List, Sequence, TypeVar

from pydantic import BaseModel

from planboard.models import CrossMoveResult

OrderedT = TypeVar("OrderedT", bound=BaseModel)


def sort_by_order(items: Iterable[OrderedT]) -> List[OrderedT]:
    """
    Sort siblings ascending by ``order``.

    The sort is stable, so siblings sharing an order value keep their
    storage order.
    """
    return sorted(items, key=lambda item: item.order)


def normalize(sequence: Sequence[OrderedT]) -> List[OrderedT]:
    """
    Renumber siblings so each ``order`` equals its position.

    Args:
        sequence: Siblings already arranged in their final order

    Returns:
        Entities with order 0..N-1. Entities already at their index are
        returned as-is and the rest are copied; the input is not modified
    """
    return [
        item if item.order == index else item.model_copy(update={"order": index})
        for index, item in enumerate(sequence)
    ]


def changed_orders(before: Sequence[OrderedT], after: Sequence[OrderedT]) -> List[OrderedT]:
    """
    Entities of ``after`` whose order differs from the same id in ``before``.

    Entities absent from ``before`` are always included.
    """
    previous = {item.id: item.order for item in before}
    return [item for item in after if previous.get(item.id) != item.order]


def reorder_within_container(
    items: Sequence[OrderedT],
    source_index: int,
    dest_index: int
) -> List[OrderedT]:
    """
    Move one entity inside a single sibling list.

    The entity at ``source_index`` is removed and re-inserted at
    ``dest_index`` of the list that remains after removal, then the result
    is normalized. Moving an entity onto its own index returns the siblings
    unchanged.

    Args:
        items: Siblings sorted by order
        source_index: Current index of the moved entity
        dest_index: Target index

    Returns:
        The reordered, normalized siblings

    Raises:
        ValueError: If either index is out of range
    """
    _check_index("source_index", source_index, len(items))
    _check_index("dest_index", dest_index, len(items))

    if source_index == dest_index:
        return list(items)

    reordered = list(items)
    moved = reordered.pop(source_index)
    reordered.insert(dest_index, moved)
    return normalize(reordered)


def reorder_across_containers(
    source_items: Sequence[OrderedT],
    dest_items: Sequence[OrderedT],
    source_index: int,
    dest_index: int,
    container_update: Dict[str, Any]
) -> CrossMoveResult:
    """
    Move one entity from one sibling list into another.

    The moved entity gets ``container_update`` applied (its new stage/layer
    or column), is inserted at ``dest_index`` of the destination list, and
    both lists are normalized independently. Callers must route moves whose
    source and destination keys are equal to reorder_within_container.

    Args:
        source_items: Source siblings sorted by order
        dest_items: Destination siblings sorted by order
        source_index: Index of the moved entity in the source list
        dest_index: Insert position in the destination list (may equal its length)
        container_update: Field values identifying the destination container

    Returns:
        CrossMoveResult with the normalized source and destination lists

    Raises:
        ValueError: If an index is out of range
    """
    _check_index("source_index", source_index, len(source_items))
    _check_index("dest_index", dest_index, len(dest_items) + 1)

    source = list(source_items)
    moved = source.pop(source_index)
    moved = moved.model_copy(update=container_update)

    dest = list(dest_items)
    dest.insert(dest_index, moved)

    return CrossMoveResult(source=normalize(source), dest=normalize(dest))


def _check_index(name: str, index: int, upper: int) -> None:
    if not 0 <= index < upper:
        raise ValueError(f"{name} {index} out of range (0..{upper - 1})")
