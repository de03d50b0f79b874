from typing import List, Sequence, TypeVar

T = TypeVar("T")


def chunks(items: Sequence[T], batch_size: int) -> List[List[T]]:
    """Split items into contiguous groups of at most batch_size, keeping order.

    The last group may be shorter. Used both for the nominal upsert batches and
    for splitting a batch that the store rejected as too large.
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    return [list(items[i:i + batch_size]) for i in range(0, len(items), batch_size)]
