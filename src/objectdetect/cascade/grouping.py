"""Grouping of overlapping detection rectangles."""

from typing import List, Sequence, Tuple, Union

from .types import Detection

Rect = Union[Detection, Sequence[float]]


def _as_rect(rect: Rect) -> Tuple[float, float, float, float]:
    if isinstance(rect, Detection):
        return rect.bbox
    x, y, w, h = rect[:4]
    return (x, y, w, h)


def _inside(inner: Detection, outer: Detection, confluence: float) -> bool:
    """Whether ``inner`` lies within ``outer`` grown by a fraction of its size."""
    dx = outer.width * confluence
    dy = outer.height * confluence
    return (
        inner.x >= outer.x - dx
        and inner.y >= outer.y - dy
        and inner.x + inner.width <= outer.x + outer.width + dx
        and inner.y + inner.height <= outer.y + outer.height + dy
    )


def group_rectangles(
    rects: Sequence[Rect],
    min_neighbors: int,
    confluence: float = 0.25,
) -> List[Detection]:
    """Group rectangles by proximity and return one mean rectangle per group.

    Rectangles are labelled greedily in input order: each one joins the
    class of the first earlier rectangle whose four edges all lie within
    ``confluence * (min(w1, w2) + min(h1, h2))`` of its own, otherwise it
    starts a new class. This is deliberately not a transitive clustering,
    results depend on input order.

    Classes with fewer than ``min_neighbors`` members are discarded, then
    groups lying inside another group (up to ``confluence`` times the outer
    group's size) are removed. When two groups contain each other the one
    with more neighbors is kept, or the earlier one on a tie.

    Args:
        rects: Detections or (x, y, w, h) sequences
        min_neighbors: Minimum members for a group to be returned
        confluence: Neighbor distance threshold factor

    Returns:
        Mean rectangles with ``neighbors`` set to the member count
    """
    boxes = [_as_rect(r) for r in rects]

    # Partition into similarity classes
    labels: List[int] = []
    num_classes = 0
    for i, (x1, y1, w1, h1) in enumerate(boxes):
        for j in range(i):
            x2, y2, w2, h2 = boxes[j]
            delta = confluence * (min(w1, w2) + min(h1, h2))
            if (
                abs(x1 - x2) <= delta
                and abs(y1 - y2) <= delta
                and abs(x1 + w1 - x2 - w2) <= delta
                and abs(y1 + h1 - y2 - h2) <= delta
            ):
                labels.append(labels[j])
                break
        else:
            labels.append(num_classes)
            num_classes += 1

    # Average rectangle for each class
    sums = [[0.0, 0.0, 0.0, 0.0, 0] for _ in range(num_classes)]
    for label, (x, y, w, h) in zip(labels, boxes):
        acc = sums[label]
        acc[0] += x
        acc[1] += y
        acc[2] += w
        acc[3] += h
        acc[4] += 1

    groups = [
        Detection(x / n, y / n, w / n, h / n, neighbors=n)
        for x, y, w, h, n in sums
        if n >= min_neighbors
    ]

    # Filter out small rectangles inside larger ones
    def survives(i: int, group: Detection) -> bool:
        for j, other in enumerate(groups):
            if j == i or not _inside(group, other, confluence):
                continue
            if _inside(other, group, confluence):
                keeps = group.neighbors > other.neighbors or (
                    group.neighbors == other.neighbors and i < j
                )
                if keeps:
                    continue
            return False
        return True

    return [g for i, g in enumerate(groups) if survives(i, g)]
