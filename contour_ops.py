import logging
import math
from collections import namedtuple

import numpy as np
from pykdtree.kdtree import KDTree

logger = logging.getLogger(__name__)

Segment = namedtuple('Segment', ['start', 'end'])

# mm, X/Y only
EPSILON = 0.05
CLOSURE_TOLERANCE = 2 * EPSILON

_INITIAL_NEIGHBOURS = 8


def distance_2d(p1, p2):
    return math.hypot(p1[0] - p2[0], p1[1] - p2[1])


def is_finite_segment(segment):
    return all(math.isfinite(c) for point in segment for c in point)


class SegmentIndex:
    """
    Pool of segments with a k-d tree over their X/Y endpoints.

    Endpoint 2*i is the start of segment i and 2*i+1 its end. Segments are
    consumed rather than removed, so indices stay stable and the lowest
    remaining index is always the first one a linear scan of the pool
    would reach.
    """

    def __init__(self, segments):
        self.segments = list(segments)
        self._consumed = np.zeros(len(self.segments), dtype=bool)
        self._remaining = len(self.segments)
        self._cursor = len(self.segments) - 1

        self._points = np.ascontiguousarray(
            [(p[0], p[1]) for segment in self.segments for p in segment],
            dtype=np.float64,
        ).reshape(-1, 2)
        self._tree = KDTree(self._points) if len(self._points) else None

    def __len__(self):
        return self._remaining

    def _consume(self, index):
        self._consumed[index] = True
        self._remaining -= 1
        return self.segments[index]

    def pop_last(self):
        """Remove and return the most recently added remaining segment."""
        if not self._remaining:
            raise IndexError("pop from empty segment index")
        while self._consumed[self._cursor]:
            self._cursor -= 1
        return self._consume(self._cursor)

    def _nearby_endpoints(self, point):
        """Endpoint indices within CLOSURE_TOLERANCE of point, as seen by the tree."""
        n_points = len(self._points)
        query = np.array([(point[0], point[1])], dtype=np.float64)
        k = min(_INITIAL_NEIGHBOURS, n_points)
        while True:
            distances, indices = self._tree.query(query, k=k, distance_upper_bound=CLOSURE_TOLERANCE)
            distances = distances.reshape(-1)
            indices = indices.reshape(-1)
            found = indices[(indices < n_points) & (distances <= CLOSURE_TOLERANCE)]
            # A full result may hide further neighbours inside the bound
            if len(found) < k or k == n_points:
                return found
            k = min(k * 2, n_points)

    def take_match(self, point):
        """
        Remove and return the first remaining segment (in pool order) with an
        endpoint strictly within EPSILON of point in X/Y, or None.
        """
        if not self._remaining:
            return None

        best = None
        for endpoint in self._nearby_endpoints(point):
            index = int(endpoint) // 2
            if self._consumed[index] or (best is not None and index >= best):
                continue
            if distance_2d(self._points[endpoint], point) < EPSILON:
                best = index

        if best is None:
            return None
        return self._consume(best)


def chain_segments(segments):
    """
    Stitch an unordered collection of one layer's segments into loops.

    Each loop is seeded with the most recently added remaining segment and
    grown from its tail by absorbing any segment with an endpoint within
    EPSILON, appending that segment's other endpoint. A loop whose ends
    finish within CLOSURE_TOLERANCE is snapped shut. Loops of two points or
    fewer are dropped.

    When several segments match a tail, the first in pool order wins, so
    touching or self-intersecting contours are stitched deterministically
    but not necessarily into the topologically intended loops.
    """
    finite = [segment for segment in segments if is_finite_segment(segment)]
    if len(finite) != len(segments):
        logger.warning("Dropped %d segments with non-finite coordinates", len(segments) - len(finite))

    pool = SegmentIndex(finite)
    loops = []
    while len(pool):
        seed = pool.pop_last()
        loop = [seed.start, seed.end]

        while True:
            tail = loop[-1]
            segment = pool.take_match(tail)
            if segment is None:
                break
            if distance_2d(segment.start, tail) < EPSILON:
                loop.append(segment.end)
            else:
                loop.append(segment.start)

        if distance_2d(loop[0], loop[-1]) < CLOSURE_TOLERANCE:
            loop[-1] = loop[0]

        if len(loop) > 2:
            loops.append(loop)
        else:
            logger.debug("Discarded open fragment starting at (%.3f, %.3f)", loop[0][0], loop[0][1])

    return loops
