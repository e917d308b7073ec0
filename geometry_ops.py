import logging
import math
from collections import namedtuple

import numpy as np

from contour_ops import Segment, chain_segments

logger = logging.getLogger(__name__)

Layer = namedtuple('Layer', ['z', 'loops'])

# Lift of the first slicing plane above the model's lowest point, in mm
FIRST_LAYER_OFFSET = 0.2


def apply_transform(triangle, transform):
    """Scale then translate each vertex. The normal is carried through as-is."""
    scale = transform.scale
    offset = (transform.x, transform.y, transform.z)

    def transform_point(p):
        return tuple(c * scale + o for c, o in zip(p, offset))

    return triangle._replace(
        v1=transform_point(triangle.v1),
        v2=transform_point(triangle.v2),
        v3=transform_point(triangle.v3),
    )


def transform_triangles(triangles, transform):
    return [apply_transform(triangle, transform) for triangle in triangles]


def get_z_bounds(triangles):
    """
    Lowest and highest vertex Z across all triangles.

    Returns (inf, -inf) for an empty input; callers must check before
    stepping through layers.
    """
    min_z = float('inf')
    max_z = float('-inf')
    for triangle in triangles:
        min_z = min(min_z, triangle.v1[2], triangle.v2[2], triangle.v3[2])
        max_z = max(max_z, triangle.v1[2], triangle.v2[2], triangle.v3[2])
    return min_z, max_z


def bounding_box(triangles):
    min_x = min_y = min_z = float('inf')
    max_x = max_y = max_z = float('-inf')

    for triangle in triangles:
        for v in [triangle.v1, triangle.v2, triangle.v3]:
            x, y, z = v
            min_x = min(min_x, x)
            min_y = min(min_y, y)
            min_z = min(min_z, z)
            max_x = max(max_x, x)
            max_y = max(max_y, y)
            max_z = max(max_z, z)

    return (min_x, min_y, min_z), (max_x, max_y, max_z)


def surface_area(triangles):
    total_area = 0.0
    for triangle in triangles:
        v1, v2, v3 = np.array(triangle.v1), np.array(triangle.v2), np.array(triangle.v3)
        total_area += np.linalg.norm(np.cross(v2 - v1, v3 - v1)) / 2
    return float(total_area)


def get_triangle_data(triangle):
    min_z = min(triangle.v1[2], triangle.v2[2], triangle.v3[2])
    max_z = max(triangle.v1[2], triangle.v2[2], triangle.v3[2])
    return triangle, (min_z, max_z)


def generate_slices(min_z, max_z, layer_height):
    """
    Plane heights from min_z + FIRST_LAYER_OFFSET up to max_z inclusive.

    The top layer may stop short of max_z; no compensation is applied.
    """
    start = min_z + FIRST_LAYER_OFFSET
    if not (math.isfinite(start) and math.isfinite(max_z)) or start > max_z:
        return np.empty(0)
    count = math.floor((max_z - start) / layer_height) + 1
    return start + np.arange(count) * layer_height


def _intersect_edge(p1, p2, z):
    # p1 and p2 lie on opposite sides of the plane, so the divisor is non-zero
    # for finite input; non-finite vertices leak NaN/inf through unguarded.
    ratio = (z - p1[2]) / (p2[2] - p1[2])
    return (
        p1[0] + ratio * (p2[0] - p1[0]),
        p1[1] + ratio * (p2[1] - p1[1]),
        z,
    )


def triangle_plane_intersection(triangle, z):
    """
    Segment where the plane at height z cuts the triangle, or None.

    Vertices on the plane count as above it. The lone vertex on one side is
    joined to the other two and both edges are interpolated at z.
    """
    above = []
    below = []
    for vertex in (triangle.v1, triangle.v2, triangle.v3):
        if vertex[2] >= z:
            above.append(vertex)
        else:
            below.append(vertex)

    if not above or not below:
        return None

    if len(above) == 1:
        pivot, others = above[0], below
    else:
        pivot, others = below[0], above

    return Segment(_intersect_edge(pivot, others[0], z), _intersect_edge(pivot, others[1], z))


def _layer_segments(triangle_data, z):
    segments = []
    for triangle, (min_z, max_z) in triangle_data:
        # If z is outside the range, skip the intersection test
        if z < min_z or z > max_z:
            continue
        segment = triangle_plane_intersection(triangle, z)
        if segment is not None:
            segments.append(segment)
    return segments


def slice_layer(triangles, z):
    """Closed loops of the cross-section at height z."""
    triangle_data = [get_triangle_data(triangle) for triangle in triangles]
    return chain_segments(_layer_segments(triangle_data, z))


def generate_contours(triangles, layer_height):
    """
    Slice already transformed triangles bottom-up into Layers.

    Layers without any loop are kept so that layer numbering stays tied to
    plane height.
    """
    min_z, max_z = get_z_bounds(triangles)
    z_values = generate_slices(min_z, max_z, layer_height)
    triangle_data = [get_triangle_data(triangle) for triangle in triangles]

    layers = []
    for z in z_values:
        z = float(z)
        segments = _layer_segments(triangle_data, z)
        loops = chain_segments(segments) if segments else []
        logger.debug("Layer z=%.3f: %d segments, %d loops", z, len(segments), len(loops))
        layers.append(Layer(z, loops))

    logger.info("Sliced %d triangles into %d layers", len(triangles), len(layers))
    return layers
