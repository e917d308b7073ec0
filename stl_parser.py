import logging
import struct
from collections import namedtuple

logger = logging.getLogger(__name__)

Triangle = namedtuple('Triangle', ['normal', 'v1', 'v2', 'v3'])

HEADER_SIZE = 80
RECORD_SIZE = 50
# Hard cap on decoded facets, regardless of what the header declares
MAX_TRIANGLES = 25000


def parse_binary_stl(buffer):
    """
    Decode a binary STL buffer into a list of Triangles in file order.

    Reads at most MAX_TRIANGLES records. Record contents are not validated:
    a short buffer simply yields the whole records that are present.
    """
    buffer = memoryview(buffer)
    if len(buffer) < HEADER_SIZE + 4:
        logger.warning("STL buffer too short for header (%d bytes)", len(buffer))
        return []

    triangle_count = struct.unpack_from('<I', buffer, HEADER_SIZE)[0]
    limit = min(triangle_count, MAX_TRIANGLES)
    if triangle_count > MAX_TRIANGLES:
        logger.warning("STL declares %d triangles, reading the first %d", triangle_count, MAX_TRIANGLES)

    available = (len(buffer) - HEADER_SIZE - 4) // RECORD_SIZE
    if available < limit:
        logger.warning("STL truncated: %d of %d records present", available, limit)
        limit = available

    triangles = []
    offset = HEADER_SIZE + 4
    for _ in range(limit):
        normal = struct.unpack_from('<fff', buffer, offset)
        vertex1 = struct.unpack_from('<fff', buffer, offset + 12)
        vertex2 = struct.unpack_from('<fff', buffer, offset + 24)
        vertex3 = struct.unpack_from('<fff', buffer, offset + 36)
        # 2 trailing attribute bytes are skipped
        triangles.append(Triangle(normal, vertex1, vertex2, vertex3))
        offset += RECORD_SIZE

    logger.debug("Decoded %d triangles", len(triangles))
    return triangles


def read_binary_stl(filename):
    with open(filename, 'rb') as file:
        return parse_binary_stl(file.read())
