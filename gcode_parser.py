"""
Read G-code text back into a toolpath.

Understands the subset the slicer emits plus the positioning modes common in
third-party files: G0/G1 moves with X, Y, Z, E and F words, G90/G91 and
M82/M83.
"""

import logging
import math
from collections import namedtuple
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

ToolpathPoint = namedtuple('ToolpathPoint', ['x', 'y', 'z', 'e', 'is_travel'])

DEFAULT_FEED_RATE = 3000.0  # mm/min


@dataclass
class GCodeParsed:
    points: list[ToolpathPoint] = field(default_factory=list)
    total_time: float = 0.0  # seconds
    total_filament: float = 0.0  # mm
    bounding_box: tuple = ((0.0, 0.0, 0.0), (0.0, 0.0, 0.0))


def _parse_word(word):
    try:
        return word[0], float(word[1:])
    except (IndexError, ValueError):
        return None, None


def parse_gcode(content):
    """Walk the moves in content, accumulating time, filament and bounds."""
    points = []
    x = y = z = e = 0.0
    feed_rate = DEFAULT_FEED_RATE
    total_time = 0.0
    total_filament = 0.0
    relative = False
    extruder_relative = False

    for line in content.splitlines():
        command = line.split(';', 1)[0].strip().upper()
        if not command:
            continue

        if command.startswith('G90'):
            relative = False
        elif command.startswith('G91'):
            relative = True
        elif command.startswith('M82'):
            extruder_relative = False
        elif command.startswith('M83'):
            extruder_relative = True

        if not (command.startswith('G0') or command.startswith('G1')):
            continue

        is_travel = command.startswith('G0')
        next_x, next_y, next_z, next_e = x, y, z, e
        has_move = False
        extruding = False

        for word in command.split()[1:]:
            letter, value = _parse_word(word)
            if letter is None or math.isnan(value):
                continue
            if letter == 'X':
                next_x = x + value if relative else value
                has_move = True
            elif letter == 'Y':
                next_y = y + value if relative else value
                has_move = True
            elif letter == 'Z':
                next_z = z + value if relative else value
                has_move = True
            elif letter == 'E':
                delta = value if extruder_relative else value - e
                if delta > 0:
                    extruding = True
                    total_filament += delta
                next_e = value
            elif letter == 'F':
                feed_rate = value

        if not has_move:
            continue

        distance = math.sqrt((next_x - x) ** 2 + (next_y - y) ** 2 + (next_z - z) ** 2)
        if distance > 0:
            total_time += distance / feed_rate * 60
            points.append(ToolpathPoint(next_x, next_y, next_z, next_e, is_travel or not extruding))
            x, y, z, e = next_x, next_y, next_z, next_e

    if points:
        bounds = (
            tuple(min(p[i] for p in points) for i in range(3)),
            tuple(max(p[i] for p in points) for i in range(3)),
        )
    else:
        bounds = ((0.0, 0.0, 0.0), (0.0, 0.0, 0.0))

    logger.debug("Parsed %d moves from G-code", len(points))
    return GCodeParsed(points, total_time, total_filament, bounds)
