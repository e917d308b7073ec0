import logging
import math
from collections import namedtuple
from dataclasses import dataclass, field, replace

logger = logging.getLogger(__name__)

Point = namedtuple('Point', ['x', 'y', 'z'])

# Travel moves shorter than this (mm, X/Y) are not emitted
MIN_TRAVEL_DISTANCE = 0.05


@dataclass
class GCodeFile:
    name: str
    lines: list[str] = field(default_factory=list)
    total_time: float = 0.0  # seconds
    total_filament: float = 0.0  # mm

    @property
    def text(self) -> str:
        return "\n".join(self.lines) + "\n"


@dataclass(frozen=True)
class EmissionState:
    """Tool position with running filament (mm) and time (s) totals."""

    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    filament: float = 0.0
    elapsed: float = 0.0

    def distance_xy(self, point) -> float:
        return math.hypot(point[0] - self.position[0], point[1] - self.position[1])

    def move_z(self, z: float, feed_rate: float) -> "EmissionState":
        x, y, current_z = self.position
        return replace(
            self,
            position=(x, y, z),
            elapsed=self.elapsed + abs(z - current_z) / feed_rate * 60,
        )

    def travel(self, point, feed_rate: float) -> "EmissionState":
        return replace(
            self,
            position=(point[0], point[1], self.position[2]),
            elapsed=self.elapsed + self.distance_xy(point) / feed_rate * 60,
        )

    def extrude(self, point, feed_rate: float, extrusion_per_mm: float) -> "EmissionState":
        distance = self.distance_xy(point)
        return replace(
            self,
            position=(point[0], point[1], self.position[2]),
            filament=self.filament + distance * extrusion_per_mm,
            elapsed=self.elapsed + distance / feed_rate * 60,
        )


def format_number(value):
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def extrusion_per_mm(settings):
    """Filament length consumed per mm of path for a nozzle-wide, layer-high bead."""
    filament_area = math.pi * (settings.filament_diameter / 2) ** 2
    return (settings.nozzle_diameter * settings.layer_height) / filament_area


def generate_gcode_header(settings):
    temperature = format_number(settings.temperature)
    gcode = []
    gcode.append("; Generated by delta-slicer")
    gcode.append(f"M104 S{temperature} ; Set Temp")
    gcode.append("G28 ; Home all axes")
    gcode.append(f"M109 S{temperature} ; Wait for Temp")
    gcode.append("G90 ; Absolute positioning")
    gcode.append("G92 E0 ; Reset Extruder")
    return gcode


def generate_gcode_footer():
    gcode = []
    gcode.append("M104 S0 ; Turn off heater")
    gcode.append("G28 ; Home")
    gcode.append("M84 ; Disable motors")
    return gcode


def layer_to_gcode(number, layer, settings, state, per_mm):
    """
    Emit one layer's Z move and loops.

    Returns the G-code lines, the visualization points and the state after
    the last move.
    """
    travel_feed = format_number(settings.travel_speed)
    print_feed = format_number(settings.print_speed)
    z = layer.z

    gcode = [f"; --- Layer {number} Z={z:.2f} ---", f"G1 Z{z:.3f} F{travel_feed}"]
    points = []
    state = state.move_z(z, settings.travel_speed)

    for loop in layer.loops:
        if len(loop) < 2:
            continue

        start = loop[0]
        if state.distance_xy(start) > MIN_TRAVEL_DISTANCE:
            gcode.append(f"G0 X{start[0]:.3f} Y{start[1]:.3f} F{travel_feed}")
            points.append(Point(start[0], start[1], z))
            state = state.travel(start, settings.travel_speed)

        for p in loop[1:]:
            state = state.extrude(p, settings.print_speed, per_mm)
            gcode.append(f"G1 X{p[0]:.3f} Y{p[1]:.3f} E{state.filament:.5f} F{print_feed}")
            points.append(Point(p[0], p[1], z))

    return gcode, points, state


def generate_gcode(layers, settings, name="output.gcode"):
    """
    Turn sliced layers into a G-code file and the flat visualization path.

    Layers are numbered from 1 in the order given; empty layers emit nothing.
    """
    per_mm = extrusion_per_mm(settings)
    gcode = generate_gcode_header(settings)
    paths = []
    state = EmissionState()

    for number, layer in enumerate(layers, start=1):
        if not layer.loops:
            continue
        layer_lines, layer_points, state = layer_to_gcode(number, layer, settings, state, per_mm)
        gcode.extend(layer_lines)
        paths.extend(layer_points)

    gcode.extend(generate_gcode_footer())

    logger.info(
        "Generated %d G-code lines: %.1f s, %.2f mm filament",
        len(gcode), state.elapsed, state.filament,
    )
    gcode_file = GCodeFile(name=name, lines=gcode, total_time=state.elapsed, total_filament=state.filament)
    return gcode_file, paths
