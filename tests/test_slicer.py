"""End-to-end tests for the slicing pipeline and the command-line interface."""

import json

import pytest
from click.testing import CliRunner

from conftest import build_stl
from gcode_generator import generate_gcode_footer, generate_gcode_header
from gcode_parser import parse_gcode
from settings import ModelTransform, SlicerSettings
from Slicer import SliceResult, main, slice_mesh, slice_stl_buffer
from stl_parser import Triangle, parse_binary_stl


@pytest.mark.slicing
class TestSliceMesh:

    def test_cube(self, cube_triangles, identity_transform):
        result = slice_mesh(cube_triangles, identity_transform, SlicerSettings(layer_height=1.0))
        assert isinstance(result, SliceResult)
        assert len(result.layers) == 10
        assert result.gcode.total_filament > 0
        assert result.gcode.total_time > 0
        assert result.gcode.lines[:6] == generate_gcode_header(SlicerSettings())
        assert result.gcode.lines[-3:] == generate_gcode_footer()
        assert all(0.0 <= p.x <= 10.0 and 0.0 <= p.y <= 10.0 for p in result.paths)

    def test_transform_applied(self, cube_triangles):
        transform = ModelTransform(scale=0.5, x=100.0, z=-2.5)
        result = slice_mesh(cube_triangles, transform, SlicerSettings(layer_height=1.0))
        assert len(result.layers) == 5
        assert result.layers[0].z == pytest.approx(-2.3)
        assert all(100.0 <= p.x <= 105.0 for p in result.paths)

    def test_from_buffer(self, cube_stl, identity_transform, settings):
        from_buffer = slice_stl_buffer(cube_stl, identity_transform, settings)
        from_triangles = slice_mesh(parse_binary_stl(cube_stl), identity_transform, settings)
        assert from_buffer.gcode.lines == from_triangles.gcode.lines

    def test_deterministic(self, cube_stl, identity_transform, settings):
        first = slice_stl_buffer(cube_stl, identity_transform, settings)
        second = slice_stl_buffer(cube_stl, identity_transform, settings)
        assert first.gcode.text.encode() == second.gcode.text.encode()

    def test_model_too_thin_for_first_layer(self, identity_transform, settings):
        sliver = [Triangle((0.0, 0.0, 1.0), (0.0, 0.0, 0.0), (10.0, 0.0, 0.1), (0.0, 10.0, 0.1))]
        result = slice_mesh(sliver, identity_transform, settings)
        assert result.layers == []
        assert result.paths == []
        assert result.gcode.lines == generate_gcode_header(settings) + generate_gcode_footer()
        assert result.gcode.total_time == 0.0
        assert result.gcode.total_filament == 0.0

    def test_empty_mesh(self, identity_transform, settings):
        result = slice_stl_buffer(build_stl([]), identity_transform, settings)
        assert result.layers == []
        assert result.gcode.total_filament == 0.0

    def test_reading_output_back(self, cube_triangles, identity_transform):
        result = slice_mesh(cube_triangles, identity_transform, SlicerSettings(layer_height=1.0))
        parsed = parse_gcode(result.gcode.text)
        assert parsed.total_filament == pytest.approx(result.gcode.total_filament, rel=1e-3)
        assert parsed.total_time == pytest.approx(result.gcode.total_time, rel=1e-3)


@pytest.mark.slicing
class TestCli:

    def test_slice_writes_gcode(self, cube_stl_file, tmp_path):
        output = tmp_path / "cube.gcode"
        points = tmp_path / "points.json"
        result = CliRunner().invoke(
            main, ["slice", str(cube_stl_file), "-o", str(output), "--layer-height", "1", "--points", str(points)],
        )
        assert result.exit_code == 0, result.output
        lines = output.read_text().splitlines()
        assert lines[0] == "; Generated by delta-slicer"
        assert lines[-1] == "M84 ; Disable motors"
        assert sum(1 for line in lines if line.startswith("; --- Layer")) == 10
        path = json.loads(points.read_text())
        assert set(path[0]) == {"x", "y", "z"}

    def test_slice_default_output_name(self, cube_stl_file):
        result = CliRunner().invoke(main, ["slice", str(cube_stl_file)])
        assert result.exit_code == 0, result.output
        assert cube_stl_file.with_suffix(".gcode").exists()

    def test_slice_with_config(self, cube_stl_file, tmp_path):
        config = tmp_path / "settings.yaml"
        config.write_text("slicer:\n  layer_height: 2.0\n  temperature: 230\ntransform:\n  z: 10\n")
        output = tmp_path / "out.gcode"
        result = CliRunner().invoke(main, ["slice", str(cube_stl_file), "-c", str(config), "-o", str(output)])
        assert result.exit_code == 0, result.output
        text = output.read_text()
        assert "M104 S230 ; Set Temp" in text
        assert "; --- Layer 1 Z=10.20 ---" in text

    def test_slice_bad_config(self, cube_stl_file, tmp_path):
        config = tmp_path / "settings.yaml"
        config.write_text("slicer:\n  layer_height: 0\n")
        result = CliRunner().invoke(main, ["slice", str(cube_stl_file), "-c", str(config)])
        assert result.exit_code == 1

    def test_slice_bad_override(self, cube_stl_file):
        result = CliRunner().invoke(main, ["slice", str(cube_stl_file), "--scale", "-1"])
        assert result.exit_code == 1

    def test_info(self, cube_stl_file):
        result = CliRunner().invoke(main, ["info", str(cube_stl_file)])
        assert result.exit_code == 0, result.output
        assert "600.00" in result.output

    def test_inspect(self, cube_stl_file, tmp_path):
        output = tmp_path / "cube.gcode"
        CliRunner().invoke(main, ["slice", str(cube_stl_file), "-o", str(output)])
        result = CliRunner().invoke(main, ["inspect", str(output)])
        assert result.exit_code == 0, result.output
        assert "Moves" in result.output

    def test_missing_input(self, tmp_path):
        result = CliRunner().invoke(main, ["info", str(tmp_path / "none.stl")])
        assert result.exit_code != 0
