"""
Slicer settings and model transform.

Both are immutable for the duration of a slicing run. They can be built in
code or loaded from a YAML file of the form::

    slicer:
      layer_height: 0.2
      print_speed: 1500
    transform:
      scale: 1.0
      z: 0.0
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from errors import ConfigurationError


class SlicerSettings(BaseModel):
    """Extrusion and motion parameters. Speeds are in mm/min."""

    model_config = ConfigDict(frozen=True)

    filament_diameter: float = Field(default=1.75, gt=0)
    nozzle_diameter: float = Field(default=0.4, gt=0)
    layer_height: float = Field(default=0.2, gt=0)
    temperature: float = Field(default=200.0, gt=0)
    travel_speed: float = Field(default=3000.0, gt=0)
    print_speed: float = Field(default=1500.0, gt=0)


class ModelTransform(BaseModel):
    """Uniform scale followed by a translation. Rotation is not modeled."""

    model_config = ConfigDict(frozen=True)

    scale: float = Field(default=1.0, gt=0)
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


def _section(data: dict[str, Any], name: str, path: Path) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(
            f"Section '{name}' must be a mapping: {path}",
            details={"type": type(section).__name__},
        )
    return section


def load_settings(path: str | Path) -> tuple[SlicerSettings, ModelTransform]:
    """
    Load slicer settings and model transform from a YAML file.

    Missing sections fall back to defaults.

    Raises:
        ConfigurationError: If the file is missing, unparseable or invalid.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Settings file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse settings file: {path}",
            details={"error": str(e)},
        )

    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file must contain a mapping: {path}")

    try:
        settings = SlicerSettings(**_section(data, "slicer", path))
        transform = ModelTransform(**_section(data, "transform", path))
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid settings in {path}",
            details={"error": str(e)},
        )
    return settings, transform
