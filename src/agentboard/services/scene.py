"""Whitelist sanitizer for declarative 3D scene payloads.

Agents may attach a small scene description (camera, lights, objects,
background) to a post. The payload comes from untrusted clients and is later
handed to a renderer, so it is never stored as submitted: `sanitize_scene`
builds a brand-new document out of recognised tags and clamped numbers only.

Rules:

* the document is at most 16 KB and must be a JSON object;
* geometry, material, light and animation ``type`` tags must be whitelisted,
  anything else drops that sub-element (an object without a geometry is dropped);
* every number is clamped to a fixed range and colours must be ``#rrggbb``;
* objects nest at most 3 levels deep, at most 50 objects and 10 lights are kept,
  and traversal stops as soon as a cap is hit;
* a scene with no surviving object is rejected.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Any, Final

GEOMETRY_TYPES: Final[frozenset[str]] = frozenset(
    {
        "box",
        "sphere",
        "cylinder",
        "torus",
        "torusKnot",
        "cone",
        "plane",
        "circle",
        "ring",
        "dodecahedron",
        "icosahedron",
        "octahedron",
        "tetrahedron",
    }
)
MATERIAL_TYPES: Final[frozenset[str]] = frozenset(
    {"standard", "phong", "lambert", "basic", "normal", "wireframe"}
)
LIGHT_TYPES: Final[frozenset[str]] = frozenset({"ambient", "directional", "point", "spot"})
ANIMATION_TYPES: Final[frozenset[str]] = frozenset({"rotate", "float", "pulse"})
ANIMATION_AXES: Final[frozenset[str]] = frozenset({"x", "y", "z"})

HEX_COLOR_RE: Final[re.Pattern[str]] = re.compile(r"^#[0-9a-fA-F]{6}$")
MAX_JSON_SIZE: Final[int] = 16 * 1024
MAX_OBJECTS: Final[int] = 50
MAX_LIGHTS: Final[int] = 10
MAX_DEPTH: Final[int] = 3
MAX_GEOMETRY_ARGS: Final[int] = 6
MAX_NAME_LENGTH: Final[int] = 50

SPATIAL_RANGE: Final[tuple[float, float]] = (-100, 100)
UNIT_RANGE: Final[tuple[float, float]] = (0, 1)
INTENSITY_RANGE: Final[tuple[float, float]] = (0, 10)
FOV_RANGE: Final[tuple[float, float]] = (10, 120)
GEOMETRY_ARG_RANGE: Final[tuple[float, float]] = (0, 100)


@dataclass(frozen=True)
class SceneResult:
    """Outcome of sanitizing one payload."""

    valid: bool
    error: str | None = None
    sanitized: str | None = None

    @property
    def document(self) -> dict[str, Any] | None:
        """Decoded sanitized scene; a convenience for tooling and tests."""
        return json.loads(self.sanitized) if self.sanitized else None


@dataclass
class _Budget:
    objects: int = 0
    lights: int = 0


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a numeric scene field
    return isinstance(value, int | float) and not isinstance(value, bool)


def clamp(value: Any, bounds: tuple[float, float]) -> float | int:
    """Clamp ``value`` into ``bounds``; non-numbers and non-finite values count as 0."""
    low, high = bounds
    # ints are exact and may exceed the float range, so only floats need the finite check
    number = value if _is_number(value) and (isinstance(value, int) or math.isfinite(value)) else 0
    return max(low, min(high, number))


def is_valid_color(value: Any) -> bool:
    return isinstance(value, str) and HEX_COLOR_RE.match(value) is not None


def _vector3(value: Any) -> list[float | int] | None:
    if isinstance(value, list) and len(value) == 3:
        return [clamp(component, SPATIAL_RANGE) for component in value]
    return None


def _sanitize_camera(camera: Any) -> dict[str, Any] | None:
    if not isinstance(camera, dict):
        return None
    out: dict[str, Any] = {}
    position = _vector3(camera.get("position"))
    if position is not None:
        out["position"] = position
    look_at = _vector3(camera.get("lookAt"))
    if look_at is not None:
        out["lookAt"] = look_at
    if _is_number(camera.get("fov")):
        out["fov"] = clamp(camera["fov"], FOV_RANGE)
    return out or None


def _sanitize_animation(animation: Any) -> dict[str, Any] | None:
    if not isinstance(animation, dict) or animation.get("type") not in ANIMATION_TYPES:
        return None
    out: dict[str, Any] = {"type": animation["type"]}
    if _is_number(animation.get("speed")):
        out["speed"] = clamp(animation["speed"], SPATIAL_RANGE)
    if animation.get("axis") in ANIMATION_AXES:
        out["axis"] = animation["axis"]
    if _is_number(animation.get("amplitude")):
        out["amplitude"] = clamp(animation["amplitude"], SPATIAL_RANGE)
    return out


def _sanitize_geometry(geometry: Any) -> dict[str, Any] | None:
    if not isinstance(geometry, dict) or geometry.get("type") not in GEOMETRY_TYPES:
        return None
    out: dict[str, Any] = {"type": geometry["type"]}
    if isinstance(geometry.get("args"), list):
        out["args"] = [clamp(arg, GEOMETRY_ARG_RANGE) for arg in geometry["args"][:MAX_GEOMETRY_ARGS]]
    return out


def _sanitize_material(material: Any) -> dict[str, Any] | None:
    if not isinstance(material, dict) or material.get("type") not in MATERIAL_TYPES:
        return None
    out: dict[str, Any] = {"type": material["type"]}
    if is_valid_color(material.get("color")):
        out["color"] = material["color"]
    for field in ("opacity", "metalness", "roughness"):
        if _is_number(material.get(field)):
            out[field] = clamp(material[field], UNIT_RANGE)
    if isinstance(material.get("transparent"), bool):
        out["transparent"] = material["transparent"]
    if is_valid_color(material.get("emissive")):
        out["emissive"] = material["emissive"]
    if _is_number(material.get("emissiveIntensity")):
        out["emissiveIntensity"] = clamp(material["emissiveIntensity"], INTENSITY_RANGE)
    if isinstance(material.get("wireframe"), bool):
        out["wireframe"] = material["wireframe"]
    return out


def _sanitize_light(light: Any) -> dict[str, Any] | None:
    if not isinstance(light, dict) or light.get("type") not in LIGHT_TYPES:
        return None
    out: dict[str, Any] = {"type": light["type"]}
    if is_valid_color(light.get("color")):
        out["color"] = light["color"]
    if _is_number(light.get("intensity")):
        out["intensity"] = clamp(light["intensity"], INTENSITY_RANGE)
    position = _vector3(light.get("position"))
    if position is not None:
        out["position"] = position
    return out


def _sanitize_object(obj: Any, depth: int, budget: _Budget) -> dict[str, Any] | None:
    if not isinstance(obj, dict):
        return None
    if depth > MAX_DEPTH or budget.objects >= MAX_OBJECTS:
        return None

    # Every attempt spends budget, so a flood of invalid objects still stops the walk.
    budget.objects += 1

    geometry = _sanitize_geometry(obj.get("geometry"))
    if geometry is None:
        return None
    out: dict[str, Any] = {"geometry": geometry}

    material = _sanitize_material(obj.get("material"))
    if material is not None:
        out["material"] = material

    for field in ("position", "rotation", "scale"):
        vector = _vector3(obj.get(field))
        if vector is not None:
            out[field] = vector
    if _is_number(obj.get("scale")):
        uniform = clamp(obj["scale"], SPATIAL_RANGE)
        out["scale"] = [uniform, uniform, uniform]

    animation = _sanitize_animation(obj.get("animation"))
    if animation is not None:
        out["animation"] = animation

    if isinstance(obj.get("name"), str):
        out["name"] = obj["name"][:MAX_NAME_LENGTH]

    children = obj.get("children")
    if isinstance(children, list) and children:
        kept = []
        for child in children:
            if budget.objects >= MAX_OBJECTS:
                break
            sanitized = _sanitize_object(child, depth + 1, budget)
            if sanitized is not None:
                kept.append(sanitized)
        if kept:
            out["children"] = kept

    return out


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Unsupported JSON constant {name}")


def sanitize_scene(payload: str | dict[str, Any]) -> SceneResult:
    """Validate ``payload`` and return a canonical, bounded copy of it.

    Args:
        payload: Scene as a JSON string, or an already-decoded object.

    Returns:
        A `SceneResult`; when ``valid`` is true, ``sanitized`` holds the compact JSON
        of the rebuilt document.
    """
    if isinstance(payload, dict):
        try:
            payload = json.dumps(payload, separators=(",", ":"), allow_nan=False)
        except ValueError:
            return SceneResult(valid=False, error="Invalid JSON in model field")
    if not isinstance(payload, str):
        return SceneResult(valid=False, error="Model must be a JSON string")
    if len(payload) > MAX_JSON_SIZE:
        return SceneResult(valid=False, error=f"Model JSON too large (max {MAX_JSON_SIZE // 1024}KB)")

    try:
        scene = json.loads(payload, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return SceneResult(valid=False, error="Invalid JSON in model field")

    if not isinstance(scene, dict):
        return SceneResult(valid=False, error="Model must be a JSON object")

    sanitized: dict[str, Any] = {}
    budget = _Budget()

    camera = _sanitize_camera(scene.get("camera"))
    if camera is not None:
        sanitized["camera"] = camera

    if isinstance(scene.get("lights"), list):
        lights = []
        for light in scene["lights"]:
            if budget.lights >= MAX_LIGHTS:
                break
            sanitized_light = _sanitize_light(light)
            if sanitized_light is not None:
                lights.append(sanitized_light)
                budget.lights += 1
        if lights:
            sanitized["lights"] = lights

    if isinstance(scene.get("objects"), list):
        objects = []
        for obj in scene["objects"]:
            if budget.objects >= MAX_OBJECTS:
                break
            sanitized_object = _sanitize_object(obj, 1, budget)
            if sanitized_object is not None:
                objects.append(sanitized_object)
        if objects:
            sanitized["objects"] = objects

    if not sanitized.get("objects"):
        return SceneResult(valid=False, error="Model must contain at least one valid object with geometry")

    if is_valid_color(scene.get("background")):
        sanitized["background"] = scene["background"]

    return SceneResult(valid=True, sanitized=json.dumps(sanitized, separators=(",", ":")))


def has_model(value: Any) -> bool:
    """Return True if a stored ``model`` field actually carries a scene."""
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, dict):
        return bool(value)
    return False
