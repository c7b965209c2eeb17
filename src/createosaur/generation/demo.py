"""
Demo mode - procedural placeholder creatures.

When no provider has a credential the orchestrator still returns an
image: a stylised SVG figure whose colours, pattern, size and traits are
read from the prompt. Rendering is pure and deterministic for a given
prompt and seed; it performs no I/O.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
import zlib
from dataclasses import dataclass, field

import numpy as np


WIDTH = 512
HEIGHT = 512
CENTER_X = 256
CENTER_Y = 280

SVG_NS = "http://www.w3.org/2000/svg"

SPECIES_KEYWORDS = {
    "tyrannosaurus": "T-Rex",
    "t-rex": "T-Rex",
    "triceratops": "Triceratops",
    "velociraptor": "Raptor",
    "stegosaurus": "Stegosaurus",
    "brachiosaurus": "Sauropod",
    "parasaurolophus": "Hadrosaur",
}

TRAIT_PHRASES = (
    "massive jaw",
    "sharp teeth",
    "triple horns",
    "back plates",
    "sickle claws",
    "pack hunter",
    "herbivore",
    "carnivore",
)

SIZE_SCALE = {
    "tiny": 0.6,
    "small": 0.8,
    "medium": 1.0,
    "large": 1.2,
    "massive": 1.4,
}

HEX_COLOR = re.compile(r"#(?:[0-9a-fA-F]{6}|[0-9a-fA-F]{3})\b")


@dataclass
class CreatureFeatures:
    """Coarse features read from a prompt."""
    species: list[str] = field(default_factory=list)
    colors: list[str] = field(default_factory=list)
    pattern: str = "solid"
    size: str = "medium"
    age: str = "adult"
    traits: list[str] = field(default_factory=list)


def extract_features(prompt: str) -> CreatureFeatures:
    features = CreatureFeatures()
    lowered = prompt.lower()

    for keyword, label in SPECIES_KEYWORDS.items():
        if keyword in lowered and label not in features.species:
            features.species.append(label)

    features.colors = HEX_COLOR.findall(prompt)[:3]

    for pattern in ("stripes", "spots", "camouflage"):
        if pattern in lowered:
            features.pattern = pattern
            break

    # "massive jaw" is a trait, not a size
    for size in ("tiny", "small", "massive", "large"):
        if re.search(rf"\b{size}\b(?! jaw)", lowered):
            features.size = size
            break

    if "juvenile" in lowered:
        features.age = "juvenile"

    features.traits = [t for t in TRAIT_PHRASES if t in lowered]
    return features


def prompt_seed(prompt: str) -> int:
    """Stable default seed derived from the prompt text."""
    # surrogatepass: argv decoding leaves lone surrogates for undecodable bytes
    return zlib.crc32(prompt.encode("utf-8", "surrogatepass"))


def _num(value: float) -> str:
    return f"{value:g}" if float(value).is_integer() else f"{value:.2f}"


def _el(parent: ET.Element, tag: str, **attrs: object) -> ET.Element:
    return ET.SubElement(
        parent, tag, {k.replace("_", "-"): _num(v) if isinstance(v, (int, float)) else str(v)
                      for k, v in attrs.items()}
    )


def _polygon(parent: ET.Element, points: list[tuple[float, float]], fill: str) -> None:
    _el(
        parent,
        "polygon",
        points=" ".join(f"{_num(x)},{_num(y)}" for x, y in points),
        fill=fill,
        stroke="#333",
        stroke_width=1,
    )


def _defs(svg: ET.Element) -> None:
    defs = _el(svg, "defs")
    gradient = _el(defs, "radialGradient", id="bg", cx="50%", cy="50%", r="50%")
    _el(gradient, "stop", offset="0%", style="stop-color:#2a5934;stop-opacity:1")
    _el(gradient, "stop", offset="100%", style="stop-color:#1a3324;stop-opacity:1")
    shadow = _el(defs, "filter", id="shadow")
    _el(shadow, "feDropShadow", dx=2, dy=2, stdDeviation=3, flood_opacity=0.3)


def _background(svg: ET.Element, rng: np.random.Generator) -> None:
    _el(svg, "rect", width="100%", height="100%", fill="url(#bg)")
    # Jungle foliage; positions jitter with the seed
    base = ((100, 400, 50, 80, "#2d5a3d", 0.6), (400, 420, 60, 70, "#2d5a3d", 0.6),
            (50, 350, 30, 90, "#234a35", 0.7), (450, 380, 40, 85, "#234a35", 0.7))
    jitter = rng.integers(-15, 16, size=(len(base), 2))
    for (cx, cy, rx, ry, fill, opacity), (dx, dy) in zip(base, jitter):
        _el(svg, "ellipse", cx=cx + int(dx), cy=cy + int(dy), rx=rx, ry=ry,
            fill=fill, opacity=opacity)


def _body(svg: ET.Element, scale: float, primary: str, secondary: str) -> None:
    cx, cy = CENTER_X, CENTER_Y
    _el(svg, "ellipse", cx=cx, cy=cy, rx=120 * scale, ry=80 * scale, fill=primary,
        stroke=secondary, stroke_width=3, filter="url(#shadow)")
    _el(svg, "ellipse", cx=cx, cy=cy - 100 * scale, rx=60 * scale, ry=50 * scale,
        fill=primary, stroke=secondary, stroke_width=2)
    for offset in (-80, -40, 20, 60):
        _el(svg, "rect", x=cx + offset * scale, y=cy + 40 * scale, width=20 * scale,
            height=60 * scale, fill=secondary, rx=10)
    _el(svg, "ellipse", cx=cx + 140 * scale, cy=cy + 20 * scale, rx=40 * scale,
        ry=15 * scale, fill=primary, stroke=secondary, stroke_width=2)


def _pattern(svg: ET.Element, pattern: str, color: str) -> None:
    cx, cy = CENTER_X, CENTER_Y
    if pattern == "stripes":
        group = _el(svg, "g", opacity=0.6)
        for offset in (-100, -70, -40, -10, 20, 50):
            _el(group, "rect", x=cx + offset, y=cy - 60, width=10, height=120, fill=color)
    elif pattern == "spots":
        group = _el(svg, "g", opacity=0.7)
        for dx, dy, r in ((-50, -30, 8), (-20, -10, 6), (10, -40, 7),
                          (40, -15, 5), (-30, 20, 6), (20, 25, 8)):
            _el(group, "circle", cx=cx + dx, cy=cy + dy, r=r, fill=color)


def _traits(svg: ET.Element, traits: list[str], color: str) -> None:
    cx, cy = CENTER_X, CENTER_Y
    if any("horn" in t for t in traits):
        for x in (-15, 15):
            _polygon(svg, [(cx + x - 5, cy - 130), (cx + x, cy - 150), (cx + x + 5, cy - 130)], color)
    if any("plate" in t for t in traits):
        for x, top in ((-30, 100), (0, 105), (30, 100)):
            base = top - 20
            _polygon(svg, [(cx + x - 10, cy - base), (cx + x, cy - top), (cx + x + 10, cy - base)], color)
    for x in (-20, 20):
        _el(svg, "circle", cx=cx + x, cy=cy - 110, r=6, fill="#ffffff", stroke="#333", stroke_width=1)
        _el(svg, "circle", cx=cx + x, cy=cy - 110, r=3, fill="#333")


def _text(svg: ET.Element, y: int, text: str, fill: str, size: int, bold: bool = False) -> None:
    attrs: dict[str, object] = {"x": 20, "y": y, "fill": fill, "font_family": "Arial", "font_size": size}
    if bold:
        attrs["font_weight"] = "bold"
    _el(svg, "text", **attrs).text = text


def render_demo_svg(prompt: str, seed: int | None = None) -> bytes:
    """
    Render a placeholder creature for ``prompt``.

    Args:
        prompt: Generation prompt to read features from
        seed: Seed for the layout jitter; defaults to prompt_seed(prompt)

    Returns:
        UTF-8 encoded SVG document
    """
    features = extract_features(prompt)
    rng = np.random.default_rng(prompt_seed(prompt) if seed is None else seed)

    primary = features.colors[0] if len(features.colors) > 0 else "#8B4513"
    secondary = features.colors[1] if len(features.colors) > 1 else "#654321"
    accent = features.colors[2] if len(features.colors) > 2 else "#A0522D"
    scale = SIZE_SCALE.get(features.size, 1.0)

    svg = ET.Element("svg", {"xmlns": SVG_NS, "width": str(WIDTH), "height": str(HEIGHT)})
    _defs(svg)
    _background(svg, rng)
    _body(svg, scale, primary, secondary)
    _pattern(svg, features.pattern, accent)
    _traits(svg, features.traits, accent)

    species_text = (
        f"Species: {len(features.species)} combined" if features.species else "Hybrid Creature"
    )
    _text(svg, 30, "DEMO CREATURE", "#ffffff", 14, bold=True)
    _text(svg, 50, species_text, "#cccccc", 10)
    _text(svg, HEIGHT - 40, f"Features: {', '.join(features.traits[:2]) or 'Hybrid traits'}", "#999999", 8)
    _text(svg, HEIGHT - 25, f"Size: {features.size} - Age: {features.age}", "#999999", 8)
    _text(svg, HEIGHT - 10, "Add API key for real AI generation", "#666666", 8)

    return ET.tostring(svg, encoding="utf-8", xml_declaration=False)
