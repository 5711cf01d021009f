"""Boundary file loading: GeoJSON and KML → GeoJSON-like mapping.

The result is handed to ``normalize_boundary`` unchanged, so this module
only decodes files; it never picks a polygon or validates topology.

- ``.geojson`` / ``.json``: decoded with ``json``.
- ``.kml``: parsed with lxml using a hardened parser (no entity
  resolution, no network).  Every Placemark holding at least one
  ``<Polygon>`` (directly or inside ``<MultiGeometry>``) becomes a
  Feature; one polygon gives a Polygon geometry, several give a
  MultiPolygon.  Features keep document order.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from coverage_grid.core.exceptions import ValidationError

if TYPE_CHECKING:
    from lxml.etree import _Element

logger = logging.getLogger("coverage_grid.activities.load_boundary")

KML_NAMESPACE = "http://www.opengis.net/kml/2.2"

FORMAT_GEOJSON = "geojson"
FORMAT_KML = "kml"

_SUFFIX_FORMATS = {
    ".geojson": FORMAT_GEOJSON,
    ".json": FORMAT_GEOJSON,
    ".kml": FORMAT_KML,
}


class BoundaryParseError(ValidationError):
    """Raised when a boundary file cannot be read or decoded."""

    default_stage = "load_boundary"
    default_code = "BOUNDARY_PARSE_FAILED"


def load_boundary(path: str | Path) -> dict[str, Any]:
    """Read a boundary file and decode it by extension.

    Raises:
        BoundaryParseError: If the file is unreadable, has an unsupported
            extension, or cannot be decoded.
    """
    path = Path(path)
    fmt = _SUFFIX_FORMATS.get(path.suffix.lower())
    if fmt is None:
        msg = (
            f"Unsupported boundary file extension {path.suffix!r}; "
            f"expected one of {sorted(_SUFFIX_FORMATS)}"
        )
        raise BoundaryParseError(msg)
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Cannot read boundary file {path}: {exc}"
        raise BoundaryParseError(msg) from exc

    data = parse_boundary_text(text, fmt)
    logger.info("Boundary file loaded | path=%s | format=%s", path, fmt)
    return data


def parse_boundary_text(text: str, fmt: str) -> dict[str, Any]:
    """Decode boundary *text* in format ``"geojson"`` or ``"kml"``.

    Raises:
        BoundaryParseError: If the text cannot be decoded.
    """
    if not text.strip():
        msg = "Boundary data is empty"
        raise BoundaryParseError(msg)
    if fmt == FORMAT_GEOJSON:
        return _parse_geojson(text)
    if fmt == FORMAT_KML:
        return _parse_kml(text)
    msg = f"Unknown boundary format {fmt!r}"
    raise BoundaryParseError(msg)


# ---------------------------------------------------------------------------
# GeoJSON
# ---------------------------------------------------------------------------


def _parse_geojson(text: str) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"Not valid JSON: {exc}"
        raise BoundaryParseError(msg) from exc
    if not isinstance(data, dict):
        msg = f"GeoJSON root must be an object, got {type(data).__name__}"
        raise BoundaryParseError(msg)
    return data


# ---------------------------------------------------------------------------
# KML
# ---------------------------------------------------------------------------


def _parse_kml(text: str) -> dict[str, Any]:
    from lxml import etree

    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)
    try:
        root: _Element = etree.fromstring(text.encode("utf-8"), parser=parser)
    except etree.XMLSyntaxError as exc:
        msg = f"Not valid XML: {exc}"
        raise BoundaryParseError(msg) from exc

    if "kml" not in str(root.tag).lower():
        msg = f"Not a KML file, root element is <{root.tag}>"
        raise BoundaryParseError(msg)

    ns = {"kml": KML_NAMESPACE}
    features: list[dict[str, Any]] = []
    for pm in root.findall(".//kml:Placemark", ns):
        polygons = [_polygon_coords(elem, ns) for elem in pm.findall(".//kml:Polygon", ns)]
        polygons = [p for p in polygons if p]
        if not polygons:
            continue
        name_elem = pm.find("kml:name", ns)
        name = (name_elem.text or "").strip() if name_elem is not None else ""
        if len(polygons) == 1:
            geometry = {"type": "Polygon", "coordinates": polygons[0]}
        else:
            geometry = {"type": "MultiPolygon", "coordinates": polygons}
        features.append({"type": "Feature", "properties": {"name": name}, "geometry": geometry})

    logger.debug("KML decoded | polygon_placemarks=%d", len(features))
    return {"type": "FeatureCollection", "features": features}


def _polygon_coords(polygon: _Element, ns: dict[str, str]) -> list[list[list[float]]]:
    rings: list[list[list[float]]] = []
    outer = polygon.find("kml:outerBoundaryIs/kml:LinearRing/kml:coordinates", ns)
    if outer is None or not (outer.text or "").strip():
        return []
    rings.append(parse_kml_coordinates(outer.text or ""))
    for inner in polygon.findall("kml:innerBoundaryIs/kml:LinearRing/kml:coordinates", ns):
        if (inner.text or "").strip():
            rings.append(parse_kml_coordinates(inner.text or ""))
    return rings


def parse_kml_coordinates(text: str) -> list[list[float]]:
    """Parse a KML ``<coordinates>`` string into ``[lon, lat]`` positions.

    Tuples are whitespace separated ``lon,lat[,alt]``; altitude is dropped.

    Raises:
        BoundaryParseError: If a tuple is malformed.
    """
    positions: list[list[float]] = []
    for token in text.split():
        parts = token.split(",")
        if len(parts) < 2:
            msg = f"Malformed KML coordinate tuple {token!r}"
            raise BoundaryParseError(msg)
        try:
            positions.append([float(parts[0]), float(parts[1])])
        except ValueError as exc:
            msg = f"Malformed KML coordinate tuple {token!r}"
            raise BoundaryParseError(msg) from exc
    return positions
