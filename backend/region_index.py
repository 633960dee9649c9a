"""Casemap Backend - Region Index

Reads the canonical region names (RegionKeys) out of the geographic document.
Names are taken verbatim from each feature's ``properties.name``.

Both encodings served to the map are accepted:
  - TopoJSON ``Topology``: objects[<object_name>].geometries[i].properties.name
  - GeoJSON ``FeatureCollection``: features[i].properties.name

Geometry is never touched here; converting arcs to polygons and computing
bounds is left to the browser's topojson/Leaflet layer.
"""

import logging

from config import GEO_OBJECT_NAME

logger = logging.getLogger("casemap.regions")


class GeoDataError(ValueError):
    """The geographic document cannot be read as a set of named regions."""


def _topology_entries(document: dict, object_name: str) -> list:
    objects = document.get("objects")
    if not isinstance(objects, dict) or object_name not in objects:
        available = sorted(objects) if isinstance(objects, dict) else []
        raise GeoDataError(f"Topology has no object '{object_name}' (available: {available})")
    obj = objects[object_name]
    if not isinstance(obj, dict):
        raise GeoDataError(f"Topology object '{object_name}' is not a JSON object")
    if obj.get("type") == "GeometryCollection":
        entries = obj.get("geometries")
    else:
        entries = [obj]
    if not isinstance(entries, list):
        raise GeoDataError(f"Topology object '{object_name}' has no geometries list")
    return entries


def _feature_entries(document: dict) -> list:
    entries = document.get("features")
    if not isinstance(entries, list):
        raise GeoDataError("FeatureCollection has no features list")
    return entries


def build_region_index(document: dict, object_name: str = GEO_OBJECT_NAME) -> list[str]:
    """Return region names in input order, one per named feature.

    A duplicate name keeps its first position. Raises GeoDataError when the
    document is not a usable Topology/FeatureCollection or names no region.
    """
    if not isinstance(document, dict):
        raise GeoDataError(f"Geographic document must be a JSON object, got {type(document).__name__}")

    doc_type = document.get("type")
    if doc_type == "Topology":
        entries = _topology_entries(document, object_name)
    elif doc_type == "FeatureCollection":
        entries = _feature_entries(document)
    else:
        raise GeoDataError(f"Unsupported geographic document type: {doc_type!r}")

    names: dict[str, None] = {}
    for i, entry in enumerate(entries):
        props = entry.get("properties") if isinstance(entry, dict) else None
        name = props.get("name") if isinstance(props, dict) else None
        if not isinstance(name, str) or not name:
            logger.warning(f"Feature #{i} has no region name, skipping")
            continue
        if name in names:
            logger.warning(f"Duplicate region name '{name}' (feature #{i})")
            continue
        names[name] = None

    if not names:
        raise GeoDataError("Geographic document contains no named regions")

    logger.info(f"Region index built: {len(names)} regions")
    return list(names)
