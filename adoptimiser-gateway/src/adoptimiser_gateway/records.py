"""
Conversion of Neo4j result values into plain JSON-compatible data.

The driver hands back graph entities (nodes, relationships, paths), its own
temporal and spatial types, and nested lists and maps of any of these. The
chat client renders records as tables, so every value is reduced here to
dicts, lists, strings and numbers.
"""
from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List

from neo4j.graph import Node, Path, Relationship
from neo4j.spatial import Point
from neo4j.time import Date, DateTime, Duration, Time


def _node(node: Node) -> Dict[str, Any]:
    return {
        "identity": node.element_id,
        "labels": sorted(node.labels),
        "properties": {key: normalize_value(value) for key, value in node.items()},
    }


def _relationship(relationship: Relationship) -> Dict[str, Any]:
    start = relationship.start_node
    end = relationship.end_node
    return {
        "identity": relationship.element_id,
        "type": relationship.type,
        "properties": {key: normalize_value(value) for key, value in relationship.items()},
        "start": start.element_id if start is not None else None,
        "end": end.element_id if end is not None else None,
    }


def _path(path: Path) -> List[Dict[str, Any]]:
    # Alternates node, relationship, node, ... along the path.
    items: List[Dict[str, Any]] = [_node(path.start_node)]
    for relationship, node in zip(path.relationships, path.nodes[1:]):
        items.append(_relationship(relationship))
        items.append(_node(node))
    return items


def _point(point: Point) -> Dict[str, Any]:
    return {
        "srid": point.srid,
        "x": getattr(point, "x", None),
        "y": getattr(point, "y", None),
        "z": getattr(point, "z", None),
    }


def normalize_value(value: Any) -> Any:
    """Recursively converts one driver value into JSON-compatible data."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Node):
        return _node(value)
    if isinstance(value, Relationship):
        return _relationship(value)
    if isinstance(value, Path):
        return _path(value)
    if isinstance(value, (DateTime, Date, Time, Duration)):
        return value.iso_format()
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    # Points are tuples, so they must be matched before plain sequences.
    if isinstance(value, Point):
        return _point(value)
    if isinstance(value, dict):
        return {str(key): normalize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_value(item) for item in value]
    if isinstance(value, (bytes, bytearray)):
        return list(value)
    return str(value)


def normalize_record(record: Any) -> Dict[str, Any]:
    """Converts one result record (anything with ``items()``) into a dict."""
    return {str(key): normalize_value(value) for key, value in record.items()}


__all__ = ["normalize_value", "normalize_record"]
