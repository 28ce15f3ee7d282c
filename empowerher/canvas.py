"""
Headless map canvas.

The web client renders whatever layers are registered here with Leaflet;
the Python side only keeps track of which overlays exist, so every flow can
enforce "remove the old overlay before drawing the new one".
"""
import itertools
from dataclasses import dataclass, field

_ids = itertools.count(1)

TILE = "tile"
CIRCLE = "circle"
MARKER = "marker"
POLYLINE = "polyline"
CONTROL = "control"


@dataclass(eq=False)
class Layer:
    kind: str
    options: dict = field(default_factory=dict)
    id: int = field(default_factory=lambda: next(_ids))

    def to_dict(self):
        data = {"id": self.id, "kind": self.kind}
        data.update(self.options)
        return data


def tile_layer(url, attribution):
    return Layer(TILE, {"url": url, "attribution": attribution})


def circle(center, radius, color, fill_opacity=0.3, **extra):
    return Layer(CIRCLE, dict(center=list(center), radius=radius, color=color,
                              fill_color=color, fill_opacity=fill_opacity, **extra))


def marker(latlng, popup=None, **extra):
    return Layer(MARKER, dict(latlng=list(latlng), popup=popup, **extra))


def polyline(points, color, weight=5, **extra):
    return Layer(POLYLINE, dict(points=[list(p) for p in points], color=color, weight=weight, **extra))


def bounds_of(points):
    lats = [p[0] for p in points]
    lons = [p[1] for p in points]
    return ((min(lats), min(lons)), (max(lats), max(lons)))


class MapCanvas:
    def __init__(self, center, zoom):
        self.center = tuple(center)
        self.zoom = zoom
        self.bounds = None
        self._layers = []

    def add(self, layer):
        if layer not in self._layers:
            self._layers.append(layer)
        return layer

    def remove(self, layer):
        if layer in self._layers:
            self._layers.remove(layer)
            return True
        return False

    def has(self, layer):
        return layer in self._layers

    def layers(self, kind=None):
        return [l for l in self._layers if kind is None or l.kind == kind]

    def set_view(self, center, zoom=None):
        self.center = tuple(center)
        if zoom is not None:
            self.zoom = zoom

    def fit_bounds(self, points):
        if not points:
            return
        self.bounds = bounds_of(points)
        (south, west), (north, east) = self.bounds
        self.center = ((south + north) / 2, (west + east) / 2)

    def to_dict(self):
        return {
            "center": list(self.center),
            "zoom": self.zoom,
            "bounds": [list(c) for c in self.bounds] if self.bounds else None,
            "layers": [l.to_dict() for l in self._layers],
        }
