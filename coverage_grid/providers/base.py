"""PlaceProvider abstract base class and shared provider types.

Defines the contract every place-name lookup adapter implements.  Hosts
only talk to this interface; the coverage pipeline itself never performs
network access and receives the chosen boundary as a GeoJSON mapping.

Lifecycle:
    1. ``search(query)`` returns candidate places with polygon boundaries.
    2. The host picks one and passes ``PlaceResult.geojson`` as the
       request boundary, with ``PlaceResult.label`` as the default label.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any

from coverage_grid.core.exceptions import TransientError


@dataclass(frozen=True, slots=True)
class PlaceResult:
    """One place returned by a lookup.

    Attributes:
        display_name: Full display name from the provider.
        geojson: Boundary geometry (Polygon or MultiPolygon mapping).
        label: Short label, the first comma-separated part of the
            display name.
    """

    display_name: str
    geojson: dict[str, Any] = field(default_factory=dict)
    label: str = ""

    def __post_init__(self) -> None:
        if not self.label:
            object.__setattr__(self, "label", label_from_display_name(self.display_name))


def label_from_display_name(display_name: str) -> str:
    """``"Amur Oblast, Far Eastern Federal District, Russia"`` → ``"Amur Oblast"``."""
    return display_name.split(",", 1)[0].strip()


class PlaceProvider(abc.ABC):
    """Abstract base class for place-name lookup adapters."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Short provider identifier used in logs and errors."""

    @abc.abstractmethod
    def search(self, query: str) -> list[PlaceResult]:
        """Return places matching *query* that carry a polygon boundary.

        Raises:
            PlaceLookupError: On transport or protocol failure.
        """


class PlaceLookupError(TransientError):
    """Place lookup failed (network, HTTP status or malformed response).

    Attributes:
        provider: Name of the provider that raised the error.
    """

    default_stage = "place_lookup"
    default_code = "PLACE_LOOKUP_FAILED"
    context_fields = ("provider",)

    def __init__(self, provider: str, message: str, *, retryable: bool = True) -> None:
        self.provider = provider
        super().__init__(message, retryable=retryable)

    def __str__(self) -> str:
        return f"[{self.provider}] {self.message}"
