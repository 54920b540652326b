"""CAD adapters for sketchgcs."""

from .slvs_adapter import (
    AdapterFail,
    AdapterOK,
    AdapterResult,
    CAD_MAPPING_TABLE,
    SlvsAdapter,
    SlvsAdapterOptions,
)

__all__ = [
    "AdapterFail",
    "AdapterOK",
    "AdapterResult",
    "CAD_MAPPING_TABLE",
    "SlvsAdapter",
    "SlvsAdapterOptions",
]
