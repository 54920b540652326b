from .errors import (
    GcsError,
    IndexOutOfRange,
    InvalidConstraint,
    OverlappingBlock,
    UnknownKind,
    UnknownProperty,
    UnresolvedReference,
)
from .params import ParameterStore
from .geometry import (
    Arc,
    ArcOfEllipse,
    ArcOfHyperbola,
    ArcOfParabola,
    BSpline,
    BSplineShape,
    Circle,
    Ellipse,
    GeometryBuilder,
    GeometryKind,
    GeometryTable,
    GeometryView,
    Hyperbola,
    Line,
    Parabola,
    Point,
)
from .properties import PROPERTY_OFFSETS, properties_of, property_index, resolve_offset
from .residuals import CATALOG, ConstraintCatalog, ResidualSpec, lookup_kind
from .constraints import Constraint, ConstraintRegistry, Literal, Modifiers, Param, PropertyRef
from .solver import Algorithm, DebugMode, SolveOptions, SolverFacade, SolveStatus
from .sketch import Sketch

__all__ = [
    'GcsError',
    'IndexOutOfRange',
    'InvalidConstraint',
    'OverlappingBlock',
    'UnknownKind',
    'UnknownProperty',
    'UnresolvedReference',
    'ParameterStore',
    'Arc',
    'ArcOfEllipse',
    'ArcOfHyperbola',
    'ArcOfParabola',
    'BSpline',
    'BSplineShape',
    'Circle',
    'Ellipse',
    'GeometryBuilder',
    'GeometryKind',
    'GeometryTable',
    'GeometryView',
    'Hyperbola',
    'Line',
    'Parabola',
    'Point',
    'PROPERTY_OFFSETS',
    'properties_of',
    'property_index',
    'resolve_offset',
    'CATALOG',
    'ConstraintCatalog',
    'ResidualSpec',
    'lookup_kind',
    'Constraint',
    'ConstraintRegistry',
    'Literal',
    'Modifiers',
    'Param',
    'PropertyRef',
    'Algorithm',
    'DebugMode',
    'SolveOptions',
    'SolverFacade',
    'SolveStatus',
    'Sketch',
]
