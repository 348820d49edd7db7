"""
BOM Engine Exceptions.

Every failure the engine reports is one of these types. Each carries a
string ``code``, a stable numeric ``status`` for boundary layers (CLI exit
codes, foreign callers) and a ``details`` dict with the offending values.
"""

from typing import Any, Dict, List, Optional


class BomError(Exception):
    """Base exception for all BOM engine errors."""

    status = 99

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "BOM_ERROR"
        self.details = details or {}


class ComponentNotFound(BomError):
    """Raised when a referenced component ID is unknown to the repository."""

    status = 1

    def __init__(self, component_id: str):
        super().__init__(
            message=f"Component not found: {component_id}",
            code="NOT_FOUND",
            details={"component_id": component_id}
        )
        self.component_id = component_id


class InvalidQuantity(BomError):
    """Raised for zero/negative quantities, negative costs and inexact results."""

    status = 2

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None, code: str = "INVALID_QUANTITY"):
        super().__init__(
            message=message,
            code=code,
            details={"field": field, "value": str(value) if value is not None else None}
        )
        self.field = field


class InvalidNumber(InvalidQuantity):
    """Raised when text is not a well-formed decimal."""

    status = 3

    def __init__(self, value: Any, field: Optional[str] = None):
        super().__init__(
            message=f"Invalid number for {field or 'value'}: {value!r}",
            field=field,
            value=value,
            code="INVALID_NUMBER",
        )


class SelfReference(BomError):
    """Raised when an item would make a component consume itself."""

    status = 4

    def __init__(self, component_id: str):
        super().__init__(
            message=f"Component cannot use itself: {component_id}",
            code="SELF_REFERENCE",
            details={"component_id": component_id}
        )


class CycleDetected(BomError):
    """Raised when a traversal meets a component already on its ancestry path."""

    status = 5

    def __init__(self, cycle: List[str]):
        super().__init__(
            message="Circular dependency detected in BOM: " + " -> ".join(cycle),
            code="CYCLE_DETECTED",
            details={"cycle": list(cycle)}
        )
        self.cycle = list(cycle)


class DuplicateEdgePolicyViolation(BomError):
    """Raised under the ``reject`` policy when a parent/child pair already has an item."""

    status = 6

    def __init__(self, parent_id: str, child_id: str):
        super().__init__(
            message=f"BOM item {parent_id} -> {child_id} already exists",
            code="DUPLICATE_EDGE",
            details={"parent_id": parent_id, "child_id": child_id}
        )


class InvalidComponent(BomError):
    """Raised when a component record is structurally invalid."""

    status = 7

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            code="INVALID_COMPONENT",
            details={"field": field}
        )


class BomFormatError(BomError):
    """Raised by the loaders when an input table or document is malformed."""

    status = 8

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(
            message=message,
            code="BAD_FORMAT",
            details={"source": source}
        )
