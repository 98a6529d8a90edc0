# jyotish/core/errors.py
# -----------------------------------------------------------------------------
# Error taxonomy shared by every engine component.
#
#   JyotishError          base; carries a stage label + structured context
#   ├─ InitializationError  engine could not be opened (bad data directory…)
#   ├─ ValidationError      caller input rejected before any provider call
#   ├─ CalculationError     numerical provider failed for a body / instant
#   └─ ClosedStateError     engine used after close()
#
#   ProviderError         raised by provider implementations only; the
#                         accessor converts it into CalculationError.
# -----------------------------------------------------------------------------
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

__all__ = [
    "JyotishError",
    "InitializationError",
    "ValidationError",
    "CalculationError",
    "ClosedStateError",
    "ProviderError",
    "field_error",
]


class JyotishError(RuntimeError):
    """Categorized error for engine callers."""

    def __init__(self, stage: str, message: str, **context: Any):
        super().__init__(f"{stage}: {message}")
        self.stage = stage
        self.message = message
        self.context = context


class InitializationError(JyotishError):
    def __init__(self, message: str, **context: Any):
        super().__init__("init", message, **context)


class CalculationError(JyotishError):
    """Provider failure for a body at an instant; the provider text is kept verbatim."""

    def __init__(self, body: Optional[str], jd: Optional[float], message: str, **context: Any):
        super().__init__("calc", message, body=body, jd=jd, **context)
        self.body = body
        self.jd = jd


class ClosedStateError(JyotishError):
    def __init__(self, message: str = "ephemeris engine is closed", **context: Any):
        super().__init__("closed", message, **context)


def field_error(loc: Union[List[str], str], msg: str, typ: str = "value_error") -> Dict[str, Any]:
    return {"loc": [loc] if isinstance(loc, str) else list(loc), "msg": msg, "type": typ}


class ValidationError(JyotishError, ValueError):
    """Structured input error; ``.errors()`` yields ``{loc, msg, type}`` dicts."""

    def __init__(self, details: Union[str, Dict[str, Any], List[Dict[str, Any]]]):
        if isinstance(details, str):
            self._details = [field_error([], details)]
        elif isinstance(details, dict):
            self._details = [details]
        else:
            self._details = list(details) or [field_error([], "validation_error")]
        super().__init__("validate", self._details[0]["msg"], errors=self._details)

    def errors(self) -> List[Dict[str, Any]]:
        return list(self._details)


class ProviderError(RuntimeError):
    """Raised by numerical providers; ``str(exc)`` is the provider's own message."""
