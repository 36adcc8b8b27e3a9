"""Per-view indicator settings and the indicator-switch state machine."""

from indicharts.services.settings.coordinator import CoordinatorState, ParameterCoordinator

__all__ = ["CoordinatorState", "ParameterCoordinator"]
