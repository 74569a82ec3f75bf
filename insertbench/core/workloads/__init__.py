"""
Workloads

Factory and exports for the built-in insert workloads.
"""

from typing import Any

from insertbench.core.errors import RunConfigurationError
from insertbench.core.workloads.base import Workload, quoted
from insertbench.core.workloads.hello import HelloWorkload
from insertbench.core.workloads.sensors import SensorsWorkload

WORKLOADS: dict[str, type[Workload]] = {
    "sensors": SensorsWorkload,
    "hello": HelloWorkload,
}


def create_workload(name: str, batch_size: int, **options: Any) -> Workload:
    """
    Factory function to create a workload by name.

    Args:
        name: Registered workload name ("sensors", "hello")
        batch_size: Rows per INSERT statement
        **options: Workload-specific options (e.g. `shards`); None values are dropped

    Returns:
        Workload instance

    Raises:
        RunConfigurationError: If the workload name is not registered or an
            option is out of range
    """
    key = str(name or "").strip().lower()
    cls = WORKLOADS.get(key)
    if cls is None:
        known = ", ".join(sorted(WORKLOADS))
        raise RunConfigurationError(f"Unknown workload {name!r} (known: {known})")
    try:
        return cls(batch_size, **{k: v for k, v in options.items() if v is not None})
    except ValueError as e:
        raise RunConfigurationError(f"Invalid {key} workload options: {e}") from e


__all__ = [
    "Workload",
    "SensorsWorkload",
    "HelloWorkload",
    "WORKLOADS",
    "create_workload",
    "quoted",
]
