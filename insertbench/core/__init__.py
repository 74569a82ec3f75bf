"""
Stress-insert engine: cancellation, worker pool, orchestration, reporting.

Submodules are imported directly (`from insertbench.core.orchestrator import
RunOrchestrator`); this package keeps no import-time side effects so the
models can depend on `insertbench.core.errors`.
"""
