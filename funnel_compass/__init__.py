"""
Funnel Compass Package.

Funnel diagnostics for paid advertising accounts: compares a current period
against the previous one, separates real changes from noise, locates the
bottleneck stage, prices the damage and, across platforms, recommends where
budget should move.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration and dependencies
    - models: Pydantic schemas and enums
    - services: Analytics core, portfolio correlation and the runner
"""

__version__ = "1.0.0"
