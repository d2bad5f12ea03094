"""Blueprint Estimator - Cloud Functions.

This package contains the Python Cloud Functions that turn uploaded
construction blueprints into AI-generated cost estimate line items.

Architecture:
- 5 Stage Agents: Extraction, Analysis, Line Items, Coverage, Scoring
- 1 Fallback Processor: Manual-review placeholder when a fatal stage fails
- 1 Orchestrator: Sequences the stages and always returns a result
"""

__version__ = "1.0.0"
