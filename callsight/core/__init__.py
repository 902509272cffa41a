"""
Core modules for CallSight.

This package contains the enrichment pipeline:
- models: data structures shared across the pipeline
- backoff: error classification and retry with exponential backoff
- orchestrator: sequential batch classification with fallback and cancellation
- events / streaming: progress events and their server-sent event transport
- statistics: category and sentiment aggregation
- pipeline: enrichment followed by aggregation
"""
