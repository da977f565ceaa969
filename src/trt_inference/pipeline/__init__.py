"""
Pipeline for running frame sources through the inference runtime.

- PipelineEngine: synchronous single-thread session loop
- InferenceWorker: one inference thread fed through a queue
"""

from .engine import PipelineAbortedError, PipelineEngine, PipelineStats
from .worker import InferenceWorker

__all__ = [
    "PipelineAbortedError",
    "PipelineEngine",
    "PipelineStats",
    "InferenceWorker",
]
