"""
Checkpulse: checkpoint statistics for stream-processing jobs.

An in-memory reporting model that classifies checkpoints and savepoints,
tracks their lifecycle, and summarizes how they trend over a job's history.
"""

__version__ = "0.1.0"
